"""
Path Finder.

Shortest path lookup over a built navigation graph.
"""

from collections import deque
from typing import Dict, List, Optional

from ..models import NavigationGraph


def find_path(
    graph: NavigationGraph,
    from_screen_id: str,
    to_screen_id: str,
) -> Optional[List[str]]:
    """
    Find the shortest path between two screens.

    Breadth-first over forward edges. Children are visited in edge creation
    order, so the earliest created edge wins ties between equal-length paths.

    Returns:
        Screen ids from source to target inclusive, or None when either screen
        is not in the graph or no path exists
    """
    if from_screen_id not in graph.screens or to_screen_id not in graph.screens:
        return None
    if from_screen_id == to_screen_id:
        return [from_screen_id]

    parents: Dict[str, str] = {}
    visited = {from_screen_id}
    queue = deque([from_screen_id])

    while queue:
        current = queue.popleft()
        for child in graph.screens[current].child_screen_ids:
            if child in visited or child not in graph.screens:
                continue
            visited.add(child)
            parents[child] = current
            if child == to_screen_id:
                return _unwind(parents, from_screen_id, to_screen_id)
            queue.append(child)

    return None


def _unwind(parents: Dict[str, str], start: str, end: str) -> List[str]:
    path = [end]
    while path[-1] != start:
        path.append(parents[path[-1]])
    path.reverse()
    return path
