"""
Graph Builder.

Builds the navigation graph snapshot of a flow from its stored screens and
edges. Nothing is cached; callers rebuild for every read.
"""

from typing import Dict, List, Optional, Sequence, Set

from ..models import GraphEntry, NavigationGraph, NavigationPath, Screen


def find_entry_screen(
    screens: Sequence[Screen],
    edges: Sequence[NavigationPath],
) -> Optional[str]:
    """
    Find the entry screen.

    The entry is the lowest-order screen with no incoming edge from another
    screen of the flow. Returns None for an empty flow or when every screen
    has a parent.
    """
    screen_ids = {s.id for s in screens}
    has_parent: Set[str] = {
        e.to_screen_id for e in edges if e.from_screen_id in screen_ids
    }

    roots = [s for s in screens if s.id not in has_parent]
    if not roots:
        return None
    return min(roots, key=lambda s: (s.order, s.created_at)).id


def build_navigation_graph(
    flow_id: str,
    screens: Sequence[Screen],
    edges: Sequence[NavigationPath],
) -> NavigationGraph:
    """
    Build a navigation graph.

    Args:
        flow_id: Flow the screens belong to
        screens: Screens of the flow
        edges: Edges of the flow in creation order

    Returns:
        NavigationGraph with screens keyed in order
    """
    ordered = sorted(screens, key=lambda s: (s.order, s.created_at))
    entries: Dict[str, GraphEntry] = {
        s.id: GraphEntry(screen_id=s.id, order=s.order) for s in ordered
    }

    # Keep edges touching the flow, including dangling ones for the validator
    paths: List[NavigationPath] = [
        e for e in sorted(edges, key=lambda e: e.seq)
        if e.from_screen_id in entries or e.to_screen_id in entries
    ]

    for path in paths:
        source = entries.get(path.from_screen_id)
        if source:
            source.child_screen_ids.append(path.to_screen_id)
            if path.to_screen_id not in source.navigation_targets:
                source.navigation_targets.append(path.to_screen_id)

        target = entries.get(path.to_screen_id)
        if target and source and path.from_screen_id not in target.parent_screen_ids:
            target.parent_screen_ids.append(path.from_screen_id)

    return NavigationGraph(
        flow_id=flow_id,
        entry_screen_id=find_entry_screen(ordered, paths),
        screens=entries,
        navigation_paths=paths,
    )
