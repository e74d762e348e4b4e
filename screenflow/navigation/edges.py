"""
Edge helpers shared by every operation that writes navigation paths.
"""

from typing import List, Optional

from ..errors import DuplicateBranchError
from ..models import NavigationGraph, NavigationPath, new_id, normalize
from ..store.base import FlowTransaction
from .graph import build_navigation_graph


async def load_graph(tx: FlowTransaction) -> NavigationGraph:
    """Require the flow and build its graph inside an open transaction."""
    await tx.require_flow()
    screens = await tx.list_screens()
    edges = await tx.list_edges()
    return build_navigation_graph(tx.flow_id, screens, edges)


def outgoing(edges: List[NavigationPath], screen_id: str) -> List[NavigationPath]:
    return [e for e in edges if e.from_screen_id == screen_id]


def find_duplicate(
    edges: List[NavigationPath],
    from_screen_id: str,
    to_screen_id: str,
    condition: Optional[str],
    label: Optional[str],
    ignore_edge_id: Optional[str] = None,
) -> Optional[NavigationPath]:
    """Find a sibling edge with the same target, condition and label."""
    key = (to_screen_id, condition, label)
    for edge in outgoing(edges, from_screen_id):
        if edge.id != ignore_edge_id and edge.key == key:
            return edge
    return None


async def connect(
    tx: FlowTransaction,
    from_screen_id: str,
    to_screen_id: str,
    trigger: Optional[str] = None,
    condition: Optional[str] = None,
    label: Optional[str] = None,
    default_trigger: Optional[str] = None,
) -> NavigationPath:
    """
    Create an edge between two screens of the transaction's flow.

    Raises:
        ScreenNotFoundError: If either screen is not in the flow
        DuplicateBranchError: If an identical sibling edge exists
    """
    await tx.require_screen(from_screen_id)
    await tx.require_screen(to_screen_id)

    condition = normalize(condition)
    label = normalize(label)

    existing = find_duplicate(
        await tx.list_edges(), from_screen_id, to_screen_id, condition, label
    )
    if existing:
        raise DuplicateBranchError(
            f"Branch from {from_screen_id} to {to_screen_id} with the same "
            f"condition and label already exists"
        )

    return await tx.add_edge(
        NavigationPath(
            id=new_id(),
            flow_id=tx.flow_id,
            from_screen_id=from_screen_id,
            to_screen_id=to_screen_id,
            trigger=normalize(trigger) or default_trigger,
            condition=condition,
            label=label,
        )
    )
