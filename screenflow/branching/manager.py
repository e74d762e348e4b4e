"""
Branch Manager.

CRUD over individual navigation edges and branch-aggregate queries.
"""

from typing import List, Optional

import structlog

from ..config import NavigationConfig, get_settings
from ..errors import AmbiguousBranchError, BranchNotFoundError, DuplicateBranchError
from ..models import (
    BranchConfig,
    BranchFilter,
    BranchMetadata,
    BranchPatch,
    BranchPoint,
    NavigationPath,
    normalize,
)
from ..navigation.edges import connect, find_duplicate, outgoing
from ..store.base import ScreenStore

logger = structlog.get_logger(__name__)


def _as_metadata(paths: List[NavigationPath]) -> List[BranchMetadata]:
    return [BranchMetadata.from_path(p, i) for i, p in enumerate(paths)]


def _apply(current: Optional[str], change: Optional[str]) -> Optional[str]:
    """None keeps the current value; empty string clears it."""
    if change is None:
        return current
    return normalize(change)


class BranchManager:
    """
    Manages the branches leaving and entering screens.

    Features:
    - Branch lookup by source or target
    - Create, update and filtered delete
    - Branch counts and branch-point discovery
    """

    def __init__(self, store: ScreenStore, config: Optional[NavigationConfig] = None):
        self.store = store
        self.config = config or get_settings().navigation

    async def get_branches_from_screen(
        self, flow_id: str, screen_id: str
    ) -> List[BranchMetadata]:
        """Get outgoing branches of a screen in creation order."""
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.require_screen(screen_id)
            edges = await tx.list_edges()
        return _as_metadata(outgoing(edges, screen_id))

    async def get_branches_to_screen(
        self, flow_id: str, screen_id: str
    ) -> List[BranchMetadata]:
        """Get incoming branches of a screen in creation order."""
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.require_screen(screen_id)
            edges = await tx.list_edges()
        return _as_metadata([e for e in edges if e.to_screen_id == screen_id])

    async def create_branch(
        self,
        flow_id: str,
        from_screen_id: str,
        config: BranchConfig,
    ) -> BranchMetadata:
        """
        Create a branch from a screen.

        Raises:
            ScreenNotFoundError: If either endpoint is not in the flow
            DuplicateBranchError: If the same target, condition and label exist
        """
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            path = await connect(
                tx,
                from_screen_id,
                config.to_screen_id,
                trigger=config.trigger,
                condition=config.condition,
                label=config.label,
                default_trigger=self.config.default_trigger,
            )
            siblings = outgoing(await tx.list_edges(), from_screen_id)
            await tx.touch_flow()

        logger.info(
            "branch_created",
            flow_id=flow_id,
            from_screen_id=from_screen_id,
            to_screen_id=config.to_screen_id,
            condition=path.condition,
        )
        return BranchMetadata.from_path(path, len(siblings) - 1)

    async def update_branch(
        self,
        flow_id: str,
        from_screen_id: str,
        to_screen_id: str,
        patch: BranchPatch,
        match_condition: Optional[str] = None,
        match_label: Optional[str] = None,
    ) -> BranchMetadata:
        """
        Update label, condition or trigger of one branch.

        Endpoints never change. When several branches share the endpoints,
        match_condition and match_label must single one out.

        Raises:
            BranchNotFoundError: If no branch matches
            AmbiguousBranchError: If more than one branch matches
            DuplicateBranchError: If the patch collides with a sibling
        """
        match_condition = normalize(match_condition)
        match_label = normalize(match_label)

        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.require_screen(from_screen_id)

            edges = await tx.list_edges()
            siblings = outgoing(edges, from_screen_id)
            candidates = [
                e for e in siblings
                if e.to_screen_id == to_screen_id
                and (match_condition is None or e.condition == match_condition)
                and (match_label is None or e.label == match_label)
            ]

            if not candidates:
                raise BranchNotFoundError(
                    f"No branch from {from_screen_id} to {to_screen_id} matches"
                )
            if len(candidates) > 1:
                raise AmbiguousBranchError(
                    f"{len(candidates)} branches from {from_screen_id} to "
                    f"{to_screen_id}; pass matchCondition or matchLabel"
                )

            edge = candidates[0]
            edge.trigger = _apply(edge.trigger, patch.trigger)
            edge.condition = _apply(edge.condition, patch.condition)
            edge.label = _apply(edge.label, patch.label)

            if find_duplicate(
                edges,
                from_screen_id,
                to_screen_id,
                edge.condition,
                edge.label,
                ignore_edge_id=edge.id,
            ):
                raise DuplicateBranchError(
                    f"Another branch from {from_screen_id} to {to_screen_id} "
                    f"already has that condition and label"
                )

            if not patch.is_empty():
                await tx.update_edge(edge.id, edge.trigger, edge.condition, edge.label)
                await tx.touch_flow()

        logger.info(
            "branch_updated",
            flow_id=flow_id,
            from_screen_id=from_screen_id,
            to_screen_id=to_screen_id,
        )
        return BranchMetadata.from_path(edge, siblings.index(edge))

    async def delete_branch(
        self,
        flow_id: str,
        from_screen_id: str,
        branch_filter: BranchFilter,
    ) -> int:
        """
        Delete every branch from a screen that matches the filter.

        Returns:
            Number of branches deleted

        Raises:
            BranchNotFoundError: If nothing matches
        """
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.require_screen(from_screen_id)

            matches = [
                e for e in outgoing(await tx.list_edges(), from_screen_id)
                if branch_filter.matches(e)
            ]
            if not matches:
                raise BranchNotFoundError(
                    f"No branch from {from_screen_id} matches the filter"
                )

            deleted = await tx.delete_edges(e.id for e in matches)
            await tx.touch_flow()

        logger.info(
            "branches_deleted",
            flow_id=flow_id,
            from_screen_id=from_screen_id,
            count=deleted,
        )
        return deleted

    async def get_branch_count(self, flow_id: str, screen_id: str) -> int:
        """Number of outgoing branches of a screen."""
        return len(await self.get_branches_from_screen(flow_id, screen_id))

    async def has_branches(self, flow_id: str, screen_id: str) -> bool:
        """True when a screen has more than one outgoing branch."""
        return await self.get_branch_count(flow_id, screen_id) > 1

    async def find_branch_points(self, flow_id: str) -> List[BranchPoint]:
        """All screens with more than one outgoing branch, by screen order."""
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            screens = await tx.list_screens()
            edges = await tx.list_edges()

        points = []
        for screen in screens:
            branches = outgoing(edges, screen.id)
            if len(branches) > 1:
                points.append(
                    BranchPoint(
                        screen_id=screen.id,
                        order=screen.order,
                        branches=_as_metadata(branches),
                    )
                )
        return points
