"""
Navigation Service.

Graph reads (build, validate, path) and direct navigation path writes.
"""

from typing import List, Optional

import structlog

from ..config import NavigationConfig, get_settings
from ..models import NavigationGraph, NavigationPath, ValidationResult
from ..store.base import ScreenStore
from .edges import connect, load_graph, outgoing
from .pathfinder import find_path
from .validator import NavigationValidator

logger = structlog.get_logger(__name__)


class NavigationService:
    """
    Reads and writes a flow's navigation graph.

    Every call rebuilds the graph from the store; nothing is kept between
    calls.
    """

    def __init__(self, store: ScreenStore, config: Optional[NavigationConfig] = None):
        self.store = store
        self.config = config or get_settings().navigation
        self.validator = NavigationValidator(self.config)

    async def build_navigation_graph(self, flow_id: str) -> NavigationGraph:
        """Build the navigation graph of a flow."""
        async with self.store.transaction(flow_id) as tx:
            return await load_graph(tx)

    async def validate_navigation_graph(self, flow_id: str) -> ValidationResult:
        """Validate the navigation graph of a flow."""
        graph = await self.build_navigation_graph(flow_id)
        return self.validator.validate(graph)

    async def get_navigation_path(
        self,
        flow_id: str,
        from_screen_id: str,
        to_screen_id: str,
    ) -> Optional[List[str]]:
        """
        Get the shortest path between two screens.

        Returns None when no path exists or either screen is unknown.
        """
        graph = await self.build_navigation_graph(flow_id)
        return find_path(graph, from_screen_id, to_screen_id)

    async def add_navigation_path(
        self,
        flow_id: str,
        from_screen_id: str,
        to_screen_id: str,
        trigger: Optional[str] = None,
        condition: Optional[str] = None,
    ) -> NavigationPath:
        """Add a navigation path between two screens."""
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            path = await connect(
                tx,
                from_screen_id,
                to_screen_id,
                trigger=trigger,
                condition=condition,
                default_trigger=self.config.default_trigger,
            )
            await tx.touch_flow()

        logger.info(
            "navigation_path_added",
            flow_id=flow_id,
            from_screen_id=from_screen_id,
            to_screen_id=to_screen_id,
        )
        return path

    async def remove_navigation_path(self, flow_id: str, from_screen_id: str) -> int:
        """
        Remove every navigation path leaving a screen.

        Returns:
            Number of paths removed
        """
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.require_screen(from_screen_id)
            edges = outgoing(await tx.list_edges(), from_screen_id)
            removed = await tx.delete_edges(e.id for e in edges)
            await tx.touch_flow()

        logger.info(
            "navigation_paths_removed",
            flow_id=flow_id,
            from_screen_id=from_screen_id,
            count=removed,
        )
        return removed

    async def get_outgoing_navigation(self, flow_id: str, screen_id: str) -> List[str]:
        """Distinct target screen ids of a screen's outgoing paths."""
        async with self.store.transaction(flow_id) as tx:
            graph = await load_graph(tx)
            await tx.require_screen(screen_id)
        return list(graph.screens[screen_id].navigation_targets)

    async def get_incoming_navigation(self, flow_id: str, screen_id: str) -> List[str]:
        """Distinct source screen ids of paths into a screen."""
        async with self.store.transaction(flow_id) as tx:
            graph = await load_graph(tx)
            await tx.require_screen(screen_id)
        return list(graph.screens[screen_id].parent_screen_ids)
