"""
Flow Manager.

Flow container operations: create, read, list, delete, clone and stats.
"""

from typing import Dict, List, Optional

import structlog

from ..config import NavigationConfig, get_settings
from ..errors import FlowNotFoundError, InvalidRequestError
from ..models import Flow, FlowStats, NavigationPath, Screen, new_id, utc_now
from ..navigation.edges import load_graph
from ..navigation.validator import NavigationValidator
from ..store.base import ScreenStore

logger = structlog.get_logger(__name__)


class FlowManager:
    """
    Manages flow lifecycle.

    Features:
    - Flow CRUD operations
    - Cloning with remapped screen and path ids
    - Flow statistics
    """

    def __init__(self, store: ScreenStore, config: Optional[NavigationConfig] = None):
        self.store = store
        self.config = config or get_settings().navigation
        self.validator = NavigationValidator(self.config)

    async def create_flow(self, name: str, description: str = "") -> Flow:
        """Create an empty flow."""
        now = utc_now()
        flow = await self.store.create_flow(
            Flow(
                id=new_id(),
                name=name,
                description=description or "",
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("flow_created", flow_id=flow.id, name=name)
        return flow

    async def get_flow(self, flow_id: str) -> Flow:
        """Get a flow by ID."""
        async with self.store.transaction(flow_id) as tx:
            return await tx.require_flow()

    async def list_flows(self) -> List[Flow]:
        """List flows, most recently updated first."""
        return await self.store.list_flows()

    async def update_flow(
        self,
        flow_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Flow:
        """
        Rename a flow or change its description.

        Raises:
            FlowNotFoundError: If the flow does not exist
            InvalidRequestError: If name is empty
        """
        if name is not None and not name.strip():
            raise InvalidRequestError("name must not be empty")

        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.update_flow(name=name, description=description)
            flow = await tx.require_flow()

        logger.info("flow_updated", flow_id=flow_id)
        return flow

    async def delete_flow(self, flow_id: str) -> None:
        """Delete a flow with its screens and navigation paths."""
        if not await self.store.delete_flow(flow_id):
            raise FlowNotFoundError(flow_id)
        logger.info("flow_deleted", flow_id=flow_id)

    async def clone_flow(
        self,
        flow_id: str,
        new_name: str,
        new_description: Optional[str] = None,
        include_screens: bool = True,
        reset_navigation: bool = False,
    ) -> Flow:
        """
        Clone a flow.

        Screens keep their orders under new ids. Navigation paths are copied
        in their original creation order unless reset_navigation is set.
        """
        async with self.store.transaction(flow_id) as tx:
            source = await tx.require_flow()
            screens = await tx.list_screens() if include_screens else []
            edges = await tx.list_edges() if include_screens else []

        clone = await self.create_flow(
            new_name,
            source.description if new_description is None else new_description,
        )

        try:
            async with self.store.transaction(clone.id) as tx:
                id_map: Dict[str, str] = {}
                for screen in screens:
                    copied = await tx.add_screen(
                        Screen(
                            id=new_id(),
                            flow_id=clone.id,
                            order=screen.order,
                            dsl=dict(screen.dsl),
                            name=screen.name,
                        )
                    )
                    id_map[screen.id] = copied.id

                if not reset_navigation:
                    for edge in edges:
                        if edge.from_screen_id not in id_map or edge.to_screen_id not in id_map:
                            continue
                        await tx.add_edge(
                            NavigationPath(
                                id=new_id(),
                                flow_id=clone.id,
                                from_screen_id=id_map[edge.from_screen_id],
                                to_screen_id=id_map[edge.to_screen_id],
                                trigger=edge.trigger,
                                condition=edge.condition,
                                label=edge.label,
                            )
                        )
        except Exception:
            await self.store.delete_flow(clone.id)
            raise

        logger.info(
            "flow_cloned",
            flow_id=flow_id,
            clone_id=clone.id,
            screens=len(screens),
            reset_navigation=reset_navigation,
        )
        return clone

    async def get_flow_stats(self, flow_id: str) -> FlowStats:
        """Summary statistics for a flow."""
        async with self.store.transaction(flow_id) as tx:
            flow = await tx.require_flow()
            graph = await load_graph(tx)

        result = self.validator.validate(graph)
        branch_points = [
            e for e in graph.screens.values() if len(e.child_screen_ids) > 1
        ]

        return FlowStats(
            flow_id=flow_id,
            screen_count=len(graph.screens),
            edge_count=len(graph.navigation_paths),
            branch_point_count=len(branch_points),
            entry_screen_id=graph.entry_screen_id,
            valid=result.valid,
            last_updated=flow.updated_at,
        )
