"""
Flow Graph Engine.

Single entry point wiring the flow, navigation, branching and sequence
components to one screen store.
"""

from typing import List, Optional

from .branching import BranchManager, BranchMerger
from .config import Settings, get_settings
from .flows import FlowManager
from .models import (
    BranchConfig,
    BranchFilter,
    BranchMetadata,
    BranchPatch,
    BranchPoint,
    BranchRef,
    MergeResult,
    NavigationGraph,
    NavigationPath,
    ValidationResult,
)
from .navigation import NavigationService
from .sequence import ContentValidator, SequenceManager
from .store import ScreenStore


class FlowGraphEngine:
    """
    Stateless navigation engine over a screen store.

    Usage:
        engine = FlowGraphEngine(InMemoryScreenStore())
        flow = await engine.flows.create_flow("Onboarding")
        result = await engine.sequence.insert_screen(flow.id, options)
    """

    def __init__(
        self,
        store: ScreenStore,
        settings: Optional[Settings] = None,
        content_validator: Optional[ContentValidator] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        config = self.settings.navigation

        self.flows = FlowManager(store, config)
        self.navigation = NavigationService(store, config)
        self.branches = BranchManager(store, config)
        self.merger = BranchMerger(store, config)
        self.sequence = SequenceManager(store, config, content_validator)

    # Navigation

    async def build_navigation_graph(self, flow_id: str) -> NavigationGraph:
        return await self.navigation.build_navigation_graph(flow_id)

    async def validate_navigation_graph(self, flow_id: str) -> ValidationResult:
        return await self.navigation.validate_navigation_graph(flow_id)

    async def get_navigation_path(
        self, flow_id: str, from_screen_id: str, to_screen_id: str
    ) -> Optional[List[str]]:
        return await self.navigation.get_navigation_path(
            flow_id, from_screen_id, to_screen_id
        )

    async def add_navigation_path(
        self,
        flow_id: str,
        from_screen_id: str,
        to_screen_id: str,
        trigger: Optional[str] = None,
        condition: Optional[str] = None,
    ) -> NavigationPath:
        return await self.navigation.add_navigation_path(
            flow_id, from_screen_id, to_screen_id, trigger, condition
        )

    async def remove_navigation_path(self, flow_id: str, from_screen_id: str) -> int:
        return await self.navigation.remove_navigation_path(flow_id, from_screen_id)

    # Branches

    async def create_branch(
        self, flow_id: str, from_screen_id: str, config: BranchConfig
    ) -> BranchMetadata:
        return await self.branches.create_branch(flow_id, from_screen_id, config)

    async def update_branch(
        self,
        flow_id: str,
        from_screen_id: str,
        to_screen_id: str,
        patch: BranchPatch,
        match_condition: Optional[str] = None,
        match_label: Optional[str] = None,
    ) -> BranchMetadata:
        return await self.branches.update_branch(
            flow_id, from_screen_id, to_screen_id, patch, match_condition, match_label
        )

    async def delete_branch(
        self, flow_id: str, from_screen_id: str, branch_filter: BranchFilter
    ) -> int:
        return await self.branches.delete_branch(flow_id, from_screen_id, branch_filter)

    async def find_branch_points(self, flow_id: str) -> List[BranchPoint]:
        return await self.branches.find_branch_points(flow_id)

    async def merge_branches(
        self,
        flow_id: str,
        from_screen_id: str,
        branch_to_keep: BranchRef,
        branches_to_merge: List[BranchRef],
        keep_label: Optional[str] = None,
    ) -> MergeResult:
        return await self.merger.merge_branches(
            flow_id, from_screen_id, branch_to_keep, branches_to_merge, keep_label
        )
