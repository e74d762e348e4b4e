"""
Branch Merger.

Collapses several outgoing branches of a screen into one kept branch.
"""

from typing import List, Optional, Set

import structlog

from ..config import NavigationConfig, get_settings
from ..errors import InvalidRequestError
from ..models import (
    BranchMetadata,
    BranchRef,
    MergeResult,
    NavigationPath,
    new_id,
    normalize,
)
from ..navigation.edges import outgoing
from ..store.base import ScreenStore

logger = structlog.get_logger(__name__)


class BranchMerger:
    """
    Merges branches that lead to equivalent content.

    Matching is best effort: entries with no matching branch are reported
    back, matched ones are removed. Target screens are never deleted, even
    when they become unreachable.
    """

    def __init__(self, store: ScreenStore, config: Optional[NavigationConfig] = None):
        self.store = store
        self.config = config or get_settings().navigation

    async def merge_branches(
        self,
        flow_id: str,
        from_screen_id: str,
        branch_to_keep: BranchRef,
        branches_to_merge: List[BranchRef],
        keep_label: Optional[str] = None,
    ) -> MergeResult:
        """
        Merge branches of a screen into one.

        Args:
            flow_id: Flow ID
            from_screen_id: Screen whose branches are merged
            branch_to_keep: Target and condition of the surviving branch
            branches_to_merge: Branches to remove, by target and condition
            keep_label: Label for the surviving branch

        Returns:
            MergeResult describing the kept branch and matched entries
        """
        if not branches_to_merge:
            raise InvalidRequestError("branchesToMerge must not be empty")

        keep_label = normalize(keep_label)

        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.require_screen(from_screen_id)
            await tx.require_screen(branch_to_keep.to_screen_id)

            siblings = outgoing(await tx.list_edges(), from_screen_id)
            survivor = self._pick_survivor(siblings, branch_to_keep, keep_label)

            doomed: Set[str] = set()
            merged: List[BranchRef] = []
            unmatched: List[BranchRef] = []

            for ref in branches_to_merge:
                matches = [e for e in siblings if ref.matches(e)]
                if not matches:
                    unmatched.append(ref)
                    continue
                merged.append(ref)
                doomed.update(
                    e.id for e in matches if survivor is None or e.id != survivor.id
                )

            removed = await tx.delete_edges(doomed)

            kept_created = survivor is None
            if survivor is None:
                survivor = await tx.add_edge(
                    NavigationPath(
                        id=new_id(),
                        flow_id=flow_id,
                        from_screen_id=from_screen_id,
                        to_screen_id=branch_to_keep.to_screen_id,
                        trigger=self.config.default_trigger,
                        condition=branch_to_keep.condition,
                        label=keep_label,
                    )
                )
            elif keep_label is not None and survivor.label != keep_label:
                survivor.label = keep_label
                await tx.update_edge(
                    survivor.id, survivor.trigger, survivor.condition, survivor.label
                )

            remaining = outgoing(await tx.list_edges(), from_screen_id)
            await tx.touch_flow()

        order = next(i for i, e in enumerate(remaining) if e.id == survivor.id)

        logger.info(
            "branches_merged",
            flow_id=flow_id,
            from_screen_id=from_screen_id,
            kept_to=branch_to_keep.to_screen_id,
            merged=len(merged),
            unmatched=len(unmatched),
            removed=removed,
        )

        return MergeResult(
            from_screen_id=from_screen_id,
            kept=BranchMetadata.from_path(survivor, order),
            kept_created=kept_created,
            merged=merged,
            unmatched=unmatched,
            removed_edge_count=removed,
        )

    def _pick_survivor(
        self,
        siblings: List[NavigationPath],
        keep: BranchRef,
        keep_label: Optional[str],
    ) -> Optional[NavigationPath]:
        """Existing branch to keep: exact label match first, else earliest."""
        candidates = [e for e in siblings if keep.matches(e)]
        if not candidates:
            return None
        for edge in candidates:
            if edge.label == keep_label:
                return edge
        return candidates[0]
