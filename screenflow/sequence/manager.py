"""
Sequence Manager.

Maintains the linear order of a flow's screens: insertion, removal with
optional reconnection, and repositioning.
"""

from typing import List, Optional

import structlog

from ..config import NavigationConfig, get_settings
from ..errors import ContentValidationError, InvalidRequestError
from ..models import (
    InsertPosition,
    InsertScreenOptions,
    InsertScreenResult,
    NavigationPath,
    RemoveScreenResult,
    ReorderResult,
    ReorderScreenOptions,
    Screen,
    ScreenSequence,
    new_id,
)
from ..navigation.edges import connect, find_duplicate, load_graph
from ..store.base import FlowTransaction, ScreenStore
from .content import ContentValidator, validate_screen_dsl

logger = structlog.get_logger(__name__)


class SequenceManager:
    """
    Manages screen ordering within a flow.

    Orders are unique per flow and strictly increasing along the sequence,
    but need not be contiguous: removal leaves gaps.
    """

    def __init__(
        self,
        store: ScreenStore,
        config: Optional[NavigationConfig] = None,
        content_validator: Optional[ContentValidator] = None,
    ):
        self.store = store
        self.config = config or get_settings().navigation
        self.content_validator = content_validator or validate_screen_dsl

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_ordered_screens(self, flow_id: str) -> List[Screen]:
        """Get screens sorted by order."""
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            return await tx.list_screens()

    async def get_screen_sequence(self, flow_id: str) -> ScreenSequence:
        """Get the ordered sequence with count, first/last and order gaps."""
        async with self.store.transaction(flow_id) as tx:
            graph = await load_graph(tx)

        entries = list(graph.screens.values())
        gaps: List[int] = []
        if entries:
            used = {e.order for e in entries}
            gaps = [
                o for o in range(entries[0].order, entries[-1].order)
                if o not in used
            ]

        return ScreenSequence(flow_id=flow_id, entries=entries, gaps=gaps)

    # =========================================================================
    # Insert
    # =========================================================================

    async def insert_screen(
        self,
        flow_id: str,
        options: InsertScreenOptions,
    ) -> InsertScreenResult:
        """
        Insert a new screen.

        Relative positions (after/before) win over an absolute position.
        Screens at or after the target order shift by one before the new
        screen takes the freed order.

        Raises:
            ContentValidationError: If the content validator rejects the DSL
            InvalidRequestError: If the position is inconsistent or the flow is full
            ScreenNotFoundError: If a reference screen is not in the flow
        """
        problems = self.content_validator(options.screen_dsl)
        if problems:
            raise ContentValidationError("Screen content failed validation", problems)

        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            ordered = await tx.list_screens()

            if len(ordered) >= self.config.max_screens_per_flow:
                raise InvalidRequestError(
                    f"Flow already has the maximum of "
                    f"{self.config.max_screens_per_flow} screens"
                )

            target = await self._resolve_insert_order(tx, ordered, options)

            shifted = 0
            if any(s.order >= target for s in ordered):
                shifted = await tx.shift_orders(target, 1)

            screen = await tx.add_screen(
                Screen(
                    id=new_id(),
                    flow_id=flow_id,
                    order=target,
                    dsl=dict(options.screen_dsl),
                    name=options.name,
                )
            )

            navigation = None
            if options.navigation_from:
                navigation = await connect(
                    tx,
                    options.navigation_from,
                    screen.id,
                    default_trigger=self.config.default_trigger,
                )

            await tx.touch_flow()

        logger.info(
            "screen_inserted",
            flow_id=flow_id,
            screen_id=screen.id,
            order=target,
            shifted=shifted,
        )
        return InsertScreenResult(screen=screen, navigation=navigation, shifted=shifted)

    async def _resolve_insert_order(
        self,
        tx: FlowTransaction,
        ordered: List[Screen],
        options: InsertScreenOptions,
    ) -> int:
        after_id = options.after_screen_id
        before_id = options.before_screen_id

        if after_id and before_id:
            after = await tx.require_screen(after_id)
            before = await tx.require_screen(before_id)
            ids = [s.id for s in ordered]
            if ids.index(before.id) != ids.index(after.id) + 1:
                raise InvalidRequestError(
                    f"Screens {after_id} and {before_id} are not adjacent"
                )
            return after.order + 1

        if after_id:
            return (await tx.require_screen(after_id)).order + 1

        if before_id:
            return (await tx.require_screen(before_id)).order

        return self._order_for_position(ordered, options.position)

    def _order_for_position(
        self,
        ordered: List[Screen],
        position: Optional[InsertPosition],
    ) -> int:
        if not ordered:
            if isinstance(position, int) and position < 0:
                raise InvalidRequestError("position must not be negative")
            return 0

        append_order = ordered[-1].order + 1

        if position is None or position == "end":
            return append_order
        if position == "start":
            return ordered[0].order
        if position < 0:
            raise InvalidRequestError("position must not be negative")
        if position < len(ordered):
            return ordered[position].order
        return append_order

    # =========================================================================
    # Remove
    # =========================================================================

    async def remove_screen(
        self,
        flow_id: str,
        screen_id: str,
        update_navigation: bool = True,
    ) -> RemoveScreenResult:
        """
        Remove a screen and every edge touching it.

        With update_navigation, each predecessor edge is reconnected to each
        successor, carrying the predecessor edge's trigger, condition and
        label. Remaining screens keep their orders.
        """
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            await tx.require_screen(screen_id)

            edges = await tx.list_edges()
            touching = [
                e for e in edges
                if e.from_screen_id == screen_id or e.to_screen_id == screen_id
            ]
            predecessors = [
                e for e in touching
                if e.to_screen_id == screen_id and e.from_screen_id != screen_id
            ]
            successors = [
                e for e in touching
                if e.from_screen_id == screen_id and e.to_screen_id != screen_id
            ]

            removed = await tx.delete_edges(e.id for e in touching)
            await tx.delete_screen(screen_id)

            reconnected: List[NavigationPath] = []
            if update_navigation:
                remaining = [e for e in edges if e not in touching]
                for pred in predecessors:
                    for succ in successors:
                        if find_duplicate(
                            remaining,
                            pred.from_screen_id,
                            succ.to_screen_id,
                            pred.condition,
                            pred.label,
                        ):
                            continue
                        edge = await tx.add_edge(
                            NavigationPath(
                                id=new_id(),
                                flow_id=flow_id,
                                from_screen_id=pred.from_screen_id,
                                to_screen_id=succ.to_screen_id,
                                trigger=pred.trigger,
                                condition=pred.condition,
                                label=pred.label,
                            )
                        )
                        remaining.append(edge)
                        reconnected.append(edge)

            await tx.touch_flow()

        logger.info(
            "screen_removed",
            flow_id=flow_id,
            screen_id=screen_id,
            removed_edges=removed,
            reconnected=len(reconnected),
        )
        return RemoveScreenResult(
            screen_id=screen_id,
            removed_edge_count=removed,
            reconnected=reconnected,
        )

    # =========================================================================
    # Reorder
    # =========================================================================

    async def reorder_screen(
        self,
        flow_id: str,
        options: ReorderScreenOptions,
    ) -> ReorderResult:
        """
        Move a screen to a new order.

        Precedence: or_after_screen_id, then or_before_screen_id, then
        new_order. If the target order is taken, screens at or after it
        shift by one and the moved screen takes the freed slot.
        """
        async with self.store.transaction(flow_id) as tx:
            await tx.require_flow()
            screen = await tx.require_screen(options.screen_id)
            current = screen.order

            target = await self._resolve_reorder_target(tx, options, current)

            shifted = 0
            if target != current:
                ordered = await tx.list_screens()
                if any(s.order == target and s.id != screen.id for s in ordered):
                    shifted = await tx.shift_orders(
                        target, 1, exclude_screen_id=screen.id
                    )
                await tx.set_screen_order(screen.id, target)
                await tx.touch_flow()

        logger.info(
            "screen_reordered",
            flow_id=flow_id,
            screen_id=screen.id,
            previous_order=current,
            new_order=target,
            shifted=shifted,
        )
        return ReorderResult(
            screen_id=screen.id,
            previous_order=current,
            new_order=target,
            shifted=shifted,
        )

    async def _resolve_reorder_target(
        self,
        tx: FlowTransaction,
        options: ReorderScreenOptions,
        current: int,
    ) -> int:
        if options.or_after_screen_id:
            if options.or_after_screen_id == options.screen_id:
                return current
            ref = await tx.require_screen(options.or_after_screen_id)
            return ref.order + 1

        if options.or_before_screen_id:
            if options.or_before_screen_id == options.screen_id:
                return current
            ref = await tx.require_screen(options.or_before_screen_id)
            return ref.order

        if options.new_order is not None:
            if options.new_order < 0:
                raise InvalidRequestError("newOrder must not be negative")
            return options.new_order

        raise InvalidRequestError(
            "One of newOrder, orAfterScreenId or orBeforeScreenId is required"
        )
