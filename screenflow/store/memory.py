"""
In-memory screen store.

Each flow has its own asyncio lock. A transaction works on a private copy
of the flow's state and swaps it in only when the block exits cleanly.
"""

import copy
import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import AsyncIterator, Dict, Iterable, List, Optional

import structlog

from ..models import Flow, NavigationPath, Screen, utc_now
from .base import FlowLocks, FlowTransaction, ScreenStore

logger = structlog.get_logger(__name__)


@dataclass
class _FlowState:
    """Everything stored for one flow."""

    flow: Optional[Flow]
    screens: Dict[str, Screen] = field(default_factory=dict)
    edges: List[NavigationPath] = field(default_factory=list)


class InMemoryFlowTransaction(FlowTransaction):
    """Transaction over a private copy of one flow's state."""

    def __init__(self, flow_id: str, state: _FlowState, sequence: "itertools.count[int]"):
        super().__init__(flow_id)
        self._state = state
        self._sequence = sequence

    async def get_flow(self) -> Optional[Flow]:
        return replace(self._state.flow) if self._state.flow else None

    async def touch_flow(self) -> None:
        if self._state.flow:
            self._state.flow.updated_at = utc_now()

    async def update_flow(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        flow = self._state.flow
        if not flow:
            return
        if name is not None:
            flow.name = name
        if description is not None:
            flow.description = description
        flow.updated_at = utc_now()

    async def list_screens(self) -> List[Screen]:
        screens = sorted(
            self._state.screens.values(),
            key=lambda s: (s.order, s.created_at),
        )
        return [replace(s) for s in screens]

    async def get_screen(self, screen_id: str) -> Optional[Screen]:
        screen = self._state.screens.get(screen_id)
        return replace(screen) if screen else None

    async def add_screen(self, screen: Screen) -> Screen:
        self._state.screens[screen.id] = replace(screen, flow_id=self.flow_id)
        return replace(self._state.screens[screen.id])

    async def delete_screen(self, screen_id: str) -> bool:
        return self._state.screens.pop(screen_id, None) is not None

    async def set_screen_order(self, screen_id: str, order: int) -> None:
        screen = self._state.screens[screen_id]
        screen.order = order
        screen.updated_at = utc_now()

    async def shift_orders(
        self,
        from_order: int,
        delta: int = 1,
        exclude_screen_id: Optional[str] = None,
    ) -> int:
        shifted = 0
        for screen in self._state.screens.values():
            if screen.id == exclude_screen_id or screen.order < from_order:
                continue
            screen.order += delta
            shifted += 1
        return shifted

    async def list_edges(self) -> List[NavigationPath]:
        return [replace(e) for e in self._state.edges]

    async def add_edge(self, edge: NavigationPath) -> NavigationPath:
        stored = replace(edge, flow_id=self.flow_id, seq=next(self._sequence))
        self._state.edges.append(stored)
        return replace(stored)

    async def update_edge(
        self,
        edge_id: str,
        trigger: Optional[str],
        condition: Optional[str],
        label: Optional[str],
    ) -> None:
        for edge in self._state.edges:
            if edge.id == edge_id:
                edge.trigger = trigger
                edge.condition = condition
                edge.label = label
                return

    async def delete_edges(self, edge_ids: Iterable[str]) -> int:
        doomed = set(edge_ids)
        before = len(self._state.edges)
        self._state.edges = [e for e in self._state.edges if e.id not in doomed]
        return before - len(self._state.edges)


class InMemoryScreenStore(ScreenStore):
    """
    Process-local screen store.

    Suitable for tests and single-process deployments.
    """

    def __init__(self):
        self._states: Dict[str, _FlowState] = {}
        self.locks = FlowLocks()
        self._sequence = itertools.count(1)

    @asynccontextmanager
    async def transaction(self, flow_id: str) -> AsyncIterator[InMemoryFlowTransaction]:
        async with self.locks.hold(flow_id):
            current = self._states.get(flow_id)
            working = (
                copy.deepcopy(current) if current else _FlowState(flow=None)
            )

            yield InMemoryFlowTransaction(flow_id, working, self._sequence)

            # Only reached when the block exits without raising
            if working.flow is not None:
                self._states[flow_id] = working

    async def create_flow(self, flow: Flow) -> Flow:
        async with self.locks.hold(flow.id):
            self._states[flow.id] = _FlowState(flow=replace(flow))
        logger.debug("flow_stored", flow_id=flow.id)
        return flow

    async def list_flows(self) -> List[Flow]:
        flows = [replace(s.flow) for s in self._states.values() if s.flow]
        flows.sort(key=lambda f: f.updated_at, reverse=True)
        return flows

    async def delete_flow(self, flow_id: str) -> bool:
        async with self.locks.hold(flow_id):
            removed = self._states.pop(flow_id, None)
        return removed is not None
