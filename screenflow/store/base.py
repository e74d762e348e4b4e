"""
Screen Store Contract.

The engine keeps no graph state between calls. Every operation opens one
transaction scoped to a flow, reads what it needs, writes through, and
lets the store commit (or discard) the whole unit.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional

from ..errors import FlowNotFoundError, ScreenNotFoundError
from ..models import Flow, NavigationPath, Screen


class FlowTransaction(ABC):
    """
    Unit of work against one flow's screens and edges.

    All writes become visible together when the owning context exits
    normally; an exception discards them.
    """

    def __init__(self, flow_id: str):
        self.flow_id = flow_id

    # Flow

    @abstractmethod
    async def get_flow(self) -> Optional[Flow]:
        """Get the flow this transaction is scoped to."""

    @abstractmethod
    async def touch_flow(self) -> None:
        """Bump the flow's updated_at."""

    @abstractmethod
    async def update_flow(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        """Change name and/or description; None leaves a field as is."""

    async def require_flow(self) -> Flow:
        flow = await self.get_flow()
        if not flow:
            raise FlowNotFoundError(self.flow_id)
        return flow

    # Screens

    @abstractmethod
    async def list_screens(self) -> List[Screen]:
        """List screens of the flow sorted by order."""

    @abstractmethod
    async def get_screen(self, screen_id: str) -> Optional[Screen]:
        """Get a screen, or None if it does not belong to this flow."""

    async def require_screen(self, screen_id: str) -> Screen:
        screen = await self.get_screen(screen_id)
        if not screen:
            raise ScreenNotFoundError(screen_id, self.flow_id)
        return screen

    @abstractmethod
    async def add_screen(self, screen: Screen) -> Screen:
        """Insert a screen. Its order must already be free."""

    @abstractmethod
    async def delete_screen(self, screen_id: str) -> bool:
        """Delete a screen row. Edges are deleted separately."""

    @abstractmethod
    async def set_screen_order(self, screen_id: str, order: int) -> None:
        """Set one screen's order."""

    @abstractmethod
    async def shift_orders(
        self,
        from_order: int,
        delta: int = 1,
        exclude_screen_id: Optional[str] = None,
    ) -> int:
        """
        Add delta to the order of every screen with order >= from_order.

        Returns:
            Number of screens shifted
        """

    # Edges

    @abstractmethod
    async def list_edges(self) -> List[NavigationPath]:
        """List the flow's edges in creation order."""

    @abstractmethod
    async def add_edge(self, edge: NavigationPath) -> NavigationPath:
        """Append an edge and assign its creation sequence."""

    @abstractmethod
    async def update_edge(
        self,
        edge_id: str,
        trigger: Optional[str],
        condition: Optional[str],
        label: Optional[str],
    ) -> None:
        """Replace an edge's trigger, condition and label."""

    @abstractmethod
    async def delete_edges(self, edge_ids: Iterable[str]) -> int:
        """Delete edges by id. Returns number deleted."""


class FlowLocks:
    """
    Per-flow asyncio locks.

    A lock exists only while some task holds or waits for it, so lookups
    of unknown flow ids leave nothing behind.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, flow_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(flow_id, asyncio.Lock())
        self._users[flow_id] = self._users.get(flow_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[flow_id] -= 1
            if not self._users[flow_id]:
                del self._users[flow_id]
                del self._locks[flow_id]


class ScreenStore(ABC):
    """Durable keyed storage of flows, screens and navigation edges."""

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open pools)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    def transaction(self, flow_id: str) -> AbstractAsyncContextManager:
        """
        Open an atomic unit of work scoped to one flow.

        Usage:
            async with store.transaction(flow_id) as tx:
                screens = await tx.list_screens()
        """

    @abstractmethod
    async def create_flow(self, flow: Flow) -> Flow:
        """Persist a new flow."""

    @abstractmethod
    async def list_flows(self) -> List[Flow]:
        """List flows, most recently updated first."""

    @abstractmethod
    async def delete_flow(self, flow_id: str) -> bool:
        """Delete a flow with its screens and edges."""
