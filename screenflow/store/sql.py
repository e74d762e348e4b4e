"""
SQL screen store.

SQLAlchemy async ORM backend. One session transaction per engine
operation, serialized per flow by an in-process lock. The flow row is
also locked where the dialect supports SELECT ... FOR UPDATE; SQLite
transactions start with BEGIN IMMEDIATE instead.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional

import structlog
from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    delete,
    select,
    event,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..errors import StoreError
from ..models import Flow, NavigationPath, Screen, utc_now
from .base import FlowLocks, FlowTransaction, ScreenStore

logger = structlog.get_logger(__name__)


# =============================================================================
# Tables
# =============================================================================


class Base(DeclarativeBase):
    """Base class for screen store tables."""

    pass


class FlowRow(Base):
    __tablename__ = "flows"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ScreenRow(Base):
    __tablename__ = "screens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    flow_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("flows.id", ondelete="CASCADE"), nullable=False
    )
    # No unique constraint: shifts may pass through transient duplicates
    order: Mapped[int] = mapped_column("screen_order", Integer, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    dsl: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_screens_flow_order", "flow_id", "screen_order"),)


class NavigationPathRow(Base):
    __tablename__ = "navigation_paths"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    flow_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("flows.id", ondelete="CASCADE"), nullable=False
    )
    from_screen_id: Mapped[str] = mapped_column(String(36), nullable=False)
    to_screen_id: Mapped[str] = mapped_column(String(36), nullable=False)
    trigger: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    condition: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_navigation_paths_flow", "flow_id"),
        Index("ix_navigation_paths_from", "from_screen_id"),
    )


def _flow_from_row(row: FlowRow) -> Flow:
    return Flow(
        id=row.id,
        name=row.name,
        description=row.description or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _screen_from_row(row: ScreenRow) -> Screen:
    return Screen(
        id=row.id,
        flow_id=row.flow_id,
        order=row.order,
        dsl=dict(row.dsl or {}),
        name=row.name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _edge_from_row(row: NavigationPathRow) -> NavigationPath:
    return NavigationPath(
        id=row.id,
        flow_id=row.flow_id,
        from_screen_id=row.from_screen_id,
        to_screen_id=row.to_screen_id,
        trigger=row.trigger,
        condition=row.condition,
        label=row.label,
        seq=row.seq,
    )


# =============================================================================
# Transaction
# =============================================================================


class SqlFlowTransaction(FlowTransaction):
    """Flow-scoped operations over an open session transaction."""

    def __init__(self, flow_id: str, session: AsyncSession):
        super().__init__(flow_id)
        self.session = session

    async def get_flow(self) -> Optional[Flow]:
        row = await self.session.get(FlowRow, self.flow_id)
        return _flow_from_row(row) if row else None

    async def touch_flow(self) -> None:
        await self.session.execute(
            update(FlowRow)
            .where(FlowRow.id == self.flow_id)
            .values(updated_at=utc_now())
        )

    async def update_flow(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        values = {"updated_at": utc_now()}
        if name is not None:
            values["name"] = name
        if description is not None:
            values["description"] = description
        await self.session.execute(
            update(FlowRow).where(FlowRow.id == self.flow_id).values(**values)
        )

    async def list_screens(self) -> List[Screen]:
        result = await self.session.execute(
            select(ScreenRow)
            .where(ScreenRow.flow_id == self.flow_id)
            .order_by(ScreenRow.order, ScreenRow.created_at)
        )
        return [_screen_from_row(r) for r in result.scalars().all()]

    async def get_screen(self, screen_id: str) -> Optional[Screen]:
        result = await self.session.execute(
            select(ScreenRow).where(
                ScreenRow.id == screen_id,
                ScreenRow.flow_id == self.flow_id,
            )
        )
        row = result.scalar_one_or_none()
        return _screen_from_row(row) if row else None

    async def add_screen(self, screen: Screen) -> Screen:
        self.session.add(
            ScreenRow(
                id=screen.id,
                flow_id=self.flow_id,
                order=screen.order,
                name=screen.name,
                dsl=screen.dsl,
                created_at=screen.created_at,
                updated_at=screen.updated_at,
            )
        )
        await self.session.flush()
        return screen

    async def delete_screen(self, screen_id: str) -> bool:
        result = await self.session.execute(
            delete(ScreenRow).where(
                ScreenRow.id == screen_id,
                ScreenRow.flow_id == self.flow_id,
            )
        )
        return result.rowcount > 0

    async def set_screen_order(self, screen_id: str, order: int) -> None:
        await self.session.execute(
            update(ScreenRow)
            .where(ScreenRow.id == screen_id, ScreenRow.flow_id == self.flow_id)
            .values(order=order, updated_at=utc_now())
        )

    async def shift_orders(
        self,
        from_order: int,
        delta: int = 1,
        exclude_screen_id: Optional[str] = None,
    ) -> int:
        stmt = (
            update(ScreenRow)
            .where(ScreenRow.flow_id == self.flow_id, ScreenRow.order >= from_order)
            .values(order=ScreenRow.order + delta)
        )
        if exclude_screen_id:
            stmt = stmt.where(ScreenRow.id != exclude_screen_id)
        result = await self.session.execute(stmt)
        return result.rowcount

    async def list_edges(self) -> List[NavigationPath]:
        result = await self.session.execute(
            select(NavigationPathRow)
            .where(NavigationPathRow.flow_id == self.flow_id)
            .order_by(NavigationPathRow.seq)
        )
        return [_edge_from_row(r) for r in result.scalars().all()]

    async def add_edge(self, edge: NavigationPath) -> NavigationPath:
        row = NavigationPathRow(
            id=edge.id,
            flow_id=self.flow_id,
            from_screen_id=edge.from_screen_id,
            to_screen_id=edge.to_screen_id,
            trigger=edge.trigger,
            condition=edge.condition,
            label=edge.label,
        )
        self.session.add(row)
        await self.session.flush()
        return _edge_from_row(row)

    async def update_edge(
        self,
        edge_id: str,
        trigger: Optional[str],
        condition: Optional[str],
        label: Optional[str],
    ) -> None:
        await self.session.execute(
            update(NavigationPathRow)
            .where(
                NavigationPathRow.id == edge_id,
                NavigationPathRow.flow_id == self.flow_id,
            )
            .values(trigger=trigger, condition=condition, label=label)
        )

    async def delete_edges(self, edge_ids: Iterable[str]) -> int:
        ids = list(edge_ids)
        if not ids:
            return 0
        result = await self.session.execute(
            delete(NavigationPathRow).where(
                NavigationPathRow.flow_id == self.flow_id,
                NavigationPathRow.id.in_(ids),
            )
        )
        return result.rowcount


# =============================================================================
# Store
# =============================================================================


def _begin_immediate(engine: AsyncEngine) -> None:
    """
    Make SQLite transactions take the write lock up front.

    The pysqlite driver defers BEGIN until the first write, so two
    transactions could read the same snapshot before either writes.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class SqlScreenStore(ScreenStore):
    """
    Screen store backed by a relational database.

    Usage:
        store = SqlScreenStore("sqlite+aiosqlite:///./screenflow.db")
        await store.initialize()
    """

    def __init__(self, database_url: str, echo: bool = False):
        # Convert sync URL to async if needed
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://")
        elif database_url.startswith("sqlite://"):
            database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://")

        self._database_url = database_url
        self._engine: AsyncEngine = create_async_engine(database_url, echo=echo)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self.locks = FlowLocks()

        if self._engine.dialect.name == "sqlite":
            _begin_immediate(self._engine)

    async def initialize(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("sql_store_initialized", url=self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def transaction(self, flow_id: str) -> AsyncIterator[SqlFlowTransaction]:
        async with self.locks.hold(flow_id), self._session_factory() as session:
            try:
                async with session.begin():
                    # Row lock serializes other processes; ignored by SQLite
                    await session.execute(
                        select(FlowRow.id).where(FlowRow.id == flow_id).with_for_update()
                    )
                    yield SqlFlowTransaction(flow_id, session)
            except SQLAlchemyError as e:
                logger.error("sql_transaction_failed", flow_id=flow_id, error=str(e))
                raise StoreError(f"Store transaction failed for flow {flow_id}") from e

    async def create_flow(self, flow: Flow) -> Flow:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    FlowRow(
                        id=flow.id,
                        name=flow.name,
                        description=flow.description,
                        created_at=flow.created_at,
                        updated_at=flow.updated_at,
                    )
                )
        return flow

    async def list_flows(self) -> List[Flow]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(FlowRow).order_by(FlowRow.updated_at.desc())
            )
            return [_flow_from_row(r) for r in result.scalars().all()]

    async def delete_flow(self, flow_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                # Explicit cascade; SQLite does not enforce foreign keys by default
                await session.execute(
                    delete(NavigationPathRow).where(NavigationPathRow.flow_id == flow_id)
                )
                await session.execute(delete(ScreenRow).where(ScreenRow.flow_id == flow_id))
                result = await session.execute(delete(FlowRow).where(FlowRow.id == flow_id))
                return result.rowcount > 0
