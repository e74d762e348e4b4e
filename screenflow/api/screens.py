"""Screen sequence API routes."""

from fastapi import APIRouter, Depends, Query, status

from ..config import ScreenListFormat
from ..engine import FlowGraphEngine
from ..errors import InvalidRequestError
from ..models import (
    InsertScreenOptions,
    InsertScreenRequest,
    ReorderScreenOptions,
    ReorderScreenRequest,
)
from .deps import get_engine

router = APIRouter(prefix="/flows/{flow_id}/screens", tags=["screens"])


@router.get("")
async def list_screens(
    flow_id: str,
    format: ScreenListFormat = Query(ScreenListFormat.ORDERED),
    engine: FlowGraphEngine = Depends(get_engine),
):
    """List screens in order, or as a sequence summary."""
    if format == ScreenListFormat.SEQUENCE:
        sequence = await engine.sequence.get_screen_sequence(flow_id)
        return sequence.to_dict()

    screens = await engine.sequence.get_ordered_screens(flow_id)
    return [s.to_dict() for s in screens]


@router.post("", status_code=status.HTTP_201_CREATED)
async def insert_screen(
    flow_id: str,
    data: InsertScreenRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Insert a screen."""
    if data.screen_dsl is None:
        raise InvalidRequestError("screenDSL is required")

    result = await engine.sequence.insert_screen(
        flow_id,
        InsertScreenOptions(
            screen_dsl=data.screen_dsl,
            position=data.position,
            after_screen_id=data.after_screen_id,
            before_screen_id=data.before_screen_id,
            navigation_from=data.navigation_from,
            name=data.name,
        ),
    )
    return result.to_dict()


@router.delete("/{screen_id}")
async def remove_screen(
    flow_id: str,
    screen_id: str,
    update_navigation: bool = Query(True, alias="updateNavigation"),
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Remove a screen, reconnecting its neighbours unless told not to."""
    result = await engine.sequence.remove_screen(flow_id, screen_id, update_navigation)
    return {"success": True, **result.to_dict()}


@router.post("/{screen_id}/reorder")
async def reorder_screen(
    flow_id: str,
    screen_id: str,
    data: ReorderScreenRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Move a screen to a new position."""
    result = await engine.sequence.reorder_screen(
        flow_id,
        ReorderScreenOptions(
            screen_id=screen_id,
            new_order=data.new_order,
            or_after_screen_id=data.or_after_screen_id,
            or_before_screen_id=data.or_before_screen_id,
        ),
    )
    return {"success": True, **result.to_dict()}
