"""Navigation API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..config import NavigationAction
from ..engine import FlowGraphEngine
from ..errors import InvalidRequestError
from ..models import AddNavigationPathRequest
from .deps import get_engine

router = APIRouter(prefix="/flows/{flow_id}/navigation", tags=["navigation"])


@router.get("")
async def get_navigation(
    flow_id: str,
    action: Optional[NavigationAction] = Query(None),
    from_screen_id: Optional[str] = Query(None, alias="from"),
    to_screen_id: Optional[str] = Query(None, alias="to"),
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Get the navigation graph, its validation, or a path between screens."""
    if action == NavigationAction.VALIDATE:
        result = await engine.validate_navigation_graph(flow_id)
        return result.to_dict()

    if action == NavigationAction.PATH:
        if not from_screen_id or not to_screen_id:
            raise InvalidRequestError("from and to screen IDs are required")
        path = await engine.get_navigation_path(flow_id, from_screen_id, to_screen_id)
        return {"path": path}

    graph = await engine.build_navigation_graph(flow_id)
    return graph.to_dict()


@router.post("")
async def add_navigation_path(
    flow_id: str,
    data: AddNavigationPathRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Add a navigation path between two screens."""
    path = await engine.add_navigation_path(
        flow_id,
        data.from_screen_id,
        data.to_screen_id,
        trigger=data.trigger,
        condition=data.condition,
    )
    return {"success": True, "navigationPath": path.to_dict()}


@router.delete("")
async def remove_navigation_path(
    flow_id: str,
    from_screen_id: Optional[str] = Query(None, alias="fromScreenId"),
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Remove every navigation path leaving a screen."""
    if not from_screen_id:
        raise InvalidRequestError("fromScreenId is required")

    removed = await engine.remove_navigation_path(flow_id, from_screen_id)
    return {"success": True, "removed": removed}


@router.get("/{screen_id}/incoming")
async def get_incoming_navigation(
    flow_id: str,
    screen_id: str,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Screens with a path into this screen."""
    screen_ids = await engine.navigation.get_incoming_navigation(flow_id, screen_id)
    return {"screenIds": screen_ids}


@router.get("/{screen_id}/outgoing")
async def get_outgoing_navigation(
    flow_id: str,
    screen_id: str,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Screens this screen has a path to."""
    screen_ids = await engine.navigation.get_outgoing_navigation(flow_id, screen_id)
    return {"screenIds": screen_ids}
