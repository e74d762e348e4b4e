"""Flow API routes."""

from fastapi import APIRouter, Depends, status

from ..engine import FlowGraphEngine
from ..models import CloneFlowRequest, CreateFlowRequest, UpdateFlowRequest
from .deps import get_engine

router = APIRouter(prefix="/flows", tags=["flows"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_flow(
    data: CreateFlowRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Create an empty flow."""
    flow = await engine.flows.create_flow(data.name, data.description or "")
    return flow.to_dict()


@router.get("")
async def list_flows(engine: FlowGraphEngine = Depends(get_engine)):
    """List flows, most recently updated first."""
    flows = await engine.flows.list_flows()
    return {"flows": [f.to_dict() for f in flows], "total": len(flows)}


@router.get("/{flow_id}")
async def get_flow(flow_id: str, engine: FlowGraphEngine = Depends(get_engine)):
    """Get a flow by ID."""
    flow = await engine.flows.get_flow(flow_id)
    return flow.to_dict()


@router.put("/{flow_id}")
async def update_flow(
    flow_id: str,
    data: UpdateFlowRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Update a flow's name or description."""
    flow = await engine.flows.update_flow(
        flow_id, name=data.name, description=data.description
    )
    return flow.to_dict()


@router.delete("/{flow_id}")
async def delete_flow(flow_id: str, engine: FlowGraphEngine = Depends(get_engine)):
    """Delete a flow with its screens and navigation paths."""
    await engine.flows.delete_flow(flow_id)
    return {"success": True}


@router.post("/{flow_id}/clone", status_code=status.HTTP_201_CREATED)
async def clone_flow(
    flow_id: str,
    data: CloneFlowRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Clone a flow."""
    clone = await engine.flows.clone_flow(
        flow_id,
        data.new_name,
        new_description=data.new_description,
        include_screens=data.include_screens,
        reset_navigation=data.reset_navigation,
    )
    return clone.to_dict()


@router.get("/{flow_id}/stats")
async def get_flow_stats(flow_id: str, engine: FlowGraphEngine = Depends(get_engine)):
    """Summary statistics for a flow."""
    stats = await engine.flows.get_flow_stats(flow_id)
    return stats.to_dict()
