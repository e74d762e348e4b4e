"""Branch API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..config import BranchDirection, BranchQueryAction
from ..engine import FlowGraphEngine
from ..errors import InvalidRequestError
from ..models import (
    BranchConfig,
    BranchFilter,
    BranchPatch,
    BranchRef,
    CreateBranchRequest,
    MergeBranchesRequest,
    UpdateBranchRequest,
)
from .deps import get_engine

router = APIRouter(prefix="/flows/{flow_id}/branches", tags=["branches"])


def _require_screen_id(screen_id: Optional[str]) -> str:
    if not screen_id:
        raise InvalidRequestError("screenId is required")
    return screen_id


@router.get("")
async def get_branches(
    flow_id: str,
    screen_id: Optional[str] = Query(None, alias="screenId"),
    direction: BranchDirection = Query(BranchDirection.FROM),
    action: Optional[BranchQueryAction] = Query(None),
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Get branches of a screen, or an aggregate branch query."""
    if action == BranchQueryAction.BRANCH_POINTS:
        points = await engine.branches.find_branch_points(flow_id)
        return {"branchPoints": [p.to_dict() for p in points]}

    screen_id = _require_screen_id(screen_id)

    if action == BranchQueryAction.HAS_BRANCHES:
        return {"hasBranches": await engine.branches.has_branches(flow_id, screen_id)}

    if action == BranchQueryAction.COUNT:
        return {"count": await engine.branches.get_branch_count(flow_id, screen_id)}

    if direction == BranchDirection.TO:
        branches = await engine.branches.get_branches_to_screen(flow_id, screen_id)
    else:
        branches = await engine.branches.get_branches_from_screen(flow_id, screen_id)
    return {"branches": [b.to_dict() for b in branches]}


@router.post("")
async def create_branch(
    flow_id: str,
    data: CreateBranchRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Create a branch."""
    branch = await engine.create_branch(
        flow_id,
        data.from_screen_id,
        BranchConfig(
            to_screen_id=data.to_screen_id,
            trigger=data.trigger,
            condition=data.condition,
            label=data.label,
        ),
    )
    return {"success": True, "branch": branch.to_dict()}


@router.patch("")
async def update_branch(
    flow_id: str,
    data: UpdateBranchRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Update label, condition or trigger of a branch."""
    branch = await engine.update_branch(
        flow_id,
        data.from_screen_id,
        data.to_screen_id,
        BranchPatch(label=data.label, condition=data.condition, trigger=data.trigger),
        match_condition=data.match_condition,
        match_label=data.match_label,
    )
    return {"success": True, "branch": branch.to_dict()}


@router.delete("")
async def delete_branch(
    flow_id: str,
    from_screen_id: Optional[str] = Query(None, alias="fromScreenId"),
    to_screen_id: Optional[str] = Query(None, alias="toScreenId"),
    condition: Optional[str] = Query(None),
    label: Optional[str] = Query(None),
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Delete every branch from a screen matching the filter."""
    if not from_screen_id:
        raise InvalidRequestError("fromScreenId is required")

    deleted = await engine.delete_branch(
        flow_id,
        from_screen_id,
        BranchFilter(to_screen_id=to_screen_id, condition=condition, label=label),
    )
    return {"success": True, "deleted": deleted}


@router.post("/merge")
async def merge_branches(
    flow_id: str,
    data: MergeBranchesRequest,
    engine: FlowGraphEngine = Depends(get_engine),
):
    """Merge branches of a screen into one kept branch."""
    result = await engine.merge_branches(
        flow_id,
        data.from_screen_id,
        BranchRef(
            to_screen_id=data.branch_to_keep.to_screen_id,
            condition=data.branch_to_keep.condition,
        ),
        [
            BranchRef(to_screen_id=b.to_screen_id, condition=b.condition)
            for b in data.branches_to_merge
        ],
        keep_label=data.branch_to_keep.label,
    )
    return {"success": True, **result.to_dict()}
