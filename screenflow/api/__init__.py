"""
API Module.

HTTP routes over the flow graph engine.
"""

from fastapi import APIRouter

from .branches import router as branches_router
from .flows import router as flows_router
from .navigation import router as navigation_router
from .screens import router as screens_router

router = APIRouter()
router.include_router(flows_router)
router.include_router(branches_router)
router.include_router(navigation_router)
router.include_router(screens_router)

__all__ = ["router"]
