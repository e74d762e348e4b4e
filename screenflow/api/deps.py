"""API dependencies."""

from fastapi import Request

from ..engine import FlowGraphEngine


def get_engine(request: Request) -> FlowGraphEngine:
    """Engine bound to the running application."""
    return request.app.state.engine
