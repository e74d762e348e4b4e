"""
Error taxonomy for the navigation engine.

Every engine failure is a FlowGraphError; the HTTP layer maps the
subclass to a status code.
"""

from typing import List, Optional


class FlowGraphError(Exception):
    """Base exception for navigation engine errors."""

    code = "FLOW_GRAPH_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(FlowGraphError):
    """Referenced flow, screen, or branch does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class FlowNotFoundError(NotFoundError):
    """Flow not found."""

    def __init__(self, flow_id: str):
        super().__init__(f"Flow not found: {flow_id}")
        self.flow_id = flow_id


class ScreenNotFoundError(NotFoundError):
    """Screen not found, or not part of the claimed flow."""

    def __init__(self, screen_id: str, flow_id: Optional[str] = None):
        if flow_id:
            message = f"Screen not found in flow {flow_id}: {screen_id}"
        else:
            message = f"Screen not found: {screen_id}"
        super().__init__(message)
        self.screen_id = screen_id
        self.flow_id = flow_id


class BranchNotFoundError(NotFoundError):
    """No branch matched the supplied criteria."""

    pass


class InvalidRequestError(FlowGraphError):
    """Missing, empty, or contradictory request inputs."""

    code = "INVALID_REQUEST"
    status_code = 400


class AmbiguousBranchError(InvalidRequestError):
    """More than one branch matched where exactly one was required."""

    code = "AMBIGUOUS_BRANCH"


class ContentValidationError(InvalidRequestError):
    """Screen content was rejected by the content validator."""

    code = "CONTENT_VALIDATION_FAILED"

    def __init__(self, message: str, validation_errors: List[str]):
        super().__init__(message)
        self.validation_errors = validation_errors


class DuplicateBranchError(FlowGraphError):
    """A branch with the same target, condition and label already exists."""

    code = "DUPLICATE_BRANCH"
    status_code = 409


class StoreError(FlowGraphError):
    """The screen store failed to apply a transaction."""

    code = "STORE_ERROR"
    status_code = 500


__all__ = [
    "FlowGraphError",
    "NotFoundError",
    "FlowNotFoundError",
    "ScreenNotFoundError",
    "BranchNotFoundError",
    "InvalidRequestError",
    "AmbiguousBranchError",
    "ContentValidationError",
    "DuplicateBranchError",
    "StoreError",
]
