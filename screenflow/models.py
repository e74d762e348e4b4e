"""
Data Models for the Screenflow service.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import IssueKind, IssueSeverity
from .errors import InvalidRequestError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def normalize(value: Optional[str]) -> Optional[str]:
    """Treat empty strings as absent."""
    return value or None


# =============================================================================
# Flow / Screen / Edge Models
# =============================================================================


@dataclass
class Flow:
    """Container owning screens and navigation paths."""

    id: str
    name: str
    description: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class Screen:
    """One node of a flow's navigation graph."""

    id: str
    flow_id: str
    order: int
    dsl: Dict[str, Any] = field(default_factory=dict)  # Opaque screen content
    name: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "flowId": self.flow_id,
            "order": self.order,
            "name": self.name,
            "dsl": self.dsl,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class NavigationPath:
    """Directed edge (branch) between two screens of the same flow."""

    id: str
    flow_id: str
    from_screen_id: str
    to_screen_id: str
    trigger: Optional[str] = None
    condition: Optional[str] = None
    label: Optional[str] = None
    seq: int = 0  # Creation order, assigned by the store

    @property
    def key(self) -> Tuple[str, Optional[str], Optional[str]]:
        """Identity of the edge among siblings from the same source."""
        return (self.to_screen_id, self.condition, self.label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fromScreenId": self.from_screen_id,
            "toScreenId": self.to_screen_id,
            "trigger": self.trigger,
            "condition": self.condition,
            "label": self.label,
        }


# =============================================================================
# Graph Models
# =============================================================================


@dataclass
class GraphEntry:
    """Per-screen view inside a navigation graph."""

    screen_id: str
    order: int
    child_screen_ids: List[str] = field(default_factory=list)
    navigation_targets: List[str] = field(default_factory=list)  # Distinct targets
    parent_screen_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenId": self.screen_id,
            "order": self.order,
            "childScreenIds": list(self.child_screen_ids),
            "navigationTargets": list(self.navigation_targets),
            "parentScreenIds": list(self.parent_screen_ids),
        }


@dataclass
class NavigationGraph:
    """Ephemeral snapshot of a flow's navigation structure."""

    flow_id: str
    entry_screen_id: Optional[str]
    screens: Dict[str, GraphEntry]  # Keyed by screen id, in screen order
    navigation_paths: List[NavigationPath]

    def outgoing(self, screen_id: str) -> List[NavigationPath]:
        return [p for p in self.navigation_paths if p.from_screen_id == screen_id]

    def incoming(self, screen_id: str) -> List[NavigationPath]:
        return [p for p in self.navigation_paths if p.to_screen_id == screen_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flowId": self.flow_id,
            "entryScreenId": self.entry_screen_id,
            "screens": [
                {"id": screen_id, **entry.to_dict()}
                for screen_id, entry in self.screens.items()
            ],
            "navigationPaths": [p.to_dict() for p in self.navigation_paths],
        }


# =============================================================================
# Validation Models
# =============================================================================


@dataclass
class ValidationIssue:
    """A structural finding in a navigation graph."""

    kind: IssueKind
    severity: IssueSeverity
    message: str
    screen_id: Optional[str] = None
    edge_id: Optional[str] = None
    screen_ids: List[str] = field(default_factory=list)  # Cycle node sequence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "screenId": self.screen_id,
            "edgeId": self.edge_id,
            "screenIds": list(self.screen_ids),
        }


@dataclass
class ValidationResult:
    """Result of navigation graph validation."""

    valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    checked_at: datetime = field(default_factory=utc_now)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == IssueSeverity.WARNING]

    def of_kind(self, kind: IssueKind) -> List[ValidationIssue]:
        return [i for i in self.issues if i.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [i.to_dict() for i in self.errors],
            "warnings": [i.to_dict() for i in self.warnings],
            "checkedAt": self.checked_at.isoformat(),
        }


# =============================================================================
# Branch Models
# =============================================================================


@dataclass
class BranchConfig:
    """Branch to create from a screen."""

    to_screen_id: str
    trigger: Optional[str] = None
    condition: Optional[str] = None
    label: Optional[str] = None


@dataclass
class BranchMetadata:
    """Branch as seen from its source (or target) screen."""

    id: str
    from_screen_id: str
    to_screen_id: str
    trigger: Optional[str]
    condition: Optional[str]
    label: Optional[str]
    order: int  # Position among sibling branches, by creation

    @classmethod
    def from_path(cls, path: NavigationPath, order: int) -> "BranchMetadata":
        return cls(
            id=path.id,
            from_screen_id=path.from_screen_id,
            to_screen_id=path.to_screen_id,
            trigger=path.trigger,
            condition=path.condition,
            label=path.label,
            order=order,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fromScreenId": self.from_screen_id,
            "toScreenId": self.to_screen_id,
            "trigger": self.trigger,
            "condition": self.condition,
            "label": self.label,
            "order": self.order,
        }


@dataclass
class BranchPatch:
    """
    Metadata changes for an existing branch.

    None leaves a field unchanged; an empty string clears it.
    """

    label: Optional[str] = None
    condition: Optional[str] = None
    trigger: Optional[str] = None

    def is_empty(self) -> bool:
        return self.label is None and self.condition is None and self.trigger is None


@dataclass
class BranchFilter:
    """
    Selects branches from one source screen for deletion.

    Each supplied field must match exactly; at least one is required.
    """

    to_screen_id: Optional[str] = None
    condition: Optional[str] = None
    label: Optional[str] = None

    def __post_init__(self):
        self.to_screen_id = normalize(self.to_screen_id)
        self.condition = normalize(self.condition)
        self.label = normalize(self.label)
        if self.to_screen_id is None and self.condition is None and self.label is None:
            raise InvalidRequestError(
                "At least one of toScreenId, condition, or label is required"
            )

    def matches(self, path: NavigationPath) -> bool:
        if self.to_screen_id is not None and path.to_screen_id != self.to_screen_id:
            return False
        if self.condition is not None and path.condition != self.condition:
            return False
        if self.label is not None and path.label != self.label:
            return False
        return True


@dataclass
class BranchRef:
    """Reference to branches by target and condition (merge input)."""

    to_screen_id: str
    condition: Optional[str] = None

    def __post_init__(self):
        self.condition = normalize(self.condition)

    def matches(self, path: NavigationPath) -> bool:
        return (
            path.to_screen_id == self.to_screen_id
            and path.condition == self.condition
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"toScreenId": self.to_screen_id, "condition": self.condition}


@dataclass
class BranchPoint:
    """A screen with more than one outgoing branch."""

    screen_id: str
    order: int
    branches: List[BranchMetadata] = field(default_factory=list)

    @property
    def branch_count(self) -> int:
        return len(self.branches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenId": self.screen_id,
            "order": self.order,
            "branchCount": self.branch_count,
            "branches": [b.to_dict() for b in self.branches],
        }


@dataclass
class MergeResult:
    """Outcome of a branch merge."""

    from_screen_id: str
    kept: BranchMetadata
    kept_created: bool
    merged: List[BranchRef] = field(default_factory=list)
    unmatched: List[BranchRef] = field(default_factory=list)
    removed_edge_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromScreenId": self.from_screen_id,
            "kept": self.kept.to_dict(),
            "keptCreated": self.kept_created,
            "merged": [b.to_dict() for b in self.merged],
            "unmatched": [b.to_dict() for b in self.unmatched],
            "removedEdgeCount": self.removed_edge_count,
        }


# =============================================================================
# Sequence Models
# =============================================================================


InsertPosition = Union[int, Literal["start", "end"]]


@dataclass
class InsertScreenOptions:
    """Where and how to insert a new screen."""

    screen_dsl: Dict[str, Any]
    position: Optional[InsertPosition] = None
    after_screen_id: Optional[str] = None
    before_screen_id: Optional[str] = None
    navigation_from: Optional[str] = None  # Screen that should link to the new one
    name: Optional[str] = None


@dataclass
class InsertScreenResult:
    """Screen created by an insertion."""

    screen: Screen
    navigation: Optional[NavigationPath] = None
    shifted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screen": self.screen.to_dict(),
            "dsl": self.screen.dsl,
            "navigation": self.navigation.to_dict() if self.navigation else None,
            "shifted": self.shifted,
        }


@dataclass
class ReorderScreenOptions:
    """New position for an existing screen."""

    screen_id: str
    new_order: Optional[int] = None
    or_after_screen_id: Optional[str] = None
    or_before_screen_id: Optional[str] = None


@dataclass
class ReorderResult:
    """Outcome of a reorder."""

    screen_id: str
    previous_order: int
    new_order: int
    shifted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenId": self.screen_id,
            "previousOrder": self.previous_order,
            "newOrder": self.new_order,
            "shifted": self.shifted,
        }


@dataclass
class RemoveScreenResult:
    """Outcome of a screen removal."""

    screen_id: str
    removed_edge_count: int = 0
    reconnected: List[NavigationPath] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screenId": self.screen_id,
            "removedEdgeCount": self.removed_edge_count,
            "reconnected": [p.to_dict() for p in self.reconnected],
        }


@dataclass
class ScreenSequence:
    """Ordered screens plus summary metadata for lightweight callers."""

    flow_id: str
    entries: List[GraphEntry] = field(default_factory=list)
    gaps: List[int] = field(default_factory=list)  # Unused orders between first and last

    @property
    def count(self) -> int:
        return len(self.entries)

    @property
    def first_screen_id(self) -> Optional[str]:
        return self.entries[0].screen_id if self.entries else None

    @property
    def last_screen_id(self) -> Optional[str]:
        return self.entries[-1].screen_id if self.entries else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flowId": self.flow_id,
            "count": self.count,
            "firstScreenId": self.first_screen_id,
            "lastScreenId": self.last_screen_id,
            "gaps": list(self.gaps),
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass
class FlowStats:
    """Summary statistics for a flow."""

    flow_id: str
    screen_count: int
    edge_count: int
    branch_point_count: int
    entry_screen_id: Optional[str]
    valid: bool
    last_updated: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flowId": self.flow_id,
            "screenCount": self.screen_count,
            "edgeCount": self.edge_count,
            "branchPointCount": self.branch_point_count,
            "entryScreenId": self.entry_screen_id,
            "valid": self.valid,
            "lastUpdated": self.last_updated.isoformat(),
        }


# =============================================================================
# API Request Models
# =============================================================================


class CamelModel(BaseModel):
    """Request model accepting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateFlowRequest(CamelModel):
    """Request to create a new flow."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class UpdateFlowRequest(CamelModel):
    """Request to update a flow."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class CloneFlowRequest(CamelModel):
    """Request to clone a flow."""

    new_name: str = Field(..., min_length=1, max_length=255)
    new_description: Optional[str] = None
    include_screens: bool = True
    reset_navigation: bool = False


class CreateBranchRequest(CamelModel):
    """Request to create a branch."""

    from_screen_id: str = Field(..., min_length=1)
    to_screen_id: str = Field(..., min_length=1)
    trigger: Optional[str] = None
    condition: Optional[str] = None
    label: Optional[str] = None


class UpdateBranchRequest(CamelModel):
    """Request to update branch metadata."""

    from_screen_id: str = Field(..., min_length=1)
    to_screen_id: str = Field(..., min_length=1)
    label: Optional[str] = None
    condition: Optional[str] = None
    trigger: Optional[str] = None
    match_condition: Optional[str] = None
    match_label: Optional[str] = None


class BranchToKeepModel(CamelModel):
    """Branch that survives a merge."""

    to_screen_id: str = Field(..., min_length=1)
    condition: Optional[str] = None
    label: Optional[str] = None


class BranchRefModel(CamelModel):
    """Branch to merge away."""

    to_screen_id: str = Field(..., min_length=1)
    condition: Optional[str] = None


class MergeBranchesRequest(CamelModel):
    """Request to merge branches."""

    from_screen_id: str = Field(..., min_length=1)
    branch_to_keep: BranchToKeepModel
    branches_to_merge: List[BranchRefModel] = Field(..., min_length=1)


class AddNavigationPathRequest(CamelModel):
    """Request to add a navigation path."""

    from_screen_id: str = Field(..., min_length=1)
    to_screen_id: str = Field(..., min_length=1)
    trigger: Optional[str] = None
    condition: Optional[str] = None


class InsertScreenRequest(CamelModel):
    """Request to insert a screen."""

    screen_dsl: Optional[Dict[str, Any]] = Field(default=None, alias="screenDSL")
    name: Optional[str] = None
    position: Optional[Union[int, Literal["start", "end"]]] = None
    after_screen_id: Optional[str] = None
    before_screen_id: Optional[str] = None
    navigation_from: Optional[str] = None


class ReorderScreenRequest(CamelModel):
    """Request to reorder a screen."""

    new_order: Optional[int] = Field(default=None, ge=0)
    or_after_screen_id: Optional[str] = None
    or_before_screen_id: Optional[str] = None


__all__ = [
    "utc_now",
    "new_id",
    "normalize",
    # Flow
    "Flow",
    "Screen",
    "NavigationPath",
    # Graph
    "GraphEntry",
    "NavigationGraph",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Branch
    "BranchConfig",
    "BranchMetadata",
    "BranchPatch",
    "BranchFilter",
    "BranchRef",
    "BranchPoint",
    "MergeResult",
    # Sequence
    "InsertPosition",
    "InsertScreenOptions",
    "InsertScreenResult",
    "ReorderScreenOptions",
    "ReorderResult",
    "RemoveScreenResult",
    "ScreenSequence",
    "FlowStats",
    # API
    "CamelModel",
    "CreateFlowRequest",
    "UpdateFlowRequest",
    "CloneFlowRequest",
    "CreateBranchRequest",
    "UpdateBranchRequest",
    "BranchToKeepModel",
    "BranchRefModel",
    "MergeBranchesRequest",
    "AddNavigationPathRequest",
    "InsertScreenRequest",
    "ReorderScreenRequest",
]
