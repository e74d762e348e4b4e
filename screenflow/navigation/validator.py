"""
Navigation Validator.

Runs structural checks over a built navigation graph.
"""

from collections import deque
from typing import Iterator, List, Optional, Set, Tuple

import structlog

from ..config import IssueKind, IssueSeverity, NavigationConfig, get_settings
from ..models import NavigationGraph, ValidationIssue, ValidationResult

logger = structlog.get_logger(__name__)


class NavigationValidator:
    """
    Validates navigation graph structure.

    Checks:
    - Dangling edges (endpoint outside the flow)
    - Duplicate edges (same target, condition and label from one source)
    - Entry detection and reachability from the entry
    - Cycles (reported as warnings)
    - Branch count limits
    """

    def __init__(self, config: Optional[NavigationConfig] = None):
        self.config = config or get_settings().navigation

    def validate(self, graph: NavigationGraph) -> ValidationResult:
        """
        Validate a navigation graph.

        Args:
            graph: Graph to validate

        Returns:
            ValidationResult; valid when no error-severity issue was found
        """
        issues: List[ValidationIssue] = []

        issues.extend(self._validate_edges(graph))
        issues.extend(self._validate_duplicates(graph))
        issues.extend(self._validate_reachability(graph))
        issues.extend(self._detect_cycles(graph))
        issues.extend(self._validate_limits(graph))

        valid = all(i.severity != IssueSeverity.ERROR for i in issues)

        logger.debug(
            "navigation_validated",
            flow_id=graph.flow_id,
            valid=valid,
            issue_count=len(issues),
        )
        return ValidationResult(valid=valid, issues=issues)

    def _validate_edges(self, graph: NavigationGraph) -> List[ValidationIssue]:
        """Report edges whose endpoints are not screens of the flow."""
        issues = []

        for path in graph.navigation_paths:
            for end, screen_id in (
                ("source", path.from_screen_id),
                ("target", path.to_screen_id),
            ):
                if screen_id not in graph.screens:
                    issues.append(
                        ValidationIssue(
                            kind=IssueKind.DANGLING_EDGE,
                            severity=IssueSeverity.ERROR,
                            message=f"Navigation path {end} screen not found: {screen_id}",
                            screen_id=screen_id,
                            edge_id=path.id,
                        )
                    )

        return issues

    def _validate_duplicates(self, graph: NavigationGraph) -> List[ValidationIssue]:
        """Report edges repeating a sibling's target, condition and label."""
        issues = []
        seen: Set[Tuple[str, Tuple]] = set()

        for path in graph.navigation_paths:
            key = (path.from_screen_id, path.key)
            if key in seen:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.DUPLICATE_EDGE,
                        severity=IssueSeverity.ERROR,
                        message=(
                            f"Duplicate branch from {path.from_screen_id} "
                            f"to {path.to_screen_id} (condition={path.condition!r}, "
                            f"label={path.label!r})"
                        ),
                        screen_id=path.from_screen_id,
                        edge_id=path.id,
                    )
                )
            seen.add(key)

        return issues

    def _validate_reachability(self, graph: NavigationGraph) -> List[ValidationIssue]:
        """Report a missing entry and screens not reachable from it."""
        issues = []
        if not graph.screens:
            return issues

        if graph.entry_screen_id is None:
            issues.append(
                ValidationIssue(
                    kind=IssueKind.NO_ENTRY,
                    severity=IssueSeverity.ERROR,
                    message="Flow has no entry screen (every screen has an incoming path)",
                )
            )

        reachable = self._reachable_from(graph, graph.entry_screen_id)

        for screen_id, entry in graph.screens.items():
            if screen_id in reachable:
                continue

            # A screen with a parent is still reachable through some path
            severity = (
                IssueSeverity.WARNING if entry.parent_screen_ids else IssueSeverity.ERROR
            )
            issues.append(
                ValidationIssue(
                    kind=IssueKind.UNREACHABLE_SCREEN,
                    severity=severity,
                    message="Screen is not reachable from the entry screen",
                    screen_id=screen_id,
                )
            )

        return issues

    def _reachable_from(self, graph: NavigationGraph, start: Optional[str]) -> Set[str]:
        if start is None:
            return set()

        reachable: Set[str] = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for child in graph.screens[current].child_screen_ids:
                if child in graph.screens and child not in reachable:
                    reachable.add(child)
                    queue.append(child)
        return reachable

    def _detect_cycles(self, graph: NavigationGraph) -> List[ValidationIssue]:
        """Detect cycles with an iterative DFS over the recursion stack."""
        issues = []
        visited: Set[str] = set()
        rec_stack: Set[str] = set()
        reported: Set[Tuple[str, ...]] = set()

        # Start from the entry so cycles read in navigation order
        roots = list(graph.screens)
        if graph.entry_screen_id:
            roots.remove(graph.entry_screen_id)
            roots.insert(0, graph.entry_screen_id)

        for root in roots:
            if root in visited:
                continue

            visited.add(root)
            rec_stack.add(root)
            path: List[str] = [root]
            stack: List[Tuple[str, Iterator[str]]] = [
                (root, iter(graph.screens[root].child_screen_ids))
            ]

            while stack:
                screen_id, children = stack[-1]
                child = next(children, None)

                if child is None:
                    stack.pop()
                    path.pop()
                    rec_stack.remove(screen_id)
                    continue

                if child not in graph.screens:
                    continue
                if child not in visited:
                    visited.add(child)
                    rec_stack.add(child)
                    path.append(child)
                    stack.append((child, iter(graph.screens[child].child_screen_ids)))
                elif child in rec_stack:
                    cycle = path[path.index(child):] + [child]
                    signature = _cycle_signature(cycle)
                    if signature not in reported:
                        reported.add(signature)
                        issues.append(
                            ValidationIssue(
                                kind=IssueKind.CYCLE,
                                severity=IssueSeverity.WARNING,
                                message=f"Navigation cycle detected: {' -> '.join(cycle)}",
                                screen_id=child,
                                screen_ids=cycle,
                            )
                        )

        return issues

    def _validate_limits(self, graph: NavigationGraph) -> List[ValidationIssue]:
        """Warn about screens with too many outgoing branches."""
        issues = []
        limit = self.config.max_branches_per_screen

        for screen_id, entry in graph.screens.items():
            count = len(entry.child_screen_ids)
            if count > limit:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.TOO_MANY_BRANCHES,
                        severity=IssueSeverity.WARNING,
                        message=f"Screen has too many branches ({count} > {limit})",
                        screen_id=screen_id,
                    )
                )

        return issues


def _cycle_signature(cycle: List[str]) -> Tuple[str, ...]:
    """Rotation-independent identity of a cycle."""
    nodes = cycle[:-1]
    pivot = nodes.index(min(nodes))
    return tuple(nodes[pivot:] + nodes[:pivot])

