"""
Navigation Module.

Graph building, validation, path finding and navigation path writes.
"""

from .graph import build_navigation_graph, find_entry_screen
from .pathfinder import find_path
from .service import NavigationService
from .validator import NavigationValidator

__all__ = [
    "build_navigation_graph",
    "find_entry_screen",
    "find_path",
    "NavigationService",
    "NavigationValidator",
]
