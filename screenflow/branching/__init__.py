"""
Branching Module.

Branch CRUD, branch-point queries and branch merging.
"""

from .manager import BranchManager
from .merge import BranchMerger

__all__ = ["BranchManager", "BranchMerger"]
