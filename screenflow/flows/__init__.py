"""
Flows Module.

Flow container lifecycle.
"""

from .manager import FlowManager

__all__ = ["FlowManager"]
