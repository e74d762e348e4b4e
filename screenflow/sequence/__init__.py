"""
Sequence Module.

Screen ordering: listing, insertion, removal and reordering.
"""

from .content import ContentValidator, validate_screen_dsl
from .manager import SequenceManager

__all__ = ["ContentValidator", "validate_screen_dsl", "SequenceManager"]
