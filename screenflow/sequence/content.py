"""
Screen content checks run before a screen is written.

Screen DSL is opaque to the engine; a validator only decides whether a
payload may be stored and explains why not.
"""

from typing import Any, Callable, Dict, List

ContentValidator = Callable[[Dict[str, Any]], List[str]]


def validate_screen_dsl(dsl: Dict[str, Any]) -> List[str]:
    """Default validator: the DSL must be a non-empty object."""
    if not isinstance(dsl, dict):
        return ["screenDSL must be an object"]
    if not dsl:
        return ["screenDSL must not be empty"]
    return []
