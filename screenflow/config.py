"""
Configuration for the Screenflow service.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IssueKind(str, Enum):
    """Kinds of findings reported by the navigation validator."""

    DANGLING_EDGE = "dangling_edge"
    UNREACHABLE_SCREEN = "unreachable_screen"
    NO_ENTRY = "no_entry"
    CYCLE = "cycle"
    DUPLICATE_EDGE = "duplicate_edge"
    TOO_MANY_BRANCHES = "too_many_branches"


class IssueSeverity(str, Enum):
    """Severity of a validation finding."""

    ERROR = "error"
    WARNING = "warning"


class BranchDirection(str, Enum):
    """Direction of a branch lookup relative to a screen."""

    FROM = "from"
    TO = "to"


class BranchQueryAction(str, Enum):
    """Aggregate branch queries exposed over HTTP."""

    BRANCH_POINTS = "branch-points"
    HAS_BRANCHES = "has-branches"
    COUNT = "count"


class NavigationAction(str, Enum):
    """Navigation graph read actions exposed over HTTP."""

    VALIDATE = "validate"
    PATH = "path"


class ScreenListFormat(str, Enum):
    """Screen listing formats."""

    ORDERED = "ordered"
    SEQUENCE = "sequence"


class NavigationConfig(BaseSettings):
    """Navigation graph configuration."""

    model_config = SettingsConfigDict(env_prefix="NAVIGATION_")

    default_trigger: str = Field(
        default="button-click",
        description="Trigger stored when a branch is created without one",
    )
    max_branches_per_screen: int = Field(
        default=20,
        ge=1,
        description="Outgoing branch count above which the validator warns",
    )
    max_screens_per_flow: int = Field(
        default=500,
        ge=1,
        description="Max screens per flow",
    )


class StorageConfig(BaseSettings):
    """Storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["memory", "sql"] = Field(
        default="memory",
        description="Screen store backend",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./screenflow.db",
        description="Database connection URL for the sql backend",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service configuration
    service_name: str = Field(default="screenflow", description="Service name")
    host: str = Field(default="0.0.0.0", description="Host to bind")
    port: int = Field(default=8092, ge=1024, le=65535, description="Port")
    environment: Literal["development", "production", "test"] = "development"
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="info", description="Log level")
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log renderer",
    )

    # API settings
    api_prefix: str = Field(default="/api", description="API prefix")
    cors_origins: str = Field(default="*", description="Comma separated origins")

    # Sub-configurations
    navigation: NavigationConfig = Field(default_factory=NavigationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @property
    def cors_origin_list(self) -> List[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
