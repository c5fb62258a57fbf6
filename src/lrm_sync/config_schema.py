"""Unified configuration schema for lrm_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the cloud remote, the local resources and logging.

Usage:
    from lrm_sync.config_schema import UnifiedConfig, build_config

    raw = load_config_file(project_dir)
    unified = build_config(raw)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class CloudSection(BaseModel):
    """Remote project settings.

    All fields are optional to support zero-config: env vars, ``.env``
    and CLI args can supply them at runtime instead.
    """

    remote: str | None = Field(
        default=None,
        description="Remote URL: https://host/org/project or https://host/@user/project",
    )
    api_key: str | None = Field(default=None, description="Project API key")
    token: str | None = Field(default=None, description="Bearer access token")
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    timeout: float = Field(
        default=60,
        gt=0,
        le=600,
        description="Read timeout in seconds for each request",
    )

    model_config = {"frozen": True}


class ResourcesSection(BaseModel):
    """Local resource files.

    Attributes:
        path: Directory holding the resource files, relative to the project.
        format: Resource format name (``json``).
        default_language: Language of the file without a culture suffix.
    """

    path: str = Field(default=".", description="Resource directory")
    format: str = Field(default="json", description="Resource format")
    default_language: str | None = Field(
        default=None, description="Default language code"
    )

    model_config = {"frozen": True}


class LoggingSection(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="WARNING", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level configuration.

    Every section has defaults, so ``UnifiedConfig()`` is always valid.
    """

    cloud: CloudSection = Field(default_factory=CloudSection)
    resources: ResourcesSection = Field(default_factory=ResourcesSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the merged YAML dict.

    Raises:
        ConfigurationError: If a section has invalid values.
    """
    if not raw_data:
        return UnifiedConfig()
    try:
        return UnifiedConfig(**raw_data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
