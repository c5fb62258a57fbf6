"""Compatibility checks between local resources and the remote project."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .models import ProjectInfo

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _normalize_format(value: str | None) -> str:
    return (value or "").strip().lower()


def validate_compatibility(
    project: ProjectInfo,
    local_format: str,
    default_language: str | None = None,
) -> ValidationResult:
    """Check that local resources can be pushed to *project*.

    A format mismatch is an error: the server stores entries in the
    project's format and a push from another format would be rejected.
    A default-language mismatch is only a warning.
    """
    result = ValidationResult()

    remote_format = _normalize_format(project.format)
    if remote_format and remote_format != _normalize_format(local_format):
        result.errors.append(
            f"Format mismatch: local resources are '{local_format}' but the "
            f"remote project uses '{project.format}'. Convert the resources "
            f"to '{project.format}' or push to a project with the same format."
        )

    if (
        default_language
        and project.default_language
        and default_language.lower() != project.default_language.lower()
    ):
        result.warnings.append(
            f"Default language mismatch: local '{default_language}', "
            f"remote '{project.default_language}'."
        )

    for warning in result.warnings:
        logger.warning(warning)
    return result
