"""Push report formatting functions.

Provides human-readable and machine-readable output for push cycles:

- ``format_push_report`` -- post-push summary.
- ``format_dry_run_preview`` -- changeset preview grouped by kind.
- ``format_conflicts`` -- local/remote values for unresolved conflicts.
- ``format_conflict_detail`` -- one conflict, for interactive review.
- ``report_to_json`` / ``error_to_json`` -- structured dicts for ``--json``.
"""

from __future__ import annotations

import difflib
from typing import TYPE_CHECKING

from .models import PushStatus

if TYPE_CHECKING:
    from .models import ChangeSet, EntryConflict, PushReport


def _display(value: str | None) -> str:
    if value is None:
        return "(deleted)"
    return repr(value)


def _lang(lang: str | None) -> str:
    return lang if lang else "*"


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_push_report(report: PushReport) -> str:
    """Format a completed push report as human-readable text.

    Args:
        report: The push report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    for warning in report.warnings:
        lines.append(f"Warning: {warning}")
    if report.warnings:
        lines.append("")

    match report.status:
        case PushStatus.NOTHING_TO_SYNC:
            lines.append("No changes to push. Everything is up to date.")
        case PushStatus.DRY_RUN:
            lines.append(format_dry_run_preview(report.changes))
        case PushStatus.SUCCESS:
            lines.append("Push completed successfully.")
            lines.append(
                f"  {report.applied} applied, {report.deleted} deleted, "
                f"{report.resolved} conflict(s) resolved"
            )
        case PushStatus.CONFLICTS:
            lines.append(
                f"Push stopped: {len(report.conflicts)} conflict(s) need resolution."
            )
            lines.append("")
            lines.append(format_conflicts(report.conflicts))
            lines.append("")
            lines.append(
                "Run again with --interactive to choose per entry, "
                "or --force to overwrite the remote values."
            )
        case PushStatus.ABORTED:
            lines.append(
                "Conflict resolution aborted. No state was changed; "
                f"{len(report.conflicts)} conflict(s) remain unresolved."
            )

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(changes: ChangeSet) -> str:
    """Format a changeset preview grouped by additions, modifications
    and deletions."""
    lines = [
        "Dry run: the following changes would be pushed:",
        f"  {len(changes.additions)} addition(s), "
        f"{len(changes.modifications)} modification(s), "
        f"{len(changes.deletions)} deletion(s)",
        "",
    ]
    if changes.additions:
        lines.append("Additions:")
        for change in changes.additions:
            lines.append(f"  + {change.key} [{change.lang}] = {change.value!r}")
        lines.append("")
    if changes.modifications:
        lines.append("Modifications:")
        for change in changes.modifications:
            lines.append(f"  ~ {change.key} [{change.lang}] = {change.value!r}")
        lines.append("")
    if changes.deletions:
        lines.append("Deletions:")
        for deletion in changes.deletions:
            lines.append(f"  - {deletion.key} [{_lang(deletion.lang)}]")
        lines.append("")
    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Conflicts
# ------------------------------------------------------------------


def format_conflicts(conflicts: list[EntryConflict]) -> str:
    """Format unresolved conflicts with both values and the remote timestamp."""
    lines = ["Conflicts:"]
    for conflict in conflicts:
        lines.append(f"  {conflict.key} [{conflict.lang}]")
        lines.append(f"    local:  {_display(conflict.local_value)}")
        remote = f"    remote: {_display(conflict.remote_value)}"
        if conflict.remote_updated_at:
            remote += f" (updated {conflict.remote_updated_at}"
            if conflict.remote_updated_by:
                remote += f" by {conflict.remote_updated_by}"
            remote += ")"
        lines.append(remote)
    return "\n".join(lines)


def format_conflict_detail(conflict: EntryConflict) -> str:
    """Format a single conflict with a unified diff of the two values."""
    lines = [
        f"Conflict: {conflict.key} [{conflict.lang}] ({conflict.conflict_type.value})",
        f"  local:  {_display(conflict.local_value)}",
        f"  remote: {_display(conflict.remote_value)}",
    ]
    if conflict.remote_updated_at:
        lines.append(f"  remote updated: {conflict.remote_updated_at}")
    if conflict.local_value is not None and conflict.remote_value is not None:
        diff = list(
            difflib.unified_diff(
                conflict.remote_value.splitlines(),
                conflict.local_value.splitlines(),
                fromfile="remote",
                tofile="local",
                lineterm="",
            )
        )
        if diff:
            lines.append("")
            lines.extend(f"  {line}" for line in diff)
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: PushReport) -> dict:
    """Convert a push report to a JSON-serialisable dict."""
    return {
        "status": report.status.value,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": report.summary(),
        "changes": report.changes.model_dump(mode="json", by_alias=True),
        "conflicts": [
            c.model_dump(mode="json", by_alias=True) for c in report.conflicts
        ],
        "warnings": list(report.warnings),
    }


def error_to_json(error: BaseException) -> dict:
    """Describe a failed cycle for ``--json`` output."""
    payload = {
        "status": PushStatus.FAILED.value,
        "error": str(error),
        "error_type": type(error).__name__,
    }
    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        payload["status_code"] = status_code
    return payload
