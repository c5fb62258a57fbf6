"""Conflict resolution policies for the push engine.

Provides three policies behind the ``ConflictResolver`` protocol:

- ``ForceResolver``: every conflict is settled with the local value.
- ``InteractiveResolver``: asks a ``Prompter`` for a batch mode, then for
  each conflict in turn.  All I/O goes through the prompter, so tests can
  script the answers.
- ``AbortOnConflictResolver``: resolves nothing; the engine reports the
  conflicts and the cycle fails.

Each ``resolve()`` call returns a ``ResolutionResult`` whose ``state`` is
one of ``AWAITING_CHOICE`` (nothing decided), ``RESOLVED`` (every conflict
has a resolution) or ``ABORTED`` (the user gave up; collected resolutions
are discarded).

The ``create_resolver()`` factory maps the CLI flags to a policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from ..errors import ConfigurationError
from .models import ConflictResolution, EntryConflict, ResolutionChoice

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    AWAITING_CHOICE = "awaiting_choice"
    RESOLVED = "resolved"
    ABORTED = "aborted"


class BatchMode(str, Enum):
    """First question asked in interactive mode."""

    EACH = "each"
    ALL_LOCAL = "all_local"
    ALL_REMOTE = "all_remote"
    ABORT = "abort"


class ConflictAction(str, Enum):
    """Per-conflict answer in interactive mode."""

    LOCAL = "local"
    REMOTE = "remote"
    EDIT = "edit"
    ABORT = "abort"


@dataclass(frozen=True)
class ResolutionResult:
    state: ResolutionState
    resolutions: list[ConflictResolution] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class ConflictResolver(Protocol):
    """Protocol that all conflict resolvers must satisfy."""

    def resolve(self, conflicts: list[EntryConflict]) -> ResolutionResult:
        """Decide how each conflict is settled.

        Args:
            conflicts: Conflicts returned by the push call.

        Returns:
            The resolution state and, when resolved, one resolution per
            conflict in the same order.
        """
        ...  # pragma: no cover


class Prompter(Protocol):
    """Source of interactive answers."""

    def choose_batch_mode(self, conflicts: list[EntryConflict]) -> BatchMode:
        ...  # pragma: no cover

    def choose_action(
        self, conflict: EntryConflict, index: int, total: int
    ) -> ConflictAction:
        ...  # pragma: no cover

    def edit_value(self, conflict: EntryConflict) -> str:
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Resolution builders
# ---------------------------------------------------------------------------


def local_resolution(conflict: EntryConflict) -> ConflictResolution:
    """Keep the local side; ``edited_value`` is ``None`` for a local deletion."""
    return ConflictResolution(
        key=conflict.key,
        lang=conflict.lang,
        resolution=ResolutionChoice.LOCAL,
        edited_value=conflict.local_value,
    )


def remote_resolution(conflict: EntryConflict) -> ConflictResolution:
    return ConflictResolution(
        key=conflict.key,
        lang=conflict.lang,
        resolution=ResolutionChoice.REMOTE,
    )


def edit_resolution(conflict: EntryConflict, value: str) -> ConflictResolution:
    return ConflictResolution(
        key=conflict.key,
        lang=conflict.lang,
        resolution=ResolutionChoice.EDIT,
        edited_value=value,
    )


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


class ForceResolver:
    """Settle every conflict in favour of the local value."""

    def resolve(self, conflicts: list[EntryConflict]) -> ResolutionResult:
        logger.info("Forcing local values for %d conflict(s)", len(conflicts))
        return ResolutionResult(
            ResolutionState.RESOLVED,
            [local_resolution(c) for c in conflicts],
        )


class AbortOnConflictResolver:
    """Resolve nothing; conflicts are left for an explicit retry."""

    def resolve(self, conflicts: list[EntryConflict]) -> ResolutionResult:
        if not conflicts:
            return ResolutionResult(ResolutionState.RESOLVED)
        return ResolutionResult(ResolutionState.AWAITING_CHOICE)


class InteractiveResolver:
    """Ask the user how to settle conflicts.

    Choosing Abort at any point discards the resolutions collected so far.
    """

    def __init__(self, prompter: Prompter) -> None:
        self.prompter = prompter

    def resolve(self, conflicts: list[EntryConflict]) -> ResolutionResult:
        if not conflicts:
            return ResolutionResult(ResolutionState.RESOLVED)

        match self.prompter.choose_batch_mode(conflicts):
            case BatchMode.ALL_LOCAL:
                return ResolutionResult(
                    ResolutionState.RESOLVED,
                    [local_resolution(c) for c in conflicts],
                )
            case BatchMode.ALL_REMOTE:
                return ResolutionResult(
                    ResolutionState.RESOLVED,
                    [remote_resolution(c) for c in conflicts],
                )
            case BatchMode.ABORT:
                logger.info("Conflict resolution aborted by user")
                return ResolutionResult(ResolutionState.ABORTED)
            case BatchMode.EACH:
                return self._resolve_each(conflicts)
            case other:
                raise ValueError(f"Unknown batch mode: {other!r}")

    def _resolve_each(self, conflicts: list[EntryConflict]) -> ResolutionResult:
        resolutions: list[ConflictResolution] = []
        total = len(conflicts)
        for index, conflict in enumerate(conflicts, start=1):
            match self.prompter.choose_action(conflict, index, total):
                case ConflictAction.LOCAL:
                    resolutions.append(local_resolution(conflict))
                case ConflictAction.REMOTE:
                    resolutions.append(remote_resolution(conflict))
                case ConflictAction.EDIT:
                    value = self.prompter.edit_value(conflict)
                    resolutions.append(edit_resolution(conflict, value))
                case ConflictAction.ABORT:
                    logger.info(
                        "Conflict resolution aborted at %d/%d; discarding %d resolution(s)",
                        index,
                        total,
                        len(resolutions),
                    )
                    return ResolutionResult(ResolutionState.ABORTED)
                case other:
                    raise ValueError(f"Unknown conflict action: {other!r}")
        return ResolutionResult(ResolutionState.RESOLVED, resolutions)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_resolver(
    force: bool = False,
    interactive: bool = False,
    prompter: Prompter | None = None,
) -> ConflictResolver:
    """Create the resolver matching the CLI flags.

    Raises:
        ConfigurationError: If both flags are set, or interactive mode has
            no prompter.
    """
    if force and interactive:
        raise ConfigurationError(
            "--force and --interactive cannot be used together"
        )
    if force:
        return ForceResolver()
    if interactive:
        if prompter is None:
            raise ConfigurationError("Interactive resolution needs a prompter")
        return InteractiveResolver(prompter)
    return AbortOnConflictResolver()
