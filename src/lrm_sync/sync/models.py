"""Pydantic models for the key-level push cycle.

Defines the data contracts shared by the sync modules:

- ``LocalEntry``: one (key, language) value extracted from a resource file.
- ``EntryChange`` / ``EntryDeletion`` / ``ChangeSet``: what a push sends.
- ``EntryConflict`` / ``ConflictType``: what the server rejects.
- ``ConflictResolution`` / ``ResolutionChoice``: how a conflict is settled.
- ``KeySyncPushRequest`` / ``KeySyncPushResponse`` and
  ``KeySyncResolveRequest`` / ``KeySyncResolveResponse``: wire bodies.
- ``ProjectInfo``: remote project metadata.
- ``PushOutcome``, ``PushStatus``, ``PushReport``: results of a cycle.

Wire models serialize with camelCase aliases (``baseHash``,
``newHashes``) and accept either spelling on input.  All models are
frozen.
"""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, Field
from pydantic.alias_generators import to_camel

from .hashes import EntryHashes

_WIRE_CONFIG = {
    "frozen": True,
    "alias_generator": to_camel,
    "populate_by_name": True,
}


# ---------------------------------------------------------------------------
# Local side
# ---------------------------------------------------------------------------


class LocalEntry(BaseModel):
    """A single localized value as found on disk.

    Attributes:
        key: Resource key (nested JSON keys are dot-joined).
        language: Language code; ``""`` for the default language file.
        value: Text value.  Empty string is a real value, not absence.
        comment: Translator comment, part of the hashed content.
        is_plural: True when ``plural_forms`` carries the real content.
        plural_forms: CLDR category -> text for plural entries.
        content_hash: Hash of value (or plural forms) plus comment.
    """

    key: str
    language: str
    value: str = ""
    comment: str | None = None
    is_plural: bool = False
    plural_forms: dict[str, str] | None = None
    content_hash: str

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Changeset
# ---------------------------------------------------------------------------


class EntryChange(BaseModel):
    """An upsert for one (key, language) pair.

    ``base_hash`` is the hash the client believes the server holds;
    ``None`` means the pair is new.
    """

    key: str
    lang: str
    value: str
    comment: str | None = None
    is_plural: bool = False
    plural_forms: dict[str, str] | None = None
    base_hash: str | None = None

    model_config = _WIRE_CONFIG


class EntryDeletion(BaseModel):
    """A deletion for one (key, language) pair.

    ``lang=None`` would delete the key in every language.  The client only
    ever sends per-language deletions.
    """

    key: str
    lang: str | None = None
    base_hash: str | None = None

    model_config = _WIRE_CONFIG


class ChangeSet(BaseModel):
    """Minimal set of upserts and deletions for one push."""

    entries: list[EntryChange] = []
    deletions: list[EntryDeletion] = []

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not self.entries and not self.deletions

    @property
    def additions(self) -> list[EntryChange]:
        return [e for e in self.entries if e.base_hash is None]

    @property
    def modifications(self) -> list[EntryChange]:
        return [e for e in self.entries if e.base_hash is not None]


# ---------------------------------------------------------------------------
# Conflicts and resolutions
# ---------------------------------------------------------------------------


class ConflictType(str, Enum):
    """Why the server rejected a change."""

    BOTH_MODIFIED = "bothModified"
    DELETED_LOCALLY_MODIFIED_REMOTELY = "deletedLocallyModifiedRemotely"
    DELETED_REMOTELY_MODIFIED_LOCALLY = "deletedRemotelyModifiedLocally"

    @classmethod
    def _missing_(cls, value: object) -> ConflictType | None:
        if isinstance(value, str):
            folded = value.replace("_", "").lower()
            for member in cls:
                if member.value.lower() == folded:
                    return member
        return None


class EntryConflict(BaseModel):
    """A pair whose server hash did not match the submitted base hash.

    Attributes:
        key: Resource key.
        lang: Language code.
        conflict_type: Kind of conflict.
        local_value: Value the client tried to push (``None`` for deletes).
        remote_value: Value currently stored on the server.
        remote_hash: Hash currently stored on the server.
        remote_updated_at: When the server copy last changed.
        remote_updated_by: Who changed it, when the server knows.
    """

    key: str
    lang: str
    conflict_type: ConflictType = Field(
        default=ConflictType.BOTH_MODIFIED,
        validation_alias=AliasChoices("type", "conflictType", "conflict_type"),
        serialization_alias="type",
    )
    local_value: str | None = None
    remote_value: str | None = None
    remote_hash: str | None = None
    remote_updated_at: str | None = None
    remote_updated_by: str | None = None

    model_config = _WIRE_CONFIG


class ResolutionChoice(str, Enum):
    """Side chosen for a conflict."""

    LOCAL = "Local"
    REMOTE = "Remote"
    EDIT = "Edit"


class ConflictResolution(BaseModel):
    """Decision for one conflict, sent to the resolve endpoint.

    For ``LOCAL`` and ``EDIT`` the server stores ``edited_value``; for
    ``REMOTE`` it keeps its own copy and reports its hash.
    """

    key: str
    lang: str
    target_type: str = "Entry"
    resolution: ResolutionChoice
    edited_value: str | None = None
    comment: str | None = None

    model_config = _WIRE_CONFIG


# ---------------------------------------------------------------------------
# Wire bodies
# ---------------------------------------------------------------------------


class KeySyncPushRequest(BaseModel):
    message: str | None = None
    entries: list[EntryChange] = []
    deletions: list[EntryDeletion] = []

    model_config = _WIRE_CONFIG


class KeySyncPushResponse(BaseModel):
    applied: int = 0
    deleted: int = 0
    conflicts: list[EntryConflict] = []
    new_hashes: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        validation_alias=AliasChoices(
            "newEntryHashes", "newHashes", "new_hashes"
        ),
    )

    model_config = _WIRE_CONFIG


class KeySyncResolveRequest(BaseModel):
    resolutions: list[ConflictResolution] = []

    model_config = _WIRE_CONFIG


class KeySyncResolveResponse(BaseModel):
    applied: int = 0
    new_hashes: dict[str, dict[str, str]] = Field(default_factory=dict)

    model_config = _WIRE_CONFIG


class ProjectInfo(BaseModel):
    """Remote project metadata used for compatibility checks."""

    id: int | str
    name: str = ""
    format: str | None = None
    default_language: str | None = None

    model_config = _WIRE_CONFIG


# ---------------------------------------------------------------------------
# Cycle results
# ---------------------------------------------------------------------------


class PushOutcome(BaseModel):
    """Counts and hashes accepted by the server in one cycle."""

    applied: int = 0
    deleted: int = 0
    new_hashes: dict[str, dict[str, str]] = {}

    model_config = {"frozen": True}

    def hashes(self) -> EntryHashes:
        return EntryHashes(self.new_hashes)


class PushStatus(str, Enum):
    """Final state of a push cycle."""

    SUCCESS = "success"
    NOTHING_TO_SYNC = "nothing_to_sync"
    DRY_RUN = "dry_run"
    CONFLICTS = "conflicts"
    ABORTED = "aborted"
    FAILED = "failed"


class PushReport(BaseModel):
    """Aggregate report for one push cycle.

    Attributes:
        status: Final state of the cycle.
        changes: The changeset that was (or would be) sent.
        applied: Upserts the server accepted, including resolutions.
        deleted: Deletions the server accepted.
        resolved: Conflicts settled through the resolve call.
        conflicts: Conflicts left unresolved.
        warnings: Non-fatal notices (corrupted baseline, migration, ...).
        started_at: ISO 8601 timestamp when the cycle started.
        completed_at: ISO 8601 timestamp when the cycle ended.
    """

    status: PushStatus
    changes: ChangeSet = Field(default_factory=ChangeSet)
    applied: int = 0
    deleted: int = 0
    resolved: int = 0
    conflicts: list[EntryConflict] = []
    warnings: list[str] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> bool:
        return self.status in (
            PushStatus.SUCCESS,
            PushStatus.NOTHING_TO_SYNC,
            PushStatus.DRY_RUN,
        )

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def summary(self) -> dict[str, int]:
        """Return counts by category."""
        return {
            "additions": len(self.changes.additions),
            "modifications": len(self.changes.modifications),
            "deletions": len(self.changes.deletions),
            "applied": self.applied,
            "deleted": self.deleted,
            "resolved": self.resolved,
            "conflicts": len(self.conflicts),
        }
