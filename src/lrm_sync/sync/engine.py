"""Push engine that orchestrates one key-level sync cycle.

The ``PushEngine`` ties together extraction, baseline, merger, resolver
and the cloud client.  One call to ``push()``:

1. Fetches the remote project and checks compatibility.
2. Discovers language files and extracts hashed entries.
3. Loads the baseline (missing, corrupted and legacy files all mean a
   first sync).
4. Computes the changeset; stops early when it is empty or on dry run.
5. Pushes; hands any conflicts to the resolver.
6. Sends resolutions, pushes kept local deletions again against the
   server hash, and writes Remote/Edit values back to local files.
7. Merges every confirmed hash into a new baseline and saves it once.

Hard failures (configuration, authentication, compatibility, transport,
cancellation) propagate as exceptions and leave the baseline untouched.
Unresolved or aborted conflicts end the cycle with a report instead.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

from ..backends.base import (
    LanguageInfo,
    ResourceBackend,
    ResourceEntry,
    WritableBackend,
)
from ..errors import CompatibilityError, ConfigurationError
from .extractor import extract_entries, language_code
from .hashes import EntryHashes
from .merger import compute_push_changes, merge_baseline
from .models import (
    ConflictResolution,
    ConflictType,
    EntryConflict,
    EntryDeletion,
    KeySyncPushRequest,
    KeySyncResolveRequest,
    PushOutcome,
    PushReport,
    PushStatus,
    ResolutionChoice,
)
from .resolver import ConflictResolver, ResolutionState
from .state import BaselineState, BaselineStore
from .validator import validate_compatibility

if TYPE_CHECKING:
    from ..core.cancellation import CancelToken
    from ..core.client import CloudClient

logger = logging.getLogger(__name__)

CORRUPTED_WARNING = (
    "Sync state file was corrupted and has been ignored; "
    "this push is treated as a first sync."
)
MIGRATION_WARNING = (
    "Sync state uses the old file-based format; "
    "migrating to key-level sync (this push is treated as a first sync)."
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _keeps_local_deletion(
    resolution: ConflictResolution, conflict: EntryConflict | None
) -> bool:
    """True for a Local choice on a pair deleted here but changed remotely."""
    return (
        conflict is not None
        and conflict.conflict_type is ConflictType.DELETED_LOCALLY_MODIFIED_REMOTELY
        and resolution.resolution is ResolutionChoice.LOCAL
        and resolution.edited_value is None
    )


class WriteBack(NamedTuple):
    """Outcome of writing resolved values into local files."""

    warnings: list[str]
    removed: list[tuple[str, str]]
    skipped: list[tuple[str, str]]


class PushEngine:
    """Run push cycles for one project directory.

    Args:
        client: Cloud client for the remote project.
        backend: Resource backend for the local files.
        store: Baseline store of the project.
        resolver: Conflict resolution policy.
        resource_path: Directory holding the resource files.
        default_language: Local default language, if configured.
        cancel_token: Optional cancellation flag.
    """

    def __init__(
        self,
        client: CloudClient,
        backend: ResourceBackend,
        store: BaselineStore,
        resolver: ConflictResolver,
        resource_path: Path,
        default_language: str | None = None,
        cancel_token: CancelToken | None = None,
    ) -> None:
        self.client = client
        self.backend = backend
        self.store = store
        self.resolver = resolver
        self.resource_path = resource_path
        self.default_language = default_language
        self.cancel_token = cancel_token

    def _checkpoint(self, step: str) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(step)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def push(
        self,
        message: str | None = None,
        dry_run: bool = False,
        languages: Collection[str] | None = None,
    ) -> PushReport:
        """Execute one push cycle.

        Args:
            message: Optional description stored with the server history.
            dry_run: If ``True``, compute the changeset but send nothing
                and save nothing.
            languages: Restrict the push to these language codes.  Baseline
                pairs in other languages are kept as they are.

        Returns:
            A ``PushReport`` describing the outcome.
        """
        started_at = _now()
        warnings: list[str] = []

        # Step a: Validate remote project
        self._checkpoint("project validation")
        project = self.client.get_project()
        validation = validate_compatibility(
            project, self.backend.name, self.default_language
        )
        if not validation.is_valid:
            raise CompatibilityError(validation.errors)
        warnings.extend(validation.warnings)
        default_language = self.default_language or project.default_language

        # Step b: Extract local entries
        self._checkpoint("discovery")
        discovered = self.backend.discover_languages(self.resource_path)
        if not discovered:
            raise ConfigurationError(
                f"No {self.backend.name} resource files found in {self.resource_path}"
            )
        lang_map = {language_code(lang, default_language): lang for lang in discovered}
        if languages is not None:
            missing = sorted(set(languages) - lang_map.keys())
            if missing:
                raise ConfigurationError(
                    f"Language(s) not found locally: {', '.join(missing)}"
                )
            selected = [lang_map[code] for code in sorted(set(languages))]
        else:
            selected = list(discovered)
        entries = extract_entries(
            self.backend, selected, default_language, self.cancel_token
        )
        logger.info(
            "Extracted %d entries from %d language file(s)",
            len(entries),
            len(selected),
        )

        # Step c: Load baseline
        self._checkpoint("baseline load")
        loaded = self.store.load()
        if loaded.was_corrupted:
            logger.warning(CORRUPTED_WARNING)
            warnings.append(CORRUPTED_WARNING)
        if loaded.needs_migration:
            logger.warning(MIGRATION_WARNING)
            warnings.append(MIGRATION_WARNING)
        baseline = loaded.state

        # Step d: Compute changes
        scope = set(languages) if languages is not None else None
        changes = compute_push_changes(entries, baseline, scope)
        if changes.is_empty:
            logger.info("No changes to push")
            return PushReport(
                status=PushStatus.NOTHING_TO_SYNC,
                warnings=warnings,
                started_at=started_at,
                completed_at=_now(),
            )
        if dry_run:
            return PushReport(
                status=PushStatus.DRY_RUN,
                changes=changes,
                warnings=warnings,
                started_at=started_at,
                completed_at=_now(),
            )

        # Step e: Push
        self._checkpoint("push")
        response = self.client.key_sync_push(
            KeySyncPushRequest(
                message=message,
                entries=changes.entries,
                deletions=changes.deletions,
            )
        )
        logger.info(
            "Push applied %d, deleted %d, %d conflict(s)",
            response.applied,
            response.deleted,
            len(response.conflicts),
        )
        new_hashes = EntryHashes(response.new_hashes)
        applied = response.applied
        deleted = response.deleted
        resolutions: list[ConflictResolution] = []
        removed_locally: list[tuple[str, str]] = []
        unsettled: set[tuple[str, str]] = set()

        # Step f: Resolve conflicts
        if response.conflicts:
            result = self.resolver.resolve(list(response.conflicts))
            if result.state is not ResolutionState.RESOLVED:
                status = (
                    PushStatus.ABORTED
                    if result.state is ResolutionState.ABORTED
                    else PushStatus.CONFLICTS
                )
                return PushReport(
                    status=status,
                    changes=changes,
                    applied=response.applied,
                    deleted=response.deleted,
                    conflicts=response.conflicts,
                    warnings=warnings,
                    started_at=started_at,
                    completed_at=_now(),
                )
            resolutions = result.resolutions
            conflicts = {(c.key, c.lang): c for c in response.conflicts}
            retries = [
                EntryDeletion(
                    key=r.key,
                    lang=r.lang,
                    base_hash=conflicts[(r.key, r.lang)].remote_hash,
                )
                for r in resolutions
                if _keeps_local_deletion(r, conflicts.get((r.key, r.lang)))
            ]
            retried_pairs = {(d.key, d.lang) for d in retries}
            to_resolve = [r for r in resolutions if (r.key, r.lang) not in retried_pairs]

            if to_resolve:
                self._checkpoint("resolve")
                resolved = self.client.key_sync_resolve(
                    KeySyncResolveRequest(resolutions=to_resolve)
                )
                logger.info("Resolve applied %d resolution(s)", resolved.applied)
                new_hashes.merge(EntryHashes(resolved.new_hashes))
                applied += resolved.applied

            if retries:
                # A Local choice without a value is a no-op on the resolve
                # endpoint; the deletion goes out again with the server hash.
                self._checkpoint("deletion retry")
                retried = self.client.key_sync_push(
                    KeySyncPushRequest(message=message, deletions=retries)
                )
                logger.info("Deletion retry removed %d pair(s)", retried.deleted)
                deleted += retried.deleted
                for conflict in retried.conflicts:
                    notice = (
                        f"Deletion of '{conflict.key}' [{conflict.lang}] was rejected "
                        "again because the server copy changed; push again to retry."
                    )
                    logger.warning(notice)
                    warnings.append(notice)
                    unsettled.add((conflict.key, conflict.lang))

            write_back = self._apply_resolutions_locally(
                to_resolve, response.conflicts, lang_map
            )
            warnings.extend(write_back.warnings)
            removed_locally = write_back.removed
            unsettled.update(write_back.skipped)
            # Local files changed; hashes must come from the new content.
            entries = extract_entries(
                self.backend, selected, default_language, self.cancel_token
            )

        # Step g: Merge and persist baseline
        self._checkpoint("baseline save")
        outcome = PushOutcome(
            applied=applied,
            deleted=deleted,
            new_hashes=new_hashes.to_dict(),
        )
        deletions = [
            *changes.deletions,
            *(EntryDeletion(key=key, lang=lang) for key, lang in removed_locally),
        ]
        merged = merge_baseline(
            baseline, outcome.hashes(), entries, deletions, keep=sorted(unsettled)
        )
        self.store.save(BaselineState(entries=merged))
        logger.info("Baseline saved with %d pair(s)", len(merged))

        return PushReport(
            status=PushStatus.SUCCESS,
            changes=changes,
            applied=outcome.applied,
            deleted=outcome.deleted,
            resolved=len(resolutions),
            warnings=warnings,
            started_at=started_at,
            completed_at=_now(),
        )

    # ------------------------------------------------------------------
    # Local write-back
    # ------------------------------------------------------------------

    def _apply_resolutions_locally(
        self,
        resolutions: list[ConflictResolution],
        conflicts: list[EntryConflict],
        lang_map: dict[str, LanguageInfo],
    ) -> WriteBack:
        """Write Remote and Edit outcomes into the local resource files.

        Pairs that could not be written (read-only backend, missing language
        file, plural entries) are returned as skipped.
        """
        remote_values = {(c.key, c.lang): c.remote_value for c in conflicts}
        pending: dict[str, dict[str, str | None]] = {}
        for resolution in resolutions:
            match resolution.resolution:
                case ResolutionChoice.EDIT:
                    value = resolution.edited_value
                case ResolutionChoice.REMOTE:
                    value = remote_values.get((resolution.key, resolution.lang))
                case _:
                    continue
            pending.setdefault(resolution.lang, {})[resolution.key] = value

        if not pending:
            return WriteBack([], [], [])
        if not isinstance(self.backend, WritableBackend):
            message = (
                f"The {self.backend.name} backend cannot write files; "
                f"{sum(len(v) for v in pending.values())} resolved value(s) "
                "were not applied locally."
            )
            logger.warning(message)
            skipped = [(key, lang) for lang, values in pending.items() for key in values]
            return WriteBack([message], [], skipped)

        result = WriteBack([], [], [])
        for lang, values in pending.items():
            language = lang_map.get(lang)
            if language is None:
                message = f"No local file for language '{lang}'; resolved values not written."
                logger.warning(message)
                result.warnings.append(message)
                result.skipped.extend((key, lang) for key in values)
                continue
            resource_file = self.backend.read(language)
            written = 0
            for key, value in values.items():
                existing = resource_file.find(key)
                if existing is not None and existing.is_plural:
                    message = (
                        f"Plural entry '{key}' [{lang}] was not updated locally; "
                        "edit its forms by hand and push again."
                    )
                    logger.warning(message)
                    result.warnings.append(message)
                    result.skipped.append((key, lang))
                    continue
                if value is None:
                    if existing is not None:
                        resource_file.entries.remove(existing)
                    result.removed.append((key, lang))
                elif existing is None:
                    resource_file.entries.append(ResourceEntry(key=key, value=value))
                else:
                    existing.value = value
                written += 1
            if written:
                self.backend.write(resource_file)
                logger.info(
                    "Wrote %d resolved value(s) to %s", written, language.file_path
                )
        return result
