"""Shared pytest fixtures for lrm-sync tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from dotenv import load_dotenv

from lrm_sync.sync.hashing import compute_hash
from lrm_sync.sync.models import (
    ConflictType,
    EntryConflict,
    KeySyncPushRequest,
    KeySyncPushResponse,
    KeySyncResolveRequest,
    KeySyncResolveResponse,
    ProjectInfo,
    ResolutionChoice,
)
from lrm_sync.sync.resolver import BatchMode, ConflictAction

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live cloud instance",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# Fake remote
# ---------------------------------------------------------------------------


class FakeCloudClient:
    """In-memory cloud project with per-(key, language) compare-and-swap.

    ``translations`` maps ``(key, lang)`` to ``(value, comment)``.  A change
    is applied only when the submitted base hash equals the stored hash (or
    the content is already identical); otherwise a conflict is reported.
    A ``None`` base hash creates the pair, and conflicts if the pair already
    exists with different content.  An upsert with a base hash for a pair
    the server no longer has is a deleted-remotely conflict.
    """

    def __init__(
        self,
        translations: dict[tuple[str, str], tuple[str, str | None]] | None = None,
        project: ProjectInfo | None = None,
    ) -> None:
        self.translations = dict(translations or {})
        self.project = project or ProjectInfo(
            id=42, name="mobile-app", format="json", default_language="en"
        )
        self.push_requests: list[KeySyncPushRequest] = []
        self.resolve_requests: list[KeySyncResolveRequest] = []
        self.project_calls = 0

    def stored_hash(self, key: str, lang: str) -> str | None:
        stored = self.translations.get((key, lang))
        if stored is None:
            return None
        return compute_hash(*stored)

    def get_project(self) -> ProjectInfo:
        self.project_calls += 1
        return self.project

    def key_sync_push(self, request: KeySyncPushRequest) -> KeySyncPushResponse:
        self.push_requests.append(request)
        applied = 0
        deleted = 0
        conflicts: list[EntryConflict] = []
        new_hashes: dict[str, dict[str, str]] = {}

        for change in request.entries:
            current = self.stored_hash(change.key, change.lang)
            incoming = compute_hash(change.value, change.comment)
            if current is None and change.base_hash is not None:
                conflicts.append(
                    EntryConflict(
                        key=change.key,
                        lang=change.lang,
                        conflict_type=ConflictType.DELETED_REMOTELY_MODIFIED_LOCALLY,
                        local_value=change.value,
                        remote_updated_at="2026-10-18T09:00:00Z",
                    )
                )
                continue
            if current is not None and current != incoming and change.base_hash != current:
                conflicts.append(
                    EntryConflict(
                        key=change.key,
                        lang=change.lang,
                        conflict_type=ConflictType.BOTH_MODIFIED,
                        local_value=change.value,
                        remote_value=self.translations[(change.key, change.lang)][0],
                        remote_hash=current,
                        remote_updated_at="2026-10-18T09:00:00Z",
                        remote_updated_by="translator@example.com",
                    )
                )
                continue
            self.translations[(change.key, change.lang)] = (change.value, change.comment)
            new_hashes.setdefault(change.key, {})[change.lang] = incoming
            applied += 1

        for deletion in request.deletions:
            langs = (
                [deletion.lang]
                if deletion.lang is not None
                else [lang for key, lang in self.translations if key == deletion.key]
            )
            for lang in langs:
                current = self.stored_hash(deletion.key, lang)
                if current is None:
                    continue
                if deletion.base_hash is not None and deletion.base_hash != current:
                    conflicts.append(
                        EntryConflict(
                            key=deletion.key,
                            lang=lang,
                            conflict_type=ConflictType.DELETED_LOCALLY_MODIFIED_REMOTELY,
                            local_value=None,
                            remote_value=self.translations[(deletion.key, lang)][0],
                            remote_hash=current,
                            remote_updated_at="2026-10-18T09:00:00Z",
                        )
                    )
                    continue
                del self.translations[(deletion.key, lang)]
                deleted += 1

        return KeySyncPushResponse(
            applied=applied,
            deleted=deleted,
            conflicts=conflicts,
            new_hashes=new_hashes,
        )

    def key_sync_resolve(
        self, request: KeySyncResolveRequest
    ) -> KeySyncResolveResponse:
        self.resolve_requests.append(request)
        applied = 0
        new_hashes: dict[str, dict[str, str]] = {}
        for resolution in request.resolutions:
            pair = (resolution.key, resolution.lang)
            if resolution.resolution is ResolutionChoice.REMOTE:
                current = self.stored_hash(*pair)
                if current is not None:
                    new_hashes.setdefault(resolution.key, {})[resolution.lang] = current
                applied += 1
                continue
            if resolution.edited_value is None:
                # Local without a value leaves the server copy alone.
                continue
            comment = resolution.comment
            if comment is None and pair in self.translations:
                comment = self.translations[pair][1]
            self.translations[pair] = (resolution.edited_value, comment)
            new_hashes.setdefault(resolution.key, {})[resolution.lang] = compute_hash(
                resolution.edited_value, comment
            )
            applied += 1
        return KeySyncResolveResponse(applied=applied, new_hashes=new_hashes)


class ScriptedPrompter:
    """Prompter that replays canned answers."""

    def __init__(
        self,
        batch_mode: BatchMode = BatchMode.EACH,
        actions: list[ConflictAction] | None = None,
        edits: list[str] | None = None,
    ) -> None:
        self.batch_mode = batch_mode
        self.actions = list(actions or [])
        self.edits = list(edits or [])
        self.asked: list[str] = []

    def choose_batch_mode(self, conflicts):
        self.asked.append("batch")
        return self.batch_mode

    def choose_action(self, conflict, index, total):
        self.asked.append(f"{conflict.key}:{conflict.lang}")
        return self.actions.pop(0)

    def edit_value(self, conflict):
        return self.edits.pop(0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_client():
    return FakeCloudClient()


@pytest.fixture
def write_resources():
    """Factory writing ``{file_name: document}`` JSON files into a directory."""

    def _write(directory: Path, files: dict[str, dict]) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        for name, document in files.items():
            (directory / name).write_text(
                json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        return directory

    return _write
