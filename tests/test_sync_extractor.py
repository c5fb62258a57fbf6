"""Tests for local entry extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from lrm_sync.backends.json_backend import JsonBackend
from lrm_sync.core.cancellation import CancelToken
from lrm_sync.errors import OperationCancelled
from lrm_sync.sync.extractor import extract_entries, language_code
from lrm_sync.sync.hashing import compute_hash, compute_plural_hash


@pytest.fixture
def resources(tmp_path: Path, write_resources) -> Path:
    return write_resources(
        tmp_path,
        {
            "strings.json": {
                "Greeting": "Hello",
                "Save": {"_value": "Save", "_comment": "toolbar"},
                "Items": {"one": "1 item", "other": "{n} items"},
                "Blank": None,
            },
            "strings.fr.json": {"Greeting": "Bonjour"},
        },
    )


def _extract(path: Path, default_language: str | None = "en"):
    backend = JsonBackend()
    return extract_entries(backend, backend.discover_languages(path), default_language)


def _by_pair(path: Path):
    return {(e.key, e.language): e for e in _extract(path)}


def test_one_entry_per_key_and_language(resources):
    entries = _extract(resources)
    assert sorted((e.key, e.language) for e in entries) == [
        ("Blank", "en"),
        ("Greeting", "en"),
        ("Greeting", "fr"),
        ("Items", "en"),
        ("Save", "en"),
    ]


def test_hashes_cover_value_and_comment(resources):
    entries = _by_pair(resources)
    assert entries["Greeting", "fr"].content_hash == compute_hash("Bonjour")
    assert entries["Save", "en"].content_hash == compute_hash("Save", "toolbar")
    assert entries["Save", "en"].comment == "toolbar"


def test_plural_entries_use_plural_hash(resources):
    items = _by_pair(resources)["Items", "en"]
    assert items.is_plural
    assert items.content_hash == compute_plural_hash(
        {"one": "1 item", "other": "{n} items"}
    )


def test_null_value_is_empty_string(resources):
    blank = _by_pair(resources)["Blank", "en"]
    assert blank.value == ""
    assert blank.content_hash == compute_hash("")


def test_default_file_without_known_language(resources):
    languages = {e.language for e in _extract(resources, default_language=None)}
    assert languages == {"", "fr"}


def test_extraction_is_deterministic(resources):
    assert _extract(resources) == _extract(resources)


def test_language_code_only_maps_default_file(resources):
    languages = JsonBackend().discover_languages(resources)
    assert [language_code(lang, "en") for lang in languages] == ["en", "fr"]


def test_cancel_stops_extraction(resources):
    token = CancelToken()
    token.cancel()
    backend = JsonBackend()
    with pytest.raises(OperationCancelled, match="extraction"):
        extract_entries(backend, backend.discover_languages(resources), "en", token)
