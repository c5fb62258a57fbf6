"""JSON resource files.

Files are named ``<base>.json`` for the default language and
``<base>.<culture>.json`` for every other language (``strings.fr.json``,
``strings.pt-BR.json``).  Files whose name starts with ``lrm`` are tool
configuration and are never treated as resources.

Nested objects are flattened with ``.`` into keys.  Two object shapes are
leaves rather than namespaces:

* ``{"_value": "...", "_comment": "..."}`` -- a value with a comment.
* An object whose keys are all CLDR plural categories (plus an optional
  ``_comment``) -- a plural entry.

Other keys starting with ``_`` (``_meta``) are metadata and are skipped.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from charset_normalizer import from_bytes

from .base import LanguageInfo, ResourceEntry, ResourceFile

logger = logging.getLogger(__name__)

PLURAL_CATEGORIES = frozenset({"zero", "one", "two", "few", "many", "other"})

_CULTURE_PATTERN = re.compile(r"^[a-z]{2,3}(-[A-Za-z0-9]{2,8})*$")


# =============================================================================
# Encoding-aware file reading
# =============================================================================


def read_text(path: Path) -> str:
    """Read a file with automatic encoding detection.

    Defaults to UTF-8 for empty files or when detection fails.
    """
    raw = path.read_bytes()
    if not raw:
        return ""
    if raw.startswith(b"\xef\xbb\xbf"):
        return raw[3:].decode("utf-8")

    result = from_bytes(raw).best()
    if result is None:
        # Detection failed, fall back to utf-8
        return raw.decode("utf-8", errors="replace")
    return str(result)


# =============================================================================
# File name parsing
# =============================================================================


def is_culture_code(value: str) -> bool:
    return bool(_CULTURE_PATTERN.match(value))


def parse_file_name(path: Path) -> tuple[str, str]:
    """Split a resource file name into ``(base_name, culture_code)``.

    Tries progressively longer culture codes from the end so that
    ``strings.zh.Hans.json`` resolves to ``("strings", "zh-Hans")``.
    A name without a recognizable culture is the default language.
    """
    parts = path.stem.split(".")
    for i in range(1, len(parts)):
        candidate = "-".join(parts[i:])
        if is_culture_code(candidate):
            return ".".join(parts[:i]), candidate
    return path.stem, ""


# =============================================================================
# Flattening
# =============================================================================


def _is_plural_object(obj: dict) -> bool:
    keys = {k for k in obj if k != "_comment"}
    return (
        bool(keys)
        and "other" in keys
        and keys <= PLURAL_CATEGORIES
        and all(isinstance(obj[k], str) for k in keys)
    )


def _flatten(obj: dict, prefix: str, out: list[ResourceEntry]) -> None:
    for name, value in obj.items():
        if name.startswith("_"):
            continue
        key = f"{prefix}.{name}" if prefix else name
        match value:
            case str():
                out.append(ResourceEntry(key=key, value=value))
            case {"_value": inner, **rest}:
                comment = rest.get("_comment")
                out.append(
                    ResourceEntry(
                        key=key,
                        value=None if inner is None else str(inner),
                        comment=comment if isinstance(comment, str) else None,
                    )
                )
            case dict() if _is_plural_object(value):
                forms = {k: v for k, v in value.items() if k != "_comment"}
                comment = value.get("_comment")
                out.append(
                    ResourceEntry(
                        key=key,
                        value=forms.get("other", ""),
                        comment=comment if isinstance(comment, str) else None,
                        is_plural=True,
                        plural_forms=forms,
                    )
                )
            case dict():
                _flatten(value, key, out)
            case None:
                out.append(ResourceEntry(key=key, value=None))
            case bool() | int() | float():
                out.append(ResourceEntry(key=key, value=json.dumps(value)))
            case _:
                logger.warning("Skipping unsupported value for key '%s'", key)


def _dedupe(entries: list[ResourceEntry], source: Path) -> list[ResourceEntry]:
    """Keep the first entry for each key.

    ``{"a.b": ...}`` and ``{"a": {"b": ...}}`` flatten to the same key.
    """
    seen: set[str] = set()
    unique: list[ResourceEntry] = []
    for entry in entries:
        if entry.key in seen:
            logger.warning(
                "Duplicate key '%s' in %s; keeping the first value", entry.key, source
            )
            continue
        seen.add(entry.key)
        unique.append(entry)
    return unique


def _leaf(entry: ResourceEntry) -> Any:
    if entry.is_plural and entry.plural_forms:
        node: dict[str, Any] = dict(sorted(entry.plural_forms.items()))
        if entry.comment:
            node["_comment"] = entry.comment
        return node
    if entry.comment:
        return {"_value": entry.value or "", "_comment": entry.comment}
    return entry.value or ""


def _is_plural_names(names: set[str]) -> bool:
    return "other" in names and names <= PLURAL_CATEGORIES


def _unflatten(entries: list[ResourceEntry]) -> dict[str, Any]:
    """Rebuild nested objects from dot-joined keys.

    A key is written flat (``"a.b": ...`` at the top level) when nesting it
    would not read back as the same key: one of its prefixes is itself a
    key, a prefix would look like a plural object, or a segment is empty or
    starts with ``_``.
    """
    keys = {entry.key for entry in entries}
    children: dict[str, set[str]] = {}
    for key in keys:
        parts = key.split(".")
        for i in range(1, len(parts)):
            children.setdefault(".".join(parts[:i]), set()).add(parts[i])

    def nestable(parts: list[str]) -> bool:
        if any(not part or part.startswith("_") for part in parts):
            return False
        for i in range(1, len(parts)):
            prefix = ".".join(parts[:i])
            if prefix in keys or _is_plural_names(children[prefix]):
                return False
        return True

    root: dict[str, Any] = {}
    for entry in entries:
        parts = entry.key.split(".")
        if len(parts) == 1 or not nestable(parts):
            root[entry.key] = _leaf(entry)
            continue
        node = root
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = _leaf(entry)
    return root


# =============================================================================
# Backend
# =============================================================================


class JsonBackend:
    """Read and write ``<base>[.<culture>].json`` resource files."""

    name = "json"

    def discover_languages(self, path: Path) -> list[LanguageInfo]:
        """Return the language files in *path*, default language first."""
        if not path.is_dir():
            return []

        languages: list[LanguageInfo] = []
        for file_path in sorted(path.glob("*.json")):
            if file_path.name.lower().startswith("lrm"):
                continue
            base_name, code = parse_file_name(file_path)
            languages.append(
                LanguageInfo(
                    base_name=base_name,
                    code=code,
                    file_path=file_path,
                    is_default=code == "",
                    name="Default" if code == "" else code,
                )
            )
        languages.sort(key=lambda lang: (not lang.is_default, lang.code))
        logger.debug(
            "Discovered %d JSON resource file(s) in %s", len(languages), path
        )
        return languages

    def read(self, language: LanguageInfo) -> ResourceFile:
        text = read_text(language.file_path)
        if not text.strip():
            return ResourceFile(language=language)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(
                f"Invalid JSON in {language.file_path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Resource file {language.file_path} must contain a JSON object"
            )
        entries: list[ResourceEntry] = []
        _flatten(data, "", entries)
        return ResourceFile(
            language=language, entries=_dedupe(entries, language.file_path)
        )

    def write(self, resource_file: ResourceFile) -> None:
        """Persist *resource_file* atomically, keeping ``_meta`` blocks."""
        target = resource_file.language.file_path
        metadata: dict[str, Any] = {}
        if target.exists():
            try:
                existing = json.loads(read_text(target) or "{}")
            except json.JSONDecodeError:
                existing = {}
            if isinstance(existing, dict):
                metadata = {
                    k: v for k, v in existing.items() if k.startswith("_")
                }

        document = {**metadata, **_unflatten(resource_file.entries)}

        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(target.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp_path, target)
        except BaseException:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d entries to %s", len(resource_file.entries), target)
