"""Key-level push of localization entries with conflict resolution.

Architecture
------------

Local resource files are flattened into ``LocalEntry`` records, each
carrying a content hash.  The baseline (``.lrm/sync-state.json``)
remembers, per key and language, the hash the server last accepted.  A
push sends only the entries whose hash moved since then, each with the
baseline hash as ``baseHash``; the server applies a change only when its
stored hash still equals that ``baseHash`` and reports a conflict
otherwise.  Conflicts are settled by a resolution policy and sent back in
a second call.  The baseline is rewritten once, after everything
succeeded.

Modules
-------

- ``hashing``   -- SHA-256 content hashes (NFC, value + comment).
- ``hashes``    -- ``EntryHashes`` two-level key/language map.
- ``models``    -- Pydantic wire and report models.
- ``extractor`` -- resource files -> ``LocalEntry`` list.
- ``state``     -- ``BaselineStore`` load/save with corruption detection.
- ``merger``    -- changeset computation and baseline merge.
- ``resolver``  -- Force / Interactive / AbortOnConflict policies.
- ``validator`` -- local/remote compatibility checks.
- ``reporter``  -- text and JSON output.
- ``engine``    -- ``PushEngine`` orchestrating one cycle.

Usage
-----

::

    from lrm_sync.sync import PushEngine, BaselineStore, create_resolver

    engine = PushEngine(
        client=client,
        backend=JsonBackend(),
        store=BaselineStore(project_dir),
        resolver=create_resolver(force=True),
        resource_path=project_dir / "Resources",
    )
    report = engine.push(message="Update greetings")
"""

from .engine import PushEngine
from .extractor import extract_entries
from .hashes import EntryHashes
from .hashing import compute_hash, compute_plural_hash
from .merger import compute_push_changes, merge_baseline
from .models import (
    ChangeSet,
    ConflictResolution,
    ConflictType,
    EntryChange,
    EntryConflict,
    EntryDeletion,
    LocalEntry,
    PushOutcome,
    PushReport,
    PushStatus,
    ResolutionChoice,
)
from .resolver import (
    AbortOnConflictResolver,
    ConflictResolver,
    ForceResolver,
    InteractiveResolver,
    ResolutionState,
    create_resolver,
)
from .state import BaselineState, BaselineStore, LoadResult

__all__ = [
    "AbortOnConflictResolver",
    "BaselineState",
    "BaselineStore",
    "ChangeSet",
    "ConflictResolution",
    "ConflictResolver",
    "ConflictType",
    "EntryChange",
    "EntryConflict",
    "EntryDeletion",
    "EntryHashes",
    "ForceResolver",
    "InteractiveResolver",
    "LoadResult",
    "LocalEntry",
    "PushEngine",
    "PushOutcome",
    "PushReport",
    "PushStatus",
    "ResolutionChoice",
    "ResolutionState",
    "compute_hash",
    "compute_plural_hash",
    "compute_push_changes",
    "create_resolver",
    "extract_entries",
    "merge_baseline",
]
