"""Command line interface for lrm-sync.

Commands:
    push    Push local changes to the cloud project.
    status  Show the remote and the recorded baseline.
    reset   Forget the baseline (the next push is a first sync).
    init    Write a starter ``.lrm/config.yml``.
    set-api-key  Store (or ``--remove``) an API key for the remote host.
    logout  Remove the access token stored by ``lrm login``.

All diagnostics go to stderr; ``--json`` output goes to stdout.
"""

import argparse
import getpass
import json
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .backends import get_backend
from .config import load_config, resolve_remote
from .config_loader import ensure_config, load_config_file
from .config_schema import UnifiedConfig, build_config
from .core.auth import TokenStore, resolve_credentials
from .core.cancellation import CancelToken
from .core.client import CloudClient
from .core.remote_url import parse_remote_url
from .errors import (
    AuthenticationError,
    ConfigurationError,
    LrmSyncError,
    TransportError,
)
from .logger import setup_logging
from .sync.engine import PushEngine
from .sync.models import EntryConflict
from .sync.reporter import (
    error_to_json,
    format_conflict_detail,
    format_push_report,
    report_to_json,
)
from .sync.resolver import BatchMode, ConflictAction, create_resolver
from .sync.state import BaselineStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Console prompter
# ---------------------------------------------------------------------------


class ConsolePrompter:
    """Ask conflict questions on the terminal.

    Prompts are written to stderr so that stdout stays clean.
    """

    _BATCH_CHOICES = {
        "e": BatchMode.EACH,
        "l": BatchMode.ALL_LOCAL,
        "r": BatchMode.ALL_REMOTE,
        "a": BatchMode.ABORT,
    }
    _ACTION_CHOICES = {
        "l": ConflictAction.LOCAL,
        "r": ConflictAction.REMOTE,
        "e": ConflictAction.EDIT,
        "a": ConflictAction.ABORT,
    }

    def __init__(self, input_func=input, stream=None) -> None:
        self._input = input_func
        self._stream = stream or sys.stderr

    def _ask(self, prompt: str, choices: dict):
        while True:
            answer = self._input(prompt).strip().lower()[:1]
            if answer in choices:
                return choices[answer]
            print(f"Please answer one of: {', '.join(choices)}", file=self._stream)

    def choose_batch_mode(self, conflicts: list[EntryConflict]) -> BatchMode:
        print(
            f"\n{len(conflicts)} conflict(s) found: the remote changed since your last push.",
            file=self._stream,
        )
        return self._ask(
            "Resolve [e]ach, keep all [l]ocal, keep all [r]emote, or [a]bort? ",
            self._BATCH_CHOICES,
        )

    def choose_action(
        self, conflict: EntryConflict, index: int, total: int
    ) -> ConflictAction:
        print(f"\n({index}/{total}) {format_conflict_detail(conflict)}", file=self._stream)
        return self._ask(
            "Keep [l]ocal, keep [r]emote, [e]dit, or [a]bort? ",
            self._ACTION_CHOICES,
        )

    def edit_value(self, conflict: EntryConflict) -> str:
        return self._input(f"New value for {conflict.key} [{conflict.lang}]: ")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _project_dir(args: argparse.Namespace) -> Path:
    return Path(args.path).expanduser().resolve() if args.path else Path.cwd()


def _load_unified(project_dir: Path) -> UnifiedConfig:
    return build_config(load_config_file(project_dir))


def cmd_push(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    project_dir = _project_dir(args)
    config = load_config(
        project_dir,
        remote=args.remote,
        resource_path=args.resources,
        insecure=args.insecure,
        debug=args.debug,
        unified=unified,
    )
    remote = config.remote_url
    credentials = resolve_credentials(
        TokenStore(project_dir), remote.host, config.api_key, config.token
    )
    if credentials.is_empty:
        raise AuthenticationError(
            f"Not authenticated with {remote.host}. "
            "Set LRM_API_KEY or log in to store a token in .lrm/auth.json."
        )

    resolver = create_resolver(
        force=args.force,
        interactive=args.interactive,
        prompter=ConsolePrompter() if args.interactive else None,
    )

    cancel_token = CancelToken()
    signal.signal(signal.SIGTERM, lambda *_: cancel_token.cancel())

    client = CloudClient(
        remote,
        credentials,
        insecure=config.insecure,
        cancel_token=cancel_token,
        timeout=(10, config.timeout),
    )
    engine = PushEngine(
        client=client,
        backend=get_backend(config.format),
        store=BaselineStore(project_dir),
        resolver=resolver,
        resource_path=config.resource_path,
        default_language=config.default_language,
        cancel_token=cancel_token,
    )
    logger.info("Pushing %s to %s", config.resource_path, remote)
    report = engine.push(
        message=args.message,
        dry_run=args.dry_run,
        languages=args.lang or None,
    )

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_push_report(report))
    return report.exit_code


def cmd_status(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    project_dir = _project_dir(args)
    store = BaselineStore(project_dir)
    loaded = store.load()

    status = {
        "remote": resolve_remote(project_dir, args.remote, unified),
        "baseline": str(store.path),
        "exists": store.path.exists(),
        "corrupted": loaded.was_corrupted,
        "needs_migration": loaded.needs_migration,
        "pairs": len(loaded.state.entries) if loaded.state else 0,
        "keys": len(loaded.state.entries.keys()) if loaded.state else 0,
        "timestamp": loaded.state.timestamp if loaded.state else None,
    }
    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    print(f"Remote:   {status['remote'] or '(not configured)'}")
    print(f"Baseline: {status['baseline']}")
    if loaded.was_corrupted:
        print("  corrupted (the next push is treated as a first sync)")
    elif loaded.needs_migration:
        print("  legacy file-based format (the next push migrates it)")
    elif loaded.state is None:
        print("  none (never pushed)")
    else:
        print(
            f"  {status['pairs']} entries across {status['keys']} keys, "
            f"last push {status['timestamp']}"
        )
    return 0


def cmd_reset(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    store = BaselineStore(_project_dir(args))
    store.clear()
    print(f"Removed {store.path}; the next push uploads every entry as new.")
    return 0


def cmd_init(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    path = ensure_config(_project_dir(args))
    print(f"Config file: {path}")
    return 0


API_KEY_PREFIX = "lrm_"
MIN_API_KEY_LENGTH = 20


def _remote_host(args: argparse.Namespace, unified: UnifiedConfig) -> str:
    remote = resolve_remote(_project_dir(args), args.remote, unified)
    if not remote:
        raise ConfigurationError(
            "No remote configured. Pass --remote, set LRM_REMOTE, "
            "or add 'cloud.remote' to .lrm/config.yml."
        )
    return parse_remote_url(remote).host


def validate_api_key(api_key: str) -> str:
    """Return the trimmed key, or raise ConfigurationError if it is malformed."""
    api_key = api_key.strip()
    if not api_key:
        raise ConfigurationError("API key cannot be empty")
    if not api_key.startswith(API_KEY_PREFIX):
        raise ConfigurationError(
            f"Invalid API key format. API keys must start with '{API_KEY_PREFIX}'"
        )
    if len(api_key) < MIN_API_KEY_LENGTH:
        raise ConfigurationError("Invalid API key format. The key is too short")
    return api_key


def cmd_set_api_key(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    store = TokenStore(_project_dir(args))
    host = _remote_host(args, unified)

    if args.remove:
        if store.remove_api_key(host):
            print(f"Removed the API key for {host}.")
        else:
            print(f"No API key stored for {host}.")
        return 0

    api_key = validate_api_key(args.key if args.key is not None else getpass.getpass("API key: "))
    store.set_api_key(host, api_key)
    print(f"API key {api_key[:10]}... saved for {host} in {store.path}")
    return 0


def cmd_logout(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    store = TokenStore(_project_dir(args))

    if args.all:
        hosts = store.remove_all_tokens()
        if hosts:
            print(f"Logged out from {', '.join(sorted(hosts))}.")
        else:
            print("No stored tokens.")
        return 0

    host = args.host or _remote_host(args, unified)
    if store.remove_token(host):
        print(f"Logged out from {host}.")
    else:
        print(f"Not logged in to {host}.")
    return 0


_COMMANDS = {
    "push": cmd_push,
    "status": cmd_status,
    "reset": cmd_reset,
    "init": cmd_init,
    "set-api-key": cmd_set_api_key,
    "logout": cmd_logout,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lrm-sync",
        description="Push localization resources to a cloud project with key-level conflict detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Push with the remote from .lrm/config.yml or LRM_REMOTE
  lrm-sync push -m "Add checkout strings"

  # Preview what would be pushed
  lrm-sync push --dry-run

  # Overwrite remote values on conflict
  lrm-sync push --force

  # Choose per conflict
  lrm-sync push --interactive

  # Push only French and German
  lrm-sync push --lang fr --lang de

  # Store an API key for the configured remote (prompts for the key)
  lrm-sync set-api-key

  # JSON log records in a file
  lrm-sync push --log-file sync.log --log-format json

Exit codes: 0 on success or nothing to sync, 1 on any failure or unresolved conflict.
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"lrm-sync version {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--path",
        help="Project directory containing .lrm/ (default: current directory)",
    )
    common.add_argument(
        "--json", action="store_true", help="Write machine-readable output to stdout"
    )
    common.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    common.add_argument("--log-file", help="Also write logs to this file")
    common.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format for stderr and --log-file (default: text)",
    )

    remote_opt = argparse.ArgumentParser(add_help=False)
    remote_opt.add_argument(
        "--remote",
        help="Override the remote URL (takes precedence over LRM_REMOTE and config files)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    push = sub.add_parser("push", parents=[common, remote_opt], help="Push local changes")
    push.add_argument("-m", "--message", help="Message stored with the push")
    push.add_argument(
        "--dry-run", action="store_true", help="Show the changes without pushing"
    )
    push.add_argument(
        "--force",
        action="store_true",
        help="Resolve every conflict with the local value",
    )
    push.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Choose how to resolve each conflict",
    )
    push.add_argument(
        "--resources",
        help="Resource directory relative to the project (default: resources.path)",
    )
    push.add_argument(
        "--lang",
        action="append",
        help="Limit the push to this language code (repeatable)",
    )
    push.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )

    sub.add_parser("status", parents=[common, remote_opt], help="Show baseline status")
    sub.add_parser("reset", parents=[common], help="Delete the baseline")
    sub.add_parser("init", parents=[common], help="Create a starter config file")

    set_key = sub.add_parser(
        "set-api-key",
        parents=[common, remote_opt],
        help="Store an API key for the remote host in .lrm/auth.json",
    )
    set_key.add_argument("key", nargs="?", help="The API key (prompted for when omitted)")
    set_key.add_argument(
        "--remove", action="store_true", help="Remove the stored API key instead"
    )

    logout = sub.add_parser(
        "logout",
        parents=[common, remote_opt],
        help="Remove the stored access token",
    )
    logout.add_argument("--host", help="Host to log out from (default: the remote's host)")
    logout.add_argument(
        "--all", action="store_true", help="Remove the access tokens of every host"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the command, and return the exit code."""
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        unified = _load_unified(_project_dir(args))
        setup_logging(
            debug=args.debug,
            log_file=args.log_file or unified.logging.file,
            debug_format=args.log_format,
            level=unified.logging.level,
        )
        return _COMMANDS[args.command](args, unified)
    except LrmSyncError as exc:
        logger.debug("Command failed", exc_info=True)
        if getattr(args, "json", False):
            print(json.dumps(error_to_json(exc), indent=2))
        else:
            label = "Error"
            if isinstance(exc, TransportError) and exc.status_code:
                label = f"Error (HTTP {exc.status_code})"
            print(f"{label}: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled. Sync state was not changed.", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("Unexpected error")
        if getattr(args, "json", False):
            print(json.dumps(error_to_json(exc), indent=2))
        else:
            print(f"Unexpected error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
