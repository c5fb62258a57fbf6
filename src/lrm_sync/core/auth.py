"""Per-host credential storage in ``.lrm/auth.json``.

The file maps a host name to its stored credentials::

    {
      "lrm.example.com": {
        "accessToken": "...",
        "expiresAt": "2026-11-01T10:00:00+00:00",
        "apiKey": null,
        "updatedAt": "2026-10-01T10:00:00+00:00"
      }
    }

Access tokens are written by the interactive ``lrm login`` of the main
tool. ``lrm-sync logout`` removes them and ``lrm-sync set-api-key``
manages API keys.  An expired access token is treated as absent.  An
unreadable file is treated as empty so a damaged credential cache never
blocks a push that supplies its key through the environment.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

AUTH_FILE = Path(".lrm") / "auth.json"


@dataclass(frozen=True)
class Credentials:
    """Credential used for one session: a bearer token or an API key."""

    token: str | None = None
    api_key: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.token and not self.api_key


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TokenStore:
    """Read and write the credential cache of one project directory."""

    def __init__(self, project_dir: Path) -> None:
        self._path = project_dir / AUTH_FILE

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    def get_token(self, host: str, now: datetime | None = None) -> str | None:
        """Return the stored access token for *host*, or ``None`` if expired."""
        info = self._read().get(host)
        if not isinstance(info, dict):
            return None
        token = info.get("accessToken")
        if not token:
            return None
        expires_at = _parse_timestamp(info.get("expiresAt"))
        now = now or datetime.now(timezone.utc)
        if expires_at is not None and expires_at < now:
            logger.debug("Stored token for %s expired at %s", host, expires_at)
            return None
        return token

    def remove_token(self, host: str) -> bool:
        """Forget the access token for *host*, keeping any stored API key.

        Returns ``True`` if a token was stored.
        """
        data = self._read()
        info = data.get(host)
        if not isinstance(info, dict) or not info.get("accessToken"):
            return False
        info.pop("accessToken", None)
        info.pop("expiresAt", None)
        self._store_host(data, host, info)
        return True

    def remove_all_tokens(self) -> list[str]:
        """Forget every stored access token.  Returns the affected hosts."""
        data = self._read()
        hosts = [
            host
            for host, info in data.items()
            if isinstance(info, dict) and info.get("accessToken")
        ]
        for host in hosts:
            self.remove_token(host)
        return hosts

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    def get_api_key(self, host: str) -> str | None:
        info = self._read().get(host)
        if not isinstance(info, dict):
            return None
        return info.get("apiKey") or None

    def set_api_key(self, host: str, api_key: str) -> None:
        data = self._read()
        info = data.get(host) if isinstance(data.get(host), dict) else {}
        info["apiKey"] = api_key
        info["updatedAt"] = datetime.now(timezone.utc).isoformat()
        self._store_host(data, host, info)

    def remove_api_key(self, host: str) -> bool:
        """Forget the API key for *host*.  Returns ``True`` if one was stored."""
        data = self._read()
        info = data.get(host)
        if not isinstance(info, dict) or not info.get("apiKey"):
            return False
        info.pop("apiKey", None)
        self._store_host(data, host, info)
        return True

    def _store_host(self, data: dict, host: str, info: dict) -> None:
        if info.get("accessToken") or info.get("apiKey"):
            data[host] = info
        else:
            data.pop(host, None)
        self._write(data)


def resolve_credentials(
    store: TokenStore,
    host: str,
    api_key: str | None = None,
    token: str | None = None,
) -> Credentials:
    """Pick the credential for a session.

    Precedence: explicit API key > explicit token > stored API key >
    stored (unexpired) token.
    """
    if api_key:
        return Credentials(api_key=api_key)
    if token:
        return Credentials(token=token)
    stored_key = store.get_api_key(host)
    if stored_key:
        return Credentials(api_key=stored_key)
    return Credentials(token=store.get_token(host))
