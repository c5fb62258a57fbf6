"""Tests for the credential store and credential precedence."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from lrm_sync.core.auth import AUTH_FILE, Credentials, TokenStore, resolve_credentials

HOST = "lrm.example.com"


def _write_auth(project_dir: Path, data: dict) -> None:
    """Write ``.lrm/auth.json`` the way ``lrm login`` leaves it."""
    path = project_dir / AUTH_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def _token(token: str = "tok", expires_at: datetime | None = None) -> dict:
    return {
        "accessToken": token,
        "expiresAt": expires_at.isoformat() if expires_at else None,
    }


class TestTokenStore:
    def test_missing_file_has_no_token(self, tmp_path: Path):
        assert TokenStore(tmp_path).get_token(HOST) is None

    def test_unexpired_token(self, tmp_path: Path):
        _write_auth(
            tmp_path, {HOST: _token(expires_at=datetime.now(timezone.utc) + timedelta(hours=1))}
        )
        assert TokenStore(tmp_path).get_token(HOST) == "tok"

    def test_expired_token_is_absent(self, tmp_path: Path):
        _write_auth(tmp_path, {HOST: _token(expires_at=datetime(2026, 1, 1, tzinfo=timezone.utc))})
        store = TokenStore(tmp_path)
        assert store.get_token(HOST, now=datetime(2026, 6, 1, tzinfo=timezone.utc)) is None

    def test_token_without_expiry_never_expires(self, tmp_path: Path):
        _write_auth(tmp_path, {HOST: _token()})
        assert TokenStore(tmp_path).get_token(HOST) == "tok"

    def test_zulu_timestamp_is_parsed(self, tmp_path: Path):
        _write_auth(
            tmp_path, {HOST: {"accessToken": "tok", "expiresAt": "2026-01-01T00:00:00Z"}}
        )
        store = TokenStore(tmp_path)
        assert store.get_token(HOST, now=datetime(2025, 12, 31, tzinfo=timezone.utc)) == "tok"
        assert store.get_token(HOST, now=datetime(2026, 1, 2, tzinfo=timezone.utc)) is None

    def test_unreadable_file_is_empty(self, tmp_path: Path):
        path = tmp_path / AUTH_FILE
        path.parent.mkdir(parents=True)
        path.write_text("{nope", encoding="utf-8")
        assert TokenStore(tmp_path).get_token(HOST) is None

    def test_api_key_kept_alongside_token(self, tmp_path: Path):
        _write_auth(tmp_path, {HOST: _token()})
        store = TokenStore(tmp_path)
        store.set_api_key(HOST, "key")
        assert store.get_api_key(HOST) == "key"
        assert store.get_token(HOST) == "tok"

    def test_api_key_file_uses_camel_case_keys(self, tmp_path: Path):
        TokenStore(tmp_path).set_api_key(HOST, "key")
        data = json.loads((tmp_path / AUTH_FILE).read_text(encoding="utf-8"))
        assert data[HOST]["apiKey"] == "key"
        assert "updatedAt" in data[HOST]

    def test_remove_token_keeps_api_key(self, tmp_path: Path):
        _write_auth(
            tmp_path,
            {HOST: {**_token(), "apiKey": "key"}, "other.example.com": _token("tok2")},
        )
        store = TokenStore(tmp_path)

        assert store.remove_token(HOST) is True

        assert store.get_token(HOST) is None
        assert store.get_api_key(HOST) == "key"
        assert store.get_token("other.example.com") == "tok2"

    def test_remove_last_credential_drops_host(self, tmp_path: Path):
        _write_auth(tmp_path, {HOST: _token()})
        store = TokenStore(tmp_path)
        store.remove_token(HOST)
        assert json.loads(store.path.read_text(encoding="utf-8")) == {}

    def test_remove_missing_token(self, tmp_path: Path):
        assert TokenStore(tmp_path).remove_token(HOST) is False

    def test_remove_api_key(self, tmp_path: Path):
        store = TokenStore(tmp_path)
        store.set_api_key(HOST, "key")
        assert store.remove_api_key(HOST) is True
        assert store.get_api_key(HOST) is None
        assert store.remove_api_key(HOST) is False

    def test_remove_all_tokens_keeps_api_keys(self, tmp_path: Path):
        _write_auth(
            tmp_path,
            {
                HOST: {**_token(), "apiKey": "key"},
                "other.example.com": _token("tok2"),
                "keys.example.com": {"apiKey": "key3"},
            },
        )
        store = TokenStore(tmp_path)

        assert sorted(store.remove_all_tokens()) == [HOST, "other.example.com"]

        assert store.get_token(HOST) is None
        assert store.get_token("other.example.com") is None
        assert store.get_api_key(HOST) == "key"
        assert store.get_api_key("keys.example.com") == "key3"
        assert store.remove_all_tokens() == []


class TestResolveCredentials:
    def test_explicit_api_key_wins(self, tmp_path: Path):
        store = TokenStore(tmp_path)
        store.set_api_key(HOST, "stored")
        creds = resolve_credentials(store, HOST, api_key="explicit", token="t")
        assert creds == Credentials(api_key="explicit")

    def test_explicit_token_before_stored(self, tmp_path: Path):
        store = TokenStore(tmp_path)
        store.set_api_key(HOST, "stored")
        assert resolve_credentials(store, HOST, token="t") == Credentials(token="t")

    def test_stored_api_key_before_stored_token(self, tmp_path: Path):
        _write_auth(tmp_path, {HOST: _token()})
        store = TokenStore(tmp_path)
        store.set_api_key(HOST, "stored")
        assert resolve_credentials(store, HOST) == Credentials(api_key="stored")

    def test_stored_token_is_used(self, tmp_path: Path):
        _write_auth(tmp_path, {HOST: _token()})
        assert resolve_credentials(TokenStore(tmp_path), HOST) == Credentials(token="tok")

    def test_nothing_stored_is_empty(self, tmp_path: Path):
        creds = resolve_credentials(TokenStore(tmp_path), HOST)
        assert creds.is_empty
