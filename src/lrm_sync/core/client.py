import logging
import threading
from typing import Any

import requests

from ..errors import AuthenticationError, TransportError, translate_http_error
from ..sync.models import (
    KeySyncPushRequest,
    KeySyncPushResponse,
    KeySyncResolveRequest,
    KeySyncResolveResponse,
    ProjectInfo,
)
from .auth import Credentials
from .cancellation import CancelToken
from .remote_url import RemoteUrl

logger = logging.getLogger(__name__)


class CloudClient:
    """Blocking client for the cloud project API.

    Every call is a single request/response; the cancel token is checked
    before each request so a cancelled cycle never starts a new one.
    """

    def __init__(
        self,
        remote: RemoteUrl,
        credentials: Credentials,
        insecure: bool = False,
        cancel_token: CancelToken | None = None,
        timeout: tuple[float, float] = (10, 60),
    ):
        self.remote = remote
        self.credentials = credentials
        self.insecure = insecure
        self.cancel_token = cancel_token
        self.timeout = timeout
        self._thread_local = threading.local()
        self._project_id: int | str | None = None

    @property
    def session(self) -> requests.Session:
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.verify = not self.insecure
        session.headers["Accept"] = "application/json"
        if self.credentials.api_key:
            session.headers["X-API-Key"] = self.credentials.api_key
        elif self.credentials.token:
            session.headers["Authorization"] = f"Bearer {self.credentials.token}"
        return session

    def _request(self, method: str, url: str, body: dict | None = None) -> Any:
        """
        Send one request and return the unwrapped ``data`` payload.
        """
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(f"{method} {url}")
        if self.credentials.is_empty:
            raise AuthenticationError(
                f"Not authenticated with {self.remote.host}. "
                "Set LRM_API_KEY or store a token in .lrm/auth.json."
            )

        logger.debug("%s %s", method, url)
        try:
            response = self._get_session().request(
                method,
                url,
                json=body,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise translate_http_error(exc) from exc

        if not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Invalid JSON from {url}: {exc}", response.status_code
            ) from exc

        match payload:
            case {"data": data}:
                return data
            case _:
                return payload

    def _sync_url(self, action: str) -> str:
        if self._project_id is None:
            self.get_project()
        return f"{self.remote.api_base_url}/projects/{self._project_id}/sync/{action}"

    def get_project(self) -> ProjectInfo:
        """
        Fetch the remote project's metadata and remember its id.
        """
        data = self._request("GET", self.remote.project_api_url)
        project = ProjectInfo.model_validate(data)
        self._project_id = project.id
        return project

    def key_sync_push(self, request: KeySyncPushRequest) -> KeySyncPushResponse:
        """
        Push entry upserts and deletions.  Conflicts come back as data.
        """
        data = self._request(
            "POST",
            self._sync_url("push"),
            request.model_dump(mode="json", by_alias=True),
        )
        return KeySyncPushResponse.model_validate(data or {})

    def key_sync_resolve(
        self, request: KeySyncResolveRequest
    ) -> KeySyncResolveResponse:
        """
        Send conflict resolutions.
        """
        data = self._request(
            "POST",
            self._sync_url("resolve"),
            request.model_dump(mode="json", by_alias=True),
        )
        return KeySyncResolveResponse.model_validate(data or {})
