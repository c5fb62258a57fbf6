"""Exception taxonomy for the sync tool.

Every failure that ends a push cycle maps onto one of the classes below.
Conflicts are never raised: they travel as data in the push response and
are handed to the conflict resolver.  A corrupted baseline is not raised
either; the engine downgrades it to a warning and treats the cycle as a
first sync.
"""

from __future__ import annotations

import requests


class LrmSyncError(Exception):
    """Base class for all sync failures."""


class ConfigurationError(LrmSyncError):
    """Missing or invalid configuration, such as an absent or malformed remote."""


class AuthenticationError(LrmSyncError):
    """Credential missing, expired, or rejected by the server."""


class CompatibilityError(LrmSyncError):
    """Local resources cannot be synced with the remote project.

    Raised before any diffing so that no partial push happens.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(
            "Local configuration is incompatible with the remote project: "
            + "; ".join(self.errors)
        )


class OperationCancelled(LrmSyncError):
    """The cycle was cancelled before completion."""


# ---------------------------------------------------------------------------
# Transport errors with corrective actions
# ---------------------------------------------------------------------------

_STATUS_GUIDANCE: dict[int, str] = {
    401: "Authentication expired or invalid. Log in again or set LRM_API_KEY.",
    403: "You don't have permission to push to this project. Ask a project admin for write access.",
    404: "Project not found. Check the remote URL with 'lrm-sync status' or fix 'cloud.remote' in the config.",
    409: "The server reported a conflict. Run the push again with --interactive or --force.",
}


class TransportError(LrmSyncError):
    """Network or HTTP failure talking to the remote service.

    Attributes:
        status_code: HTTP status, or ``None`` for network-level failures.
        guidance: Corrective action for the user, may be empty.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.guidance = guidance_for_status(status_code)

    def __str__(self) -> str:
        message = super().__str__()
        if self.guidance:
            return f"{message}\n\nAction: {self.guidance}"
        return message


def guidance_for_status(status_code: int | None) -> str:
    """Return the corrective action for an HTTP status code."""
    if status_code is None:
        return "Check your network connection and the remote URL, then retry."
    if status_code >= 500:
        return "The server failed to process the request. Retry later."
    return _STATUS_GUIDANCE.get(status_code, "")


def _error_message(response: requests.Response) -> str:
    """Pull the server's error message out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        match body:
            case {"message": str(message)} if message:
                return message
            case {"error": {"message": str(message)}} if message:
                return message
            case {"detail": str(message)} if message:
                return message
    return f"HTTP {response.status_code}: {response.reason}"


def translate_http_error(error: requests.RequestException) -> LrmSyncError:
    """Map a ``requests`` failure onto the sync error taxonomy.

    A 401 becomes an ``AuthenticationError``; every other HTTP or network
    failure becomes a ``TransportError`` carrying the status code.
    """
    response = getattr(error, "response", None)
    match error:
        case requests.HTTPError() if response is not None:
            message = _error_message(response)
            if response.status_code == 401:
                return AuthenticationError(
                    f"{message}\n\nAction: {_STATUS_GUIDANCE[401]}"
                )
            return TransportError(message, response.status_code)
        case requests.Timeout():
            return TransportError(f"Request timed out: {error}")
        case requests.ConnectionError():
            return TransportError(f"Could not connect to server: {error}")
        case _:
            return TransportError(f"Request failed: {error}")
