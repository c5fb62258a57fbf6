"""Parsing of cloud remote URLs.

Two shapes are accepted::

    https://host[:port]/<organization>/<project>
    https://host[:port]/@<username>/<project>

The second form addresses a personal project.  The API lives under
``/api`` on the same host.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from ..errors import ConfigurationError


@dataclass(frozen=True)
class RemoteUrl:
    host: str
    project: str
    organization: str | None = None
    username: str | None = None
    port: int | None = None
    use_https: bool = True

    @property
    def is_personal(self) -> bool:
        return self.username is not None

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        if self.port is None:
            return f"{scheme}://{self.host}"
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def api_base_url(self) -> str:
        return f"{self.base_url}/api"

    @property
    def project_api_url(self) -> str:
        """Endpoint returning the project metadata."""
        if self.is_personal:
            return f"{self.api_base_url}/users/{self.username}/projects/{self.project}"
        return f"{self.api_base_url}/projects/{self.organization}/{self.project}"

    def __str__(self) -> str:
        owner = f"@{self.username}" if self.is_personal else self.organization
        return f"{self.base_url}/{owner}/{self.project}"


def parse_remote_url(url: str | None) -> RemoteUrl:
    """Parse a remote URL string.

    Raises:
        ConfigurationError: If the URL is empty or not one of the two
            accepted shapes.
    """
    if url is None or not url.strip():
        raise ConfigurationError("Remote URL cannot be empty")
    url = url.strip()

    invalid = ConfigurationError(
        f"Invalid remote URL format: '{url}'. Expected "
        "https://host/org/project or https://host/@username/project"
    )

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise invalid
    try:
        port = parsed.port
    except ValueError:
        raise invalid from None

    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) != 2:
        raise invalid
    owner, project = segments

    if owner.startswith("@"):
        username = owner[1:]
        if not username:
            raise invalid
        return RemoteUrl(
            host=parsed.hostname,
            project=project,
            username=username,
            port=port,
            use_https=parsed.scheme == "https",
        )
    return RemoteUrl(
        host=parsed.hostname,
        project=project,
        organization=owner,
        port=port,
        use_https=parsed.scheme == "https",
    )
