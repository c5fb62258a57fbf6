"""Runtime configuration for a push.

Reads the remote, credentials and resource settings from CLI args,
environment variables, .env files, ``.lrm/cloud.json`` and the YAML
config.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > .lrm/cloud.json > YAML config > Built-in defaults

Environment variables:
    LRM_REMOTE: Remote URL (required unless configured elsewhere)
    LRM_API_KEY: Project API key
    LRM_TOKEN: Bearer access token
    LRM_INSECURE: Skip SSL verification (optional, default: false)
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .config_schema import UnifiedConfig
from .core.remote_url import RemoteUrl, parse_remote_url
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CLOUD_FILE = Path(".lrm") / "cloud.json"


@dataclass
class Config:
    remote: str
    project_dir: Path
    resource_path: Path
    format: str = "json"
    default_language: str | None = None
    api_key: str | None = None
    token: str | None = None
    insecure: bool = False
    debug: bool = False
    timeout: float = 60

    @property
    def remote_url(self) -> RemoteUrl:
        return parse_remote_url(self.remote)


def get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def read_cloud_file(project_dir: Path) -> dict:
    """Read ``.lrm/cloud.json`` (remote and API key saved by earlier logins).

    Returns an empty dict if the file is missing.

    Raises:
        ConfigurationError: If the file exists but is not a JSON object.
    """
    path = project_dir / CLOUD_FILE
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return data


def resolve_remote(
    project_dir: Path,
    remote: str | None = None,
    unified: UnifiedConfig | None = None,
) -> str | None:
    """Return the remote URL, or ``None`` when none is configured.

    Precedence: *remote* > ``LRM_REMOTE`` > ``.lrm/cloud.json`` > YAML.
    """
    unified = unified or UnifiedConfig()
    return (
        remote
        or os.getenv("LRM_REMOTE")
        or read_cloud_file(project_dir).get("remote")
        or unified.cloud.remote
    )


def validate_config(config: Config) -> None:
    """Validate configuration values.

    Raises:
        ConfigurationError: If the remote is missing or malformed, or the
            resource directory does not exist.
    """
    config.remote = config.remote.strip()
    # Raises ConfigurationError on malformed URLs
    remote = parse_remote_url(config.remote)

    if not config.resource_path.is_dir():
        raise ConfigurationError(
            f"Resource path '{config.resource_path}' does not exist or is not a directory"
        )

    if config.insecure:
        logger.warning(
            "SSL verification disabled (insecure=True). Use only for development."
        )
    if not remote.use_https and remote.host not in ("localhost", "127.0.0.1"):
        logger.warning("Remote %s does not use HTTPS", remote.host)


def load_config(
    project_dir: Path,
    remote: str | None = None,
    api_key: str | None = None,
    resource_path: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    unified: UnifiedConfig | None = None,
) -> Config:
    """Load configuration with unified precedence.

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        project_dir: Project root containing ``.lrm/``.
        remote: Override remote URL.
        api_key: Override API key.
        resource_path: Override resource directory (relative to project).
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        unified: Parsed YAML config, used as the lowest-precedence source.

    Returns:
        Validated Config instance.

    Raises:
        ConfigurationError: If no remote is configured or a value is invalid.
    """
    unified = unified or UnifiedConfig()
    cloud_file = read_cloud_file(project_dir)

    # --- Remote: CLI > env > cloud.json > YAML > error ---

    final_remote = resolve_remote(project_dir, remote, unified)
    if not final_remote:
        raise ConfigurationError(
            "No remote configured. Set LRM_REMOTE environment variable, "
            "pass --remote, or add 'cloud.remote' to .lrm/config.yml."
        )

    # --- Credentials: CLI > env > cloud.json > YAML ---
    # Stored login tokens live in .lrm/auth.json (see core.auth).

    final_api_key = (
        api_key
        or os.getenv("LRM_API_KEY")
        or cloud_file.get("apiKey")
        or unified.cloud.api_key
    )
    final_token = os.getenv("LRM_TOKEN") or unified.cloud.token

    # --- Booleans: CLI > env > YAML > default ---

    if insecure:
        final_insecure = True
    else:
        env_insecure = get_bool_env("LRM_INSECURE")
        final_insecure = (
            env_insecure if env_insecure is not None else unified.cloud.insecure
        )

    config = Config(
        remote=final_remote,
        project_dir=project_dir,
        resource_path=project_dir / (resource_path or unified.resources.path),
        format=unified.resources.format,
        default_language=unified.resources.default_language,
        api_key=final_api_key,
        token=final_token,
        insecure=final_insecure,
        debug=debug,
        timeout=unified.cloud.timeout,
    )

    validate_config(config)

    return config
