"""
YAML config file loading for lrm_sync.

The project's settings live in ``.lrm/config.yml``; ``LRM_SYNC_CONFIG``
names a different file instead.  The file may pull sections in from
other files with ``!include`` and reference the environment with
``${VAR}`` or ``${VAR:-default}``.

Usage:
    from lrm_sync.config_loader import load_config_file

    raw = load_config_file(project_dir)
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LRM_SYNC_CONFIG"
PROJECT_CONFIG = Path(".lrm") / "config.yml"

# ${VAR} or ${VAR:-default}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def _env_value(match: re.Match) -> str:
    return os.environ.get(match.group(1)) or match.group(2) or ""


def expand_env(value: Any) -> Any:
    """Substitute environment references in every string inside *value*.

    ``${VAR:-default}`` falls back to *default* when VAR is unset or empty;
    an unset ``${VAR}`` becomes the empty string.
    """
    if isinstance(value, str):
        return _ENV_REF.sub(_env_value, value)
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    return value


class _IncludeLoader(yaml.SafeLoader):
    """SafeLoader that also understands ``!include <path>``.

    ``chain`` holds the files being loaded, outermost first; relative
    include paths resolve against the last of them.
    """

    def __init__(self, stream, chain: tuple[Path, ...]) -> None:
        super().__init__(stream)
        self.chain = chain

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node))
        if not target.is_absolute():
            target = self.chain[-1].parent / target
        target = target.resolve()
        if target in self.chain:
            cycle = " -> ".join(str(path) for path in (*self.chain, target))
            raise ConfigurationError(f"Circular include: {cycle}")
        if not target.is_file():
            raise ConfigurationError(
                f"Included file {target} (from {self.chain[-1]}) does not exist"
            )
        return read_yaml(target, (*self.chain, target))


_IncludeLoader.add_constructor("!include", _IncludeLoader.include)


def read_yaml(path: Path, chain: tuple[Path, ...] | None = None) -> Any:
    """Parse one YAML file, following its includes."""
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = _IncludeLoader(fh, chain or (path,))
        try:
            return loader.get_single_data()
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Cannot parse {path}: {exc}") from exc
        finally:
            loader.dispose()


def find_config_file(project_dir: Path | None = None) -> Path | None:
    """Return the config file to use, or ``None`` when there is none.

    Raises:
        ConfigurationError: If ``LRM_SYNC_CONFIG`` names a missing file.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override).expanduser().resolve()
        if not path.is_file():
            raise ConfigurationError(f"{CONFIG_ENV_VAR} points to {path}, which does not exist")
        return path

    path = (project_dir or Path.cwd()) / PROJECT_CONFIG
    return path if path.is_file() else None


def load_config_file(project_dir: Path | None = None) -> dict[str, Any]:
    """Load the config file with environment references expanded.

    Returns an empty dict when there is no file or it holds only comments.
    """
    path = find_config_file(project_dir)
    if path is None:
        logger.debug("No config file found, using defaults")
        return {}

    logger.debug("Loading config: %s", path)
    data = read_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{path} must hold a mapping of sections, not a {type(data).__name__}"
        )
    return expand_env(data)


_STARTER_CONFIG = """\
# lrm-sync configuration
#
# Connection settings can also come from environment variables
# (or a .env file):
#   LRM_REMOTE, LRM_API_KEY, LRM_TOKEN, LRM_INSECURE
#
# cloud:
#   remote: https://lrm.example.com/acme/mobile-app
#   api_key: ${LRM_API_KEY}
#   insecure: false
#   timeout: 60
#
# resources:
#   path: Resources
#   format: json
#   default_language: en
#
# logging:
#   level: WARNING
#   file: null
"""


def ensure_config(project_dir: Path | None = None) -> Path:
    """Return the active config file, writing a starter one if none exists."""
    existing = find_config_file(project_dir)
    if existing is not None:
        logger.debug("Config file already exists: %s", existing)
        return existing

    config_path = (project_dir or Path.cwd()) / PROJECT_CONFIG
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path
