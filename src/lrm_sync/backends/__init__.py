"""Resource file backends."""

from ..errors import ConfigurationError
from .base import (
    LanguageInfo,
    ResourceBackend,
    ResourceEntry,
    ResourceFile,
    WritableBackend,
)
from .json_backend import JsonBackend

_BACKENDS: dict[str, type] = {
    "json": JsonBackend,
}


def get_backend(format_name: str) -> ResourceBackend:
    """Return a backend instance for *format_name*.

    Raises:
        ConfigurationError: If no backend handles the format.
    """
    cls = _BACKENDS.get(format_name.lower())
    if cls is None:
        raise ConfigurationError(
            f"Unsupported resource format: '{format_name}'. Supported formats: {sorted(_BACKENDS)}"
        )
    return cls()


__all__ = [
    "JsonBackend",
    "LanguageInfo",
    "ResourceBackend",
    "ResourceEntry",
    "ResourceFile",
    "WritableBackend",
    "get_backend",
]
