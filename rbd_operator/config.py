"""Configuration objects for rbd-operator."""

from dataclasses import dataclass
import logging
import os

_LOGGER = logging.getLogger(__name__)


CACHE_STORAGE_REQUEST_ENV = "CHAOS_CACHE_STORAGE_REQUEST"
GRDATA_STORAGE_REQUEST_ENV = "GRDATA_STORAGE_REQUEST"

DEFAULT_CACHE_STORAGE_REQUEST = 10
DEFAULT_GRDATA_STORAGE_REQUEST = 40


def storage_request_from_env(name: str, default: int) -> int:
    """Return a storage request in GiB from the environment, or the default."""
    if not (value := os.environ.get(name)):
        return default
    try:
        request = int(value)
    except ValueError:
        _LOGGER.warning(
            "Ignoring invalid storage request %s=%s, using %d", name, value, default
        )
        return default
    if request <= 0:
        _LOGGER.warning(
            "Ignoring non-positive storage request %s=%s, using %d", name, value, default
        )
        return default
    return request


@dataclass
class HandlerConfig:
    """Configuration for component handlers."""

    cache_storage_request: int = DEFAULT_CACHE_STORAGE_REQUEST
    """Size in GiB of the build cache claim."""

    grdata_storage_request: int = DEFAULT_GRDATA_STORAGE_REQUEST
    """Size in GiB of the shared data claim."""

    @classmethod
    def from_env(cls) -> "HandlerConfig":
        """Create a configuration from environment variables."""
        return cls(
            cache_storage_request=storage_request_from_env(
                CACHE_STORAGE_REQUEST_ENV, DEFAULT_CACHE_STORAGE_REQUEST
            ),
            grdata_storage_request=storage_request_from_env(
                GRDATA_STORAGE_REQUEST_ENV, DEFAULT_GRDATA_STORAGE_REQUEST
            ),
        )
