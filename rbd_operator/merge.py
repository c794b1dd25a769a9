"""Library for merging user supplied overrides into handler defaults.

Each merge walks the base list in order and substitutes an override with the
same key in place. Overrides with keys not present in the base are appended
at the end in the order they were declared. When the override list repeats a
key, the last entry wins.
"""

from collections.abc import Callable, Iterable
import logging
from typing import TypeVar

from .manifest import EnvVar, Volume, VolumeMount

__all__ = [
    "merge",
    "merge_envs",
    "merge_volume_mounts",
    "merge_volumes",
    "merge_args",
    "arg_key",
]

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


def merge(
    base: Iterable[_T], overrides: Iterable[_T], key: Callable[[_T], str]
) -> list[_T]:
    """Merge the overrides into the base list using the key of each item."""
    pending: dict[str, _T] = {}
    for item in overrides:
        pending[key(item)] = item

    result: list[_T] = []
    consumed: set[str] = set()
    for item in base:
        item_key = key(item)
        if item_key in pending:
            _LOGGER.debug("Override replaces default for %s", item_key)
            result.append(pending[item_key])
            consumed.add(item_key)
        else:
            result.append(item)
    result.extend(item for item_key, item in pending.items() if item_key not in consumed)
    return result


def merge_envs(base: Iterable[EnvVar], overrides: Iterable[EnvVar]) -> list[EnvVar]:
    """Merge environment variables keyed by name."""
    return merge(base, overrides, lambda env: env.name)


def merge_volume_mounts(
    base: Iterable[VolumeMount], overrides: Iterable[VolumeMount]
) -> list[VolumeMount]:
    """Merge volume mounts keyed by the mount path."""
    return merge(base, overrides, lambda mount: mount.mount_path)


def merge_volumes(base: Iterable[Volume], overrides: Iterable[Volume]) -> list[Volume]:
    """Merge volumes keyed by name."""
    return merge(base, overrides, lambda volume: volume.name)


def arg_key(arg: str) -> str:
    """Return the key of a command line argument.

    Flag style arguments such as `--rbd-namespace=rbd-system` are keyed by the
    flag name so that an override may replace the value. Anything else is keyed
    by the whole string.
    """
    if arg.startswith("-") and "=" in arg:
        return arg.split("=", 1)[0]
    return arg


def merge_args(base: Iterable[str], overrides: Iterable[str]) -> list[str]:
    """Merge command line arguments keyed by flag name."""
    return merge(base, overrides, arg_key)
