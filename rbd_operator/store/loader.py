"""Loader for cluster state files.

A state file is a multi-document yaml file holding the objects a handler
reads while resolving: the RainbondCluster, RbdComponents, Secrets,
RainbondVolumes and Pods. Documents of any other kind are skipped.
"""

import logging
from pathlib import Path
from typing import Any

import aiofiles
from mashumaro.exceptions import InvalidFieldValue, MissingField
import yaml

from rbd_operator.cluster import (
    RAINBOND_CLUSTER_KIND,
    RAINBOND_VOLUME_KIND,
    RBD_COMPONENT_KIND,
    RainbondCluster,
    RainbondVolume,
    RbdComponent,
)
from rbd_operator.exceptions import InputException
from rbd_operator.manifest import POD_KIND, SECRET_KIND, KubernetesObject, Pod, Secret

from .in_memory import InMemoryStore
from .store import Store

__all__ = ["parse_state_doc", "load_state", "read_cluster_state"]

_LOGGER = logging.getLogger(__name__)


def parse_state_doc(doc: dict[str, Any]) -> KubernetesObject | None:
    """Parse a raw kubernetes object, returning None for unsupported kinds."""
    if not (kind := doc.get("kind")):
        raise InputException(f"Invalid object missing kind: {doc}")
    if kind == RAINBOND_CLUSTER_KIND:
        return RainbondCluster.parse_doc(doc)
    if kind == RBD_COMPONENT_KIND:
        return RbdComponent.parse_doc(doc)
    if kind == RAINBOND_VOLUME_KIND:
        return RainbondVolume.parse_doc(doc)
    if kind == SECRET_KIND:
        return Secret.parse_doc(doc)
    if kind == POD_KIND:
        return Pod.parse_doc(doc)
    return None


def load_state(content: str, store: Store | None = None) -> Store:
    """Parse the yaml content into a store."""
    if store is None:
        store = InMemoryStore()
    try:
        docs = list(yaml.safe_load_all(content))
    except yaml.YAMLError as err:
        raise InputException(f"Invalid yaml in cluster state: {err}") from err
    for doc in docs:
        if not doc:
            continue
        if not isinstance(doc, dict):
            raise InputException(f"Invalid object in cluster state: {doc}")
        try:
            obj = parse_state_doc(doc)
        except (MissingField, InvalidFieldValue) as err:
            raise InputException(
                f"Invalid {doc.get('kind')} in cluster state: {err}"
            ) from err
        if obj is None:
            _LOGGER.debug("Skipping unsupported document kind %s", doc.get("kind"))
            continue
        store.add_object(obj)
    return store


async def read_cluster_state(state_path: Path) -> Store:
    """Return a store holding the contents of a cluster state file."""
    try:
        async with aiofiles.open(str(state_path)) as state_file:
            content = await state_file.read()
    except OSError as err:
        raise InputException(f"Failed to read file {state_path}: {err}") from err
    if not content:
        raise InputException(f"Cluster state file {state_path} is empty")
    _LOGGER.debug("Loading cluster state from %s", state_path)
    return load_state(content)
