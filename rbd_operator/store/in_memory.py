"""Module for in memory object store."""

import logging
from typing import TypeVar

from rbd_operator.manifest import KubernetesObject, NamedResource

from .store import Store

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=KubernetesObject)


def _matches_labels(obj: KubernetesObject, labels: dict[str, str]) -> bool:
    obj_labels = obj.labels
    return all(obj_labels.get(key) == value for key, value in labels.items())


class InMemoryStore(Store):
    """In-memory implementation of the Store interface.

    Objects are keyed by NamedResource, adding an object with the same
    identity replaces the previous one.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryStore."""
        self._objects: dict[NamedResource, KubernetesObject] = {}

    def add_object(self, obj: KubernetesObject) -> None:
        """Add an object to the store."""
        resource_id = obj.resource_id
        if resource_id in self._objects:
            _LOGGER.debug("Updating existing object %s in store", resource_id)
        else:
            _LOGGER.debug("Adding object %s to store", resource_id)
        self._objects[resource_id] = obj

    def get_object(self, resource_id: NamedResource, cls: type[T]) -> T | None:
        """Retrieve an object by resource identity and type."""
        obj = self._objects.get(resource_id)
        if obj is not None:
            if isinstance(obj, cls):
                return obj
            raise ValueError(
                f"Object {resource_id.namespaced_name} is not of type {cls.__name__} (was {obj.__class__.__name__})"
            )
        return None

    def list_objects(
        self,
        kind: str | None = None,
        namespace: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> list[KubernetesObject]:
        """List objects, optionally filtered by kind, namespace and labels."""
        return [
            obj
            for obj in self._objects.values()
            if (kind is None or obj.kind == kind)
            and (namespace is None or obj.namespace == namespace)
            and (labels is None or _matches_labels(obj, labels))
        ]
