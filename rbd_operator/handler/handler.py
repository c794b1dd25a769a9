"""Interfaces implemented by component handlers.

A handler computes the desired state of one managed component. The
reconciliation loop drives every handler through `before()`, `resources()`
and `after()`. The remaining interfaces are optional capabilities: the loop
checks for them with `isinstance` and only calls them on handlers that
implement them.
"""

from abc import ABC, abstractmethod

from rbd_operator.cluster import PvcParameters
from rbd_operator.manifest import KubernetesObject, Pod

__all__ = [
    "ComponentHandler",
    "PodLister",
    "StorageClassRWXer",
    "ResourcesCreator",
    "Replicaser",
]


class ComponentHandler(ABC):
    """Lifecycle hooks of a component handler for one reconciliation pass."""

    @abstractmethod
    def before(self) -> None:
        """Resolve the cluster facts needed to render resources.

        Raises:
            ConfigResolutionError: If a required fact could not be resolved.
        """

    @abstractmethod
    def resources(self) -> list[KubernetesObject]:
        """Return the objects that are created or updated on every pass.

        This must not perform any I/O and must only be called after
        `before()` has completed.
        """

    @abstractmethod
    def after(self) -> None:
        """Run hooks after the resources have been applied."""


class PodLister(ABC):
    """A handler that can enumerate the pods of its component."""

    @abstractmethod
    def list_pods(self) -> list[Pod]:
        """Return the pods currently running for the component."""


class StorageClassRWXer(ABC):
    """A handler that needs a read-write-many storage class."""

    @abstractmethod
    def set_storage_class_name_rwx(self, pvc_parameters: PvcParameters) -> None:
        """Set the storage class parameters used for claims."""


class ResourcesCreator(ABC):
    """A handler with objects that are only created when missing."""

    @abstractmethod
    def resources_create_if_not_exists(self) -> list[KubernetesObject]:
        """Return objects that are created once and never updated."""


class Replicaser(ABC):
    """A handler that declares its desired replica count."""

    @abstractmethod
    def replicas(self) -> int:
        """Return the desired number of replicas."""
