"""Store module for reading cluster state while resolving handlers."""

from abc import ABC, abstractmethod
from typing import TypeVar

from rbd_operator.manifest import KubernetesObject, NamedResource

T = TypeVar("T", bound=KubernetesObject)


class Store(ABC):
    """Abstract base class for read access to observed cluster state.

    Handlers only read from the store during `before()` and when listing
    pods. How the state is populated is up to the implementation.
    """

    @abstractmethod
    def add_object(self, obj: KubernetesObject) -> None:
        """Add an object to the store."""

    @abstractmethod
    def get_object(self, resource_id: NamedResource, cls: type[T]) -> T | None:
        """Retrieve an object by resource identity and type."""

    @abstractmethod
    def list_objects(
        self,
        kind: str | None = None,
        namespace: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> list[KubernetesObject]:
        """List objects, optionally filtered by kind, namespace and labels.

        An object matches the labels when every requested label is present
        with the same value.
        """
