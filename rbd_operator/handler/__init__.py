"""Component handlers computing the desired state of managed components."""

from collections.abc import Callable

from rbd_operator.cluster import RainbondCluster, RbdComponent
from rbd_operator.config import HandlerConfig
from rbd_operator.exceptions import UnknownComponentError
from rbd_operator.store import Store

from .chaos import CHAOS_NAME, Chaos
from .common import ResolvedContext
from .handler import (
    ComponentHandler,
    PodLister,
    Replicaser,
    ResourcesCreator,
    StorageClassRWXer,
)

__all__ = [
    "ComponentHandler",
    "PodLister",
    "StorageClassRWXer",
    "ResourcesCreator",
    "Replicaser",
    "ResolvedContext",
    "Chaos",
    "CHAOS_NAME",
    "HANDLERS",
    "new_handler",
]


HandlerFactory = Callable[
    [Store, RbdComponent, RainbondCluster, HandlerConfig | None], ComponentHandler
]

HANDLERS: dict[str, HandlerFactory] = {
    CHAOS_NAME: Chaos,
}


def new_handler(
    store: Store,
    component: RbdComponent,
    cluster: RainbondCluster,
    config: HandlerConfig | None = None,
) -> ComponentHandler:
    """Create the handler registered for the component's name."""
    if (factory := HANDLERS.get(component.name)) is None:
        raise UnknownComponentError(
            f"No handler for component {component.name}, expected one of {sorted(HANDLERS)}"
        )
    return factory(store, component, cluster, config)
