"""Library for selecting the component to render from a cluster state file."""

from argparse import ArgumentParser
import logging
import pathlib

from rbd_operator.cluster import (
    RAINBOND_CLUSTER_KIND,
    RBD_COMPONENT_KIND,
    RainbondCluster,
    RbdComponent,
)
from rbd_operator.config import HandlerConfig
from rbd_operator.exceptions import InputException
from rbd_operator.handler import CHAOS_NAME, ComponentHandler, new_handler
from rbd_operator.manifest import NamedResource
from rbd_operator.store import Store, read_cluster_state

_LOGGER = logging.getLogger(__name__)


def add_component_flags(args: ArgumentParser) -> None:
    """Add common component selector flags to the arguments object."""
    args.add_argument(
        "path",
        type=pathlib.Path,
        help="Path to a yaml file with the cluster state",
    )
    args.add_argument(
        "--component",
        "-c",
        default=CHAOS_NAME,
        help="Name of the RbdComponent to render",
    )
    args.add_argument(
        "--namespace",
        "-n",
        default=None,
        help="Namespace of the RbdComponent, defaults to the cluster namespace",
    )


def select_cluster(store: Store) -> RainbondCluster:
    """Return the single RainbondCluster in the state."""
    clusters = [
        obj
        for obj in store.list_objects(RAINBOND_CLUSTER_KIND)
        if isinstance(obj, RainbondCluster)
    ]
    if len(clusters) != 1:
        raise InputException(
            f"Expected exactly one {RAINBOND_CLUSTER_KIND} in cluster state, found {len(clusters)}"
        )
    return clusters[0]


def select_component(
    store: Store, name: str, namespace: str | None
) -> RbdComponent:
    """Return the named RbdComponent from the state."""
    resource_id = NamedResource(RBD_COMPONENT_KIND, namespace, name)
    if (component := store.get_object(resource_id, RbdComponent)) is None:
        raise InputException(f"{resource_id} not found in cluster state")
    return component


async def build_handler(
    path: pathlib.Path, component: str, namespace: str | None
) -> ComponentHandler:
    """Read the cluster state and create the handler for the component."""
    store = await read_cluster_state(path)
    cluster = select_cluster(store)
    rbd_component = select_component(
        store, component, namespace if namespace is not None else cluster.namespace
    )
    _LOGGER.debug(
        "Selected %s in %s", rbd_component.resource_id, cluster.resource_id
    )
    return new_handler(store, rbd_component, cluster, HandlerConfig.from_env())
