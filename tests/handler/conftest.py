"""Fixtures for component handler tests."""

import pytest

from rbd_operator.cluster import (
    K8sNode,
    RainbondCluster,
    RainbondClusterSpec,
    RainbondClusterStatus,
    RainbondVolume,
    RainbondVolumeSpec,
    RbdComponent,
    RbdComponentSpec,
)
from rbd_operator.config import HandlerConfig
from rbd_operator.handler import Chaos
from rbd_operator.manifest import LocalObjectReference, ObjectMeta, Secret
from rbd_operator.store import InMemoryStore

NAMESPACE = "rbd-system"
IMAGE = "registry.cn-hangzhou.aliyuncs.com/goodrain/rbd-chaos:v5.17.0-release"


@pytest.fixture
def store() -> InMemoryStore:
    """Cluster state with the database secret and a read-write-many volume."""
    store = InMemoryStore()
    store.add_object(
        Secret(
            metadata=ObjectMeta(name="rbd-db", namespace=NAMESPACE),
            # admin / secret
            data={"mysql-user": "YWRtaW4=", "mysql-password": "c2VjcmV0"},
        )
    )
    store.add_object(
        RainbondVolume(
            metadata=ObjectMeta(
                name="rainbondvolumerwx",
                namespace=NAMESPACE,
                labels={"accessModes": "rwx"},
            ),
            spec=RainbondVolumeSpec(
                storage_class_name="rainbondsssc",
                provisioner="rainbond.io/provisioner-sslc",
            ),
        )
    )
    return store


@pytest.fixture
def cluster() -> RainbondCluster:
    """A cluster with two builder nodes and the default image repository."""
    return RainbondCluster(
        metadata=ObjectMeta(name="rainbondcluster", namespace=NAMESPACE),
        spec=RainbondClusterSpec(
            nodes_for_chaos=[
                K8sNode(name="n1", internal_ip="192.168.0.1"),
                K8sNode(name="n2", internal_ip="192.168.0.2"),
            ],
            gateway_ingress_ips=["192.168.0.10"],
        ),
        status=RainbondClusterStatus(
            image_pull_secret=LocalObjectReference(name="rbd-hub-credentials")
        ),
    )


@pytest.fixture
def component() -> RbdComponent:
    """The builder component without overrides."""
    return RbdComponent(
        metadata=ObjectMeta(name="rbd-chaos", namespace=NAMESPACE),
        spec=RbdComponentSpec(image=IMAGE),
    )


@pytest.fixture
def config() -> HandlerConfig:
    """Default handler configuration."""
    return HandlerConfig()


@pytest.fixture
def handler(
    store: InMemoryStore,
    component: RbdComponent,
    cluster: RainbondCluster,
    config: HandlerConfig,
) -> Chaos:
    """A builder handler that has not been resolved yet."""
    return Chaos(store, component, cluster, config)
