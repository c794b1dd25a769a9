"""Tests for the rbd-chaos builder handler."""

import logging

import pytest
from syrupy.assertion import SnapshotAssertion

from rbd_operator.cluster import (
    Database,
    EtcdConfig,
    ImageHub,
    RainbondCluster,
    RbdComponent,
)
from rbd_operator.config import HandlerConfig
from rbd_operator.exceptions import (
    ConfigResolutionError,
    HandlerNotReadyError,
    InputException,
    ObjectNotFoundError,
)
from rbd_operator.handler import (
    Chaos,
    ComponentHandler,
    PodLister,
    Replicaser,
    ResourcesCreator,
    StorageClassRWXer,
)
from rbd_operator.manifest import (
    ConfigMap,
    DaemonSet,
    EnvVar,
    HostAlias,
    NamedResource,
    ObjectMeta,
    PersistentVolumeClaim,
    Pod,
    Secret,
    Service,
    Volume,
    VolumeMount,
)
from rbd_operator.store import InMemoryStore

from .conftest import NAMESPACE

LABELS = {"creator": "Rainbond", "belongTo": "rainbond-operator", "name": "rbd-chaos"}


def _daemon_set(handler: Chaos) -> DaemonSet:
    daemon_sets = [obj for obj in handler.resources() if isinstance(obj, DaemonSet)]
    assert len(daemon_sets) == 1
    return daemon_sets[0]


def _add_etcd_secret(store: InMemoryStore, cluster: RainbondCluster) -> None:
    cluster.spec.etcd_config = EtcdConfig(
        endpoints=["https://192.168.0.1:2379"], secret_name="rbd-etcd-secret"
    )
    store.add_object(
        Secret(
            metadata=ObjectMeta(name="rbd-etcd-secret", namespace=NAMESPACE),
            string_data={"ca-file": "ca", "cert-file": "cert", "key-file": "key"},
        )
    )


def test_capabilities(handler: Chaos) -> None:
    """Test the optional capabilities advertised by the handler."""
    assert isinstance(handler, ComponentHandler)
    assert isinstance(handler, PodLister)
    assert isinstance(handler, StorageClassRWXer)
    assert isinstance(handler, ResourcesCreator)
    assert isinstance(handler, Replicaser)


def test_resources_before_resolve(handler: Chaos) -> None:
    """Test resources may not be rendered before the handler is resolved."""
    with pytest.raises(HandlerNotReadyError, match="call before"):
        handler.resources()


def test_resources(handler: Chaos) -> None:
    """Test the steady state objects of the builder."""
    handler.before()
    resources = handler.resources()
    assert [type(obj) for obj in resources] == [DaemonSet, Service, ConfigMap]
    assert [str(obj.resource_id) for obj in resources] == [
        "DaemonSet/rbd-system/rbd-chaos",
        "Service/rbd-system/rbd-chaos",
        "ConfigMap/rbd-system/java-maven-aliyun",
    ]
    handler.after()


def test_daemon_set_args(handler: Chaos, snapshot: SnapshotAssertion) -> None:
    """Test the default command line arguments of the builder."""
    handler.before()
    assert _daemon_set(handler).container.args == snapshot


def test_daemon_set(handler: Chaos) -> None:
    """Test the fixed shape of the builder pod."""
    handler.before()
    ds = _daemon_set(handler)
    assert ds.labels == LABELS
    assert ds.spec.selector.match_labels == LABELS
    assert ds.spec.template.metadata.labels == LABELS

    pod_spec = ds.pod_spec
    assert pod_spec.termination_grace_period_seconds == 0
    assert pod_spec.service_account_name == "rainbond-operator"
    assert [toleration.to_dict() for toleration in pod_spec.tolerations or []] == [
        {"operator": "Exists"}
    ]
    assert pod_spec.host_aliases == [
        HostAlias(ip="192.168.0.10", hostnames=["goodrain.me"])
    ]
    assert [ref.name for ref in pod_spec.image_pull_secrets or []] == [
        "rbd-hub-credentials"
    ]
    assert len(pod_spec.containers) == 1

    container = ds.container
    assert container.name == "rbd-chaos"
    assert container.image.endswith("rbd-chaos:v5.17.0-release")
    assert container.image_pull_policy == "IfNotPresent"
    assert container.readiness_probe is not None
    assert container.readiness_probe.to_dict() == {
        "httpGet": {"path": "/v2/builder/health", "port": 3228},
        "initialDelaySeconds": 2,
        "periodSeconds": 3,
        "timeoutSeconds": 5,
        "failureThreshold": 3,
        "successThreshold": 1,
    }
    assert [env.name for env in container.env] == [
        "POD_IP",
        "SOURCE_DIR",
        "CACHE_DIR",
        "IMAGE_PULL_SECRET",
    ]
    assert [(mount.name, mount.mount_path) for mount in container.volume_mounts] == [
        ("grdata", "/grdata"),
        ("dockersock", "/var/run/docker.sock"),
        ("cache", "/cache"),
        ("grdata", "/root/.ssh"),
    ]
    assert [volume.name for volume in pod_spec.volumes] == [
        "grdata",
        "dockersock",
        "cache",
    ]


def test_daemon_set_doc(handler: Chaos) -> None:
    """Test the serialized document of the builder pod."""
    handler.before()
    doc = _daemon_set(handler).to_doc()
    assert doc["apiVersion"] == "apps/v1"
    assert doc["kind"] == "DaemonSet"
    assert doc["metadata"] == {
        "name": "rbd-chaos",
        "namespace": "rbd-system",
        "labels": LABELS,
    }
    pod_spec = doc["spec"]["template"]["spec"]
    assert pod_spec["terminationGracePeriodSeconds"] == 0
    assert pod_spec["tolerations"] == [{"operator": "Exists"}]
    assert pod_spec["containers"][0]["env"][0] == {
        "name": "POD_IP",
        "valueFrom": {"fieldRef": {"fieldPath": "status.podIP"}},
    }
    assert pod_spec["volumes"][1] == {
        "name": "dockersock",
        "hostPath": {"path": "/var/run/docker.sock", "type": "Socket"},
    }
    assert "resources" not in pod_spec["containers"][0]


def test_affinity_and_replicas(handler: Chaos) -> None:
    """Test the builder is pinned to and scaled by its designated nodes."""
    handler.before()
    affinity = _daemon_set(handler).pod_spec.affinity
    assert affinity is not None
    assert affinity.node_affinity is not None
    selector = affinity.node_affinity.required_during_scheduling_ignored_during_execution
    assert selector is not None
    expressions = [
        expression
        for term in selector.node_selector_terms
        for expression in term.match_expressions
    ]
    assert len(expressions) == 1
    assert expressions[0].values == ["n1", "n2"]
    assert handler.replicas() == 2


def test_no_designated_nodes(handler: Chaos, cluster: RainbondCluster) -> None:
    """Test no affinity and zero replicas without designated nodes."""
    cluster.spec.nodes_for_chaos = []
    handler.before()
    ds = _daemon_set(handler)
    assert ds.pod_spec.affinity is None
    assert "affinity" not in ds.to_doc()["spec"]["template"]["spec"]
    assert handler.replicas() == 0


def test_no_image_hub(handler: Chaos) -> None:
    """Test no registry variables are injected without an image hub."""
    handler.before()
    names = {env.name for env in _daemon_set(handler).container.env}
    assert not names & {
        "BUILD_IMAGE_REPOSTORY_DOMAIN",
        "BUILD_IMAGE_REPOSTORY_USER",
        "BUILD_IMAGE_REPOSTORY_PASS",
    }


def test_image_hub(handler: Chaos, cluster: RainbondCluster) -> None:
    """Test registry variables are injected with an image hub."""
    cluster.spec.image_hub = ImageHub(
        domain="hub.example.com", namespace="rbd", username="admin", password="pw"
    )
    handler.before()
    ds = _daemon_set(handler)
    assert [(env.name, env.value) for env in ds.container.env][3:] == [
        ("IMAGE_PULL_SECRET", "rbd-hub-credentials"),
        ("BUILD_IMAGE_REPOSTORY_DOMAIN", "hub.example.com/rbd"),
        ("BUILD_IMAGE_REPOSTORY_USER", "admin"),
        ("BUILD_IMAGE_REPOSTORY_PASS", "pw"),
    ]
    # The in-cluster registry is not used, so nothing to resolve.
    assert ds.pod_spec.host_aliases is None


def test_etcd_secret_absent(handler: Chaos) -> None:
    """Test no TLS material is mounted without an etcd secret."""
    handler.before()
    assert handler.resolved.etcd_tls is None
    container = _daemon_set(handler).container
    assert not [mount for mount in container.volume_mounts if mount.name == "etcdssl"]
    assert not [arg for arg in container.args if arg.startswith("--etcd-c")]


def test_etcd_secret_present(
    handler: Chaos, store: InMemoryStore, cluster: RainbondCluster
) -> None:
    """Test the TLS material is mounted when the etcd secret exists."""
    _add_etcd_secret(store, cluster)
    handler.before()
    ds = _daemon_set(handler)
    container = ds.container
    mounts = [mount for mount in container.volume_mounts if mount.name == "etcdssl"]
    assert mounts == [VolumeMount(name="etcdssl", mount_path="/run/ssl/etcd")]
    assert [volume.name for volume in ds.pod_spec.volumes][-1] == "etcdssl"
    assert container.args[-4:] == [
        "--rbd-repo=rbd-resource-proxy",
        "--etcd-ca=/run/ssl/etcd/ca-file",
        "--etcd-cert=/run/ssl/etcd/cert-file",
        "--etcd-key=/run/ssl/etcd/key-file",
    ]
    assert "--etcd-endpoints=https://192.168.0.1:2379" in container.args


def test_etcd_secret_missing(
    handler: Chaos, cluster: RainbondCluster
) -> None:
    """Test a declared etcd secret that does not exist fails the pass."""
    cluster.spec.etcd_config = EtcdConfig(secret_name="rbd-etcd-secret")
    with pytest.raises(ConfigResolutionError, match="etcd secret") as exc_info:
        handler.before()
    assert isinstance(exc_info.value.cause, ObjectNotFoundError)
    assert exc_info.value.__cause__ is exc_info.value.cause
    with pytest.raises(HandlerNotReadyError):
        handler.resources()


class UnreachableStore(InMemoryStore):
    """A store whose lookups fail as a live cluster client might."""

    def get_object(self, resource_id, cls):  # type: ignore[no-untyped-def]
        raise ConnectionError(f"Unable to fetch {resource_id}")


def test_store_error_is_wrapped(
    component: RbdComponent, cluster: RainbondCluster, config: HandlerConfig
) -> None:
    """Test store failures outside the library hierarchy are reported in context."""
    handler = Chaos(UnreachableStore(), component, cluster, config)
    with pytest.raises(ConfigResolutionError, match="database info") as exc_info:
        handler.before()
    assert isinstance(exc_info.value.cause, ConnectionError)
    assert exc_info.value.__cause__ is exc_info.value.cause
    assert "Secret/rbd-system/rbd-db" in str(exc_info.value)
    with pytest.raises(HandlerNotReadyError):
        handler.resources()


def test_database_secret_missing(
    component: RbdComponent, cluster: RainbondCluster, config: HandlerConfig
) -> None:
    """Test a missing database secret fails the pass."""
    handler = Chaos(InMemoryStore(), component, cluster, config)
    with pytest.raises(ConfigResolutionError, match="database info") as exc_info:
        handler.before()
    assert exc_info.value.resource == "database info"
    assert isinstance(exc_info.value.cause, ObjectNotFoundError)


def test_database_secret_invalid(
    handler: Chaos, store: InMemoryStore
) -> None:
    """Test a database secret without credentials fails the pass."""
    store.add_object(
        Secret(
            metadata=ObjectMeta(name="rbd-db", namespace=NAMESPACE),
            string_data={"mysql-user": "admin"},
        )
    )
    with pytest.raises(ConfigResolutionError) as exc_info:
        handler.before()
    assert isinstance(exc_info.value.cause, InputException)


def test_database_default_name(handler: Chaos) -> None:
    """Test the database from the default secret uses the region database."""
    handler.before()
    assert handler.resolved.database == Database(
        host="rbd-db", port=3306, username="admin", password="secret", name="region"
    )


@pytest.mark.parametrize(
    ("declared_name", "expected_name"),
    [
        ("", "region"),
        ("console", "console"),
    ],
)
def test_declared_database(
    handler: Chaos,
    cluster: RainbondCluster,
    declared_name: str,
    expected_name: str,
) -> None:
    """Test the declared database is used, defaulting its name."""
    cluster.spec.region_database = Database(
        host="mysql.example.com",
        port=3307,
        username="rbd",
        password="pw",
        name=declared_name,
    )
    handler.before()
    assert handler.resolved.database.name == expected_name
    assert cluster.spec.region_database.name == declared_name
    assert (
        f"--mysql=rbd:pw@tcp(mysql.example.com:3307)/{expected_name}"
        in _daemon_set(handler).container.args
    )


def test_override_env(handler: Chaos, component: RbdComponent) -> None:
    """Test an override replaces the built in working directory."""
    component.spec.env = [
        EnvVar(name="EXTRA", value="1"),
        EnvVar(name="SOURCE_DIR", value="/data/source"),
    ]
    handler.before()
    env = _daemon_set(handler).container.env
    assert [(item.name, item.value) for item in env][1:] == [
        ("SOURCE_DIR", "/data/source"),
        ("CACHE_DIR", "/cache"),
        ("IMAGE_PULL_SECRET", "rbd-hub-credentials"),
        ("EXTRA", "1"),
    ]


def test_override_args(handler: Chaos, component: RbdComponent) -> None:
    """Test argument overrides replace flag values and append new flags."""
    component.spec.args = ["--log-level=debug", "--rbd-repo=my-proxy"]
    handler.before()
    args = _daemon_set(handler).container.args
    assert args[-2:] == ["--rbd-repo=my-proxy", "--log-level=debug"]
    assert "--rbd-repo=rbd-resource-proxy" not in args


def test_override_supersedes_etcd_mount(
    handler: Chaos,
    store: InMemoryStore,
    cluster: RainbondCluster,
    component: RbdComponent,
) -> None:
    """Test user overrides still apply to the injected TLS material."""
    _add_etcd_secret(store, cluster)
    component.spec.volume_mounts = [
        VolumeMount(name="custom-ssl", mount_path="/run/ssl/etcd", read_only=True)
    ]
    component.spec.volumes = [Volume(name="custom-ssl", empty_dir={})]
    handler.before()
    ds = _daemon_set(handler)
    assert [(mount.name, mount.mount_path) for mount in ds.container.volume_mounts][
        -1
    ] == ("custom-ssl", "/run/ssl/etcd")
    assert [volume.name for volume in ds.pod_spec.volumes][-2:] == [
        "etcdssl",
        "custom-ssl",
    ]


def test_resources_idempotent(
    handler: Chaos,
    store: InMemoryStore,
    cluster: RainbondCluster,
    component: RbdComponent,
) -> None:
    """Test rendering twice does not accumulate injected entries."""
    _add_etcd_secret(store, cluster)
    cluster.spec.image_hub = ImageHub(domain="hub.example.com")
    component.spec.env = [EnvVar(name="EXTRA", value="1")]
    handler.before()
    first = [obj.to_doc() for obj in handler.resources()]
    second = [obj.to_doc() for obj in handler.resources()]
    assert first == second
    assert len(_daemon_set(handler).container.env) == 8


def test_service(handler: Chaos) -> None:
    """Test the builder API service."""
    handler.before()
    services = [obj for obj in handler.resources() if isinstance(obj, Service)]
    assert len(services) == 1
    assert services[0].to_doc() == {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "rbd-chaos", "namespace": "rbd-system", "labels": LABELS},
        "spec": {
            "ports": [{"name": "api", "port": 3228, "targetPort": 3228}],
            "selector": LABELS,
        },
    }


def test_default_maven_setting(handler: Chaos) -> None:
    """Test the default maven settings config map."""
    handler.before()
    config_maps = [obj for obj in handler.resources() if isinstance(obj, ConfigMap)]
    assert len(config_maps) == 1
    config_map = config_maps[0]
    assert config_map.name == "java-maven-aliyun"
    assert config_map.labels == {
        "creator": "Rainbond",
        "belongTo": "rainbond-operator",
        "configtype": "mavensetting",
        "default": "true",
    }
    assert config_map.data is not None
    assert list(config_map.data) == ["mavensetting"]
    assert config_map.data["mavensetting"].startswith("<settings")
    assert "https://maven.aliyun.com/repository/central" in config_map.data["mavensetting"]


def test_create_if_not_exists(handler: Chaos) -> None:
    """Test the claims use the resolved read-write-many storage class."""
    handler.before()
    claims = handler.resources_create_if_not_exists()
    assert all(isinstance(claim, PersistentVolumeClaim) for claim in claims)
    assert [claim.to_doc() for claim in claims] == [
        {
            "apiVersion": "v1",
            "kind": "PersistentVolumeClaim",
            "metadata": {
                "name": "rbd-cpt-grdata",
                "namespace": "rbd-system",
                "labels": LABELS,
            },
            "spec": {
                "accessModes": ["ReadWriteMany"],
                "resources": {"requests": {"storage": "40Gi"}},
                "storageClassName": "rainbondsssc",
            },
        },
        {
            "apiVersion": "v1",
            "kind": "PersistentVolumeClaim",
            "metadata": {
                "name": "rbd-chaos-cache",
                "namespace": "rbd-system",
                "labels": LABELS,
            },
            "spec": {
                "accessModes": ["ReadWriteMany"],
                "resources": {"requests": {"storage": "10Gi"}},
                "storageClassName": "rainbondsssc",
            },
        },
    ]


def test_create_if_not_exists_configured_size(
    store: InMemoryStore, component: RbdComponent, cluster: RainbondCluster
) -> None:
    """Test the claim sizes come from the handler configuration."""
    handler = Chaos(
        store,
        component,
        cluster,
        HandlerConfig(cache_storage_request=5, grdata_storage_request=100),
    )
    handler.before()
    assert [
        claim.to_doc()["spec"]["resources"]["requests"]["storage"]
        for claim in handler.resources_create_if_not_exists()
    ] == ["100Gi", "5Gi"]


def test_create_if_not_exists_without_storage_class(
    handler: Chaos, caplog: pytest.LogCaptureFixture
) -> None:
    """Test claims are still returned when the storage class was never set."""
    with caplog.at_level(logging.WARNING):
        claims = handler.resources_create_if_not_exists()
    assert len(claims) == 2
    for claim in claims:
        assert isinstance(claim, PersistentVolumeClaim)
        assert claim.spec.storage_class_name == ""
    assert "Storage class was never set" in caplog.text


def test_storage_class_missing(
    component: RbdComponent, cluster: RainbondCluster, config: HandlerConfig
) -> None:
    """Test a missing read-write-many volume fails the pass."""
    store = InMemoryStore()
    store.add_object(
        Secret(
            metadata=ObjectMeta(name="rbd-db", namespace=NAMESPACE),
            string_data={"mysql-user": "admin", "mysql-password": "secret"},
        )
    )
    handler = Chaos(store, component, cluster, config)
    with pytest.raises(ConfigResolutionError, match="storage class"):
        handler.before()


def test_list_pods(handler: Chaos, store: InMemoryStore) -> None:
    """Test the builder pods are selected by the component labels."""
    store.add_object(
        Pod(metadata=ObjectMeta(name="rbd-chaos-abcde", namespace=NAMESPACE, labels=LABELS))
    )
    store.add_object(
        Pod(
            metadata=ObjectMeta(
                name="rbd-api-12345",
                namespace=NAMESPACE,
                labels={**LABELS, "name": "rbd-api"},
            )
        )
    )
    store.add_object(
        Pod(metadata=ObjectMeta(name="rbd-chaos-other", namespace="default", labels=LABELS))
    )
    assert [pod.resource_id for pod in handler.list_pods()] == [
        NamedResource("Pod", NAMESPACE, "rbd-chaos-abcde")
    ]
