"""Helpers shared by component handlers.

These are the only functions in the handler package that read from the
store. They are called while resolving a handler in `before()`, or when
enumerating pods, never while rendering resources.
"""

from dataclasses import dataclass, replace
import logging

from rbd_operator.cluster import (
    RAINBOND_VOLUME_KIND,
    Database,
    PvcParameters,
    RainbondCluster,
    RainbondVolume,
    RbdComponent,
)
from rbd_operator.exceptions import InputException, ObjectNotFoundError
from rbd_operator.manifest import (
    POD_KIND,
    READ_WRITE_MANY,
    SECRET_KIND,
    HTTPGetAction,
    NamedResource,
    ObjectMeta,
    PersistentVolumeClaim,
    PersistentVolumeClaimSpec,
    Pod,
    Probe,
    ResourceRequest,
    Secret,
)
from rbd_operator.store import Store
from rbd_operator.topology import EtcdTLS

from .handler import StorageClassRWXer

__all__ = [
    "ResolvedContext",
    "labels_for_rainbond",
    "labels_for_component",
    "get_default_db_info",
    "etcd_secret",
    "storage_class_name_rwx",
    "set_storage_class_name",
    "create_persistent_volume_claim_rwx",
    "make_readiness_probe_http",
    "list_pods",
]

_LOGGER = logging.getLogger(__name__)


DB_NAME = "rbd-db"
REGION_DATABASE_NAME = "region"
MYSQL_USER_KEY = "mysql-user"
MYSQL_PASSWORD_KEY = "mysql-password"

ACCESS_MODE_LABEL = "accessModes"
ACCESS_MODE_RWX = "rwx"


@dataclass(frozen=True)
class ResolvedContext:
    """Cluster facts resolved by `before()` and consumed when rendering."""

    database: Database
    """The region database, with its name defaulted."""

    etcd_tls: EtcdTLS | None = None
    """TLS material for etcd, absent when the cluster has no etcd secret."""


def labels_for_rainbond(labels: dict[str, str] | None = None) -> dict[str, str]:
    """Return the labels identifying objects owned by the operator."""
    return {
        "creator": "Rainbond",
        "belongTo": "rainbond-operator",
        **(labels or {}),
    }


def labels_for_component(component: RbdComponent) -> dict[str, str]:
    """Return the labels identifying the objects of a component."""
    return labels_for_rainbond({"name": component.name})


def get_default_db_info(
    store: Store, database: Database | None, namespace: str, name: str
) -> Database:
    """Return the declared database or the one described by the default secret.

    The declared database is copied so the caller may fill in defaults
    without changing the cluster object.
    """
    if database is not None and database.host:
        return replace(database)
    resource_id = NamedResource(SECRET_KIND, namespace, name)
    if (secret := store.get_object(resource_id, Secret)) is None:
        raise ObjectNotFoundError(f"Database secret {resource_id} not found")
    values = secret.decoded()
    if MYSQL_USER_KEY not in values or MYSQL_PASSWORD_KEY not in values:
        raise InputException(
            f"Database secret {resource_id} missing {MYSQL_USER_KEY} or {MYSQL_PASSWORD_KEY}"
        )
    return Database(
        host=name,
        username=values[MYSQL_USER_KEY],
        password=values[MYSQL_PASSWORD_KEY],
    )


def etcd_secret(store: Store, cluster: RainbondCluster) -> Secret | None:
    """Return the etcd TLS secret, or None when the cluster does not use one."""
    if (config := cluster.spec.etcd_config) is None or not config.secret_name:
        return None
    resource_id = NamedResource(SECRET_KIND, cluster.namespace, config.secret_name)
    if (secret := store.get_object(resource_id, Secret)) is None:
        raise ObjectNotFoundError(f"Etcd secret {resource_id} not found")
    return secret


def storage_class_name_rwx(store: Store, namespace: str) -> PvcParameters:
    """Return the storage class parameters of the read-write-many volume."""
    volumes = sorted(
        (
            obj
            for obj in store.list_objects(
                RAINBOND_VOLUME_KIND, namespace, {ACCESS_MODE_LABEL: ACCESS_MODE_RWX}
            )
            if isinstance(obj, RainbondVolume)
        ),
        key=lambda volume: volume.name,
    )
    if not volumes:
        raise ObjectNotFoundError(
            f"No {RAINBOND_VOLUME_KIND} with {ACCESS_MODE_LABEL}={ACCESS_MODE_RWX} in {namespace}"
        )
    volume = volumes[0]
    if not volume.spec.storage_class_name:
        raise ObjectNotFoundError(
            f"{volume.resource_id} does not have a storage class yet"
        )
    return PvcParameters(
        storage_class_name=volume.spec.storage_class_name,
        provisioner=volume.spec.provisioner,
    )


def set_storage_class_name(store: Store, namespace: str, handler: object) -> None:
    """Supply storage class parameters to a handler that needs them."""
    if isinstance(handler, StorageClassRWXer):
        handler.set_storage_class_name_rwx(storage_class_name_rwx(store, namespace))


def create_persistent_volume_claim_rwx(
    namespace: str,
    claim_name: str,
    pvc_parameters: PvcParameters | None,
    labels: dict[str, str],
    storage_request: int,
) -> PersistentVolumeClaim:
    """Return a read-write-many claim requesting the size in GiB."""
    if pvc_parameters is None:
        _LOGGER.warning(
            "Storage class was never set for claim %s/%s, using an empty storage class",
            namespace,
            claim_name,
        )
        pvc_parameters = PvcParameters()
    return PersistentVolumeClaim(
        metadata=ObjectMeta(name=claim_name, namespace=namespace, labels=dict(labels)),
        spec=PersistentVolumeClaimSpec(
            access_modes=[READ_WRITE_MANY],
            resources=ResourceRequest(requests={"storage": f"{storage_request}Gi"}),
            storage_class_name=pvc_parameters.storage_class_name,
        ),
    )


def make_readiness_probe_http(path: str, port: int, host: str | None = None) -> Probe:
    """Return a readiness probe performing an HTTP GET."""
    return Probe(http_get=HTTPGetAction(path=path, port=port, host=host or None))


def list_pods(store: Store, namespace: str, labels: dict[str, str]) -> list[Pod]:
    """Return the pods in the namespace matching the labels."""
    return [
        obj
        for obj in store.list_objects(POD_KIND, namespace, labels)
        if isinstance(obj, Pod)
    ]
