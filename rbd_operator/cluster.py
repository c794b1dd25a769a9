"""Representation of the operator custom resources read by component handlers.

A `RainbondCluster` describes the environment all components are installed
into, and an `RbdComponent` declares the intent for one managed workload
including the user supplied overrides that are merged on top of the
defaults computed by a handler.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, ClassVar

from mashumaro import field_options

from .exceptions import InputException
from .manifest import (
    BaseManifest,
    EnvVar,
    KubernetesObject,
    LocalObjectReference,
    ResourceRequirements,
    Volume,
    VolumeMount,
    check_metadata,
    check_api_version,
)

__all__ = [
    "Database",
    "ImageHub",
    "EtcdConfig",
    "K8sNode",
    "RainbondCluster",
    "RbdComponent",
    "RainbondVolume",
    "PvcParameters",
]

_LOGGER = logging.getLogger(__name__)


RAINBOND_DOMAIN = "rainbond.io"
RAINBOND_CLUSTER_KIND = "RainbondCluster"
RBD_COMPONENT_KIND = "RbdComponent"
RAINBOND_VOLUME_KIND = "RainbondVolume"

PULL_IF_NOT_PRESENT = "IfNotPresent"
DEFAULT_DB_PORT = 3306


@dataclass
class Database(BaseManifest):
    """Connection parameters for a region level datastore."""

    host: str
    port: int = DEFAULT_DB_PORT
    username: str = ""
    password: str = ""
    name: str = ""

    def region_data_source(self) -> str:
        """Return the command line argument used to connect to the datastore."""
        return (
            f"--mysql={self.username}:{self.password}"
            f"@tcp({self.host}:{self.port})/{self.name}"
        )


@dataclass
class ImageHub(BaseManifest):
    """An external image registry used to store built images."""

    domain: str
    namespace: str = ""
    username: str = ""
    password: str = ""


@dataclass
class EtcdConfig(BaseManifest):
    """An external etcd cluster and its optional TLS secret."""

    endpoints: list[str] = field(default_factory=list)
    secret_name: str | None = field(
        metadata=field_options(alias="secretName"), default=None
    )


@dataclass
class K8sNode(BaseManifest):
    """A node designated for a class of components."""

    name: str
    internal_ip: str | None = field(
        metadata=field_options(alias="internalIP"), default=None
    )
    external_ip: str | None = field(
        metadata=field_options(alias="externalIP"), default=None
    )


@dataclass
class RainbondClusterSpec(BaseManifest):
    """Declared facts about the surrounding cluster."""

    image_hub: ImageHub | None = field(
        metadata=field_options(alias="imageHub"), default=None
    )
    etcd_config: EtcdConfig | None = field(
        metadata=field_options(alias="etcdConfig"), default=None
    )
    region_database: Database | None = field(
        metadata=field_options(alias="regionDatabase"), default=None
    )
    nodes_for_chaos: list[K8sNode] = field(
        metadata=field_options(alias="nodesForChaos"), default_factory=list
    )
    nodes_for_gateway: list[K8sNode] = field(
        metadata=field_options(alias="nodesForGateway"), default_factory=list
    )
    gateway_ingress_ips: list[str] = field(
        metadata=field_options(alias="gatewayIngressIPs"), default_factory=list
    )


@dataclass
class RainbondClusterStatus(BaseManifest):
    """Observed facts about the surrounding cluster."""

    image_pull_secret: LocalObjectReference | None = field(
        metadata=field_options(alias="imagePullSecret"), default=None
    )


@dataclass
class RainbondCluster(KubernetesObject):
    """The cluster all components are installed into."""

    kind: ClassVar[str] = RAINBOND_CLUSTER_KIND
    api_version: ClassVar[str] = "rainbond.io/v1alpha1"

    spec: RainbondClusterSpec = field(default_factory=RainbondClusterSpec)
    status: RainbondClusterStatus = field(default_factory=RainbondClusterStatus)

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "RainbondCluster":
        """Parse a RainbondCluster from a kubernetes resource object."""
        check_api_version(doc, RAINBOND_DOMAIN)
        check_metadata(cls, doc)
        return cls.from_dict(doc)

    @property
    def image_pull_secret_name(self) -> str:
        """Name of the image pull secret created for the cluster, if any."""
        if self.status.image_pull_secret is None:
            return ""
        return self.status.image_pull_secret.name

    def gateway_ingress_ip(self) -> str | None:
        """Return the address used to reach the gateway."""
        if self.spec.gateway_ingress_ips:
            return self.spec.gateway_ingress_ips[0]
        for node in self.spec.nodes_for_gateway:
            if node.internal_ip:
                return node.internal_ip
        return None


@dataclass
class RbdComponentSpec(BaseManifest):
    """Declared intent for a managed workload."""

    image: str = ""
    image_pull_policy: str | None = field(
        metadata=field_options(alias="imagePullPolicy"), default=None
    )
    resources: ResourceRequirements | None = None
    image_pull_secrets: list[LocalObjectReference] = field(
        metadata=field_options(alias="imagePullSecrets"), default_factory=list
    )
    env: list[EnvVar] = field(default_factory=list)
    volume_mounts: list[VolumeMount] = field(
        metadata=field_options(alias="volumeMounts"), default_factory=list
    )
    volumes: list[Volume] = field(default_factory=list)
    args: list[str] = field(default_factory=list)


@dataclass
class RbdComponent(KubernetesObject):
    """A managed workload type within the operator."""

    kind: ClassVar[str] = RBD_COMPONENT_KIND
    api_version: ClassVar[str] = "rainbond.io/v1alpha1"

    spec: RbdComponentSpec = field(default_factory=RbdComponentSpec)

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "RbdComponent":
        """Parse a RbdComponent from a kubernetes resource object."""
        check_api_version(doc, RAINBOND_DOMAIN)
        metadata = check_metadata(cls, doc)
        if not metadata.get("namespace"):
            raise InputException(f"Invalid {cls} missing metadata.namespace: {doc}")
        return cls.from_dict(doc)

    @property
    def image_pull_policy(self) -> str:
        """Return the pull policy, defaulting when the component has none."""
        return self.spec.image_pull_policy or PULL_IF_NOT_PRESENT


@dataclass
class RainbondVolumeSpec(BaseManifest):
    """Storage backing declared for the operator."""

    storage_class_name: str = field(
        metadata=field_options(alias="storageClassName"), default=""
    )
    provisioner: str = ""


@dataclass
class RainbondVolume(KubernetesObject):
    """A storage declaration labelled with the access mode it provides."""

    kind: ClassVar[str] = RAINBOND_VOLUME_KIND
    api_version: ClassVar[str] = "rainbond.io/v1alpha1"

    spec: RainbondVolumeSpec = field(default_factory=RainbondVolumeSpec)

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "RainbondVolume":
        """Parse a RainbondVolume from a kubernetes resource object."""
        check_api_version(doc, RAINBOND_DOMAIN)
        check_metadata(cls, doc)
        return cls.from_dict(doc)


@dataclass
class PvcParameters:
    """Storage class parameters for claims created by a handler."""

    storage_class_name: str = ""
    provisioner: str = ""
