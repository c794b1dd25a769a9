"""Representation of the kubernetes objects produced and consumed by handlers.

These records only carry the fields that component handlers populate. They
serialize to the same shape as the kubernetes API objects so the output of a
handler may be applied as is, or written out as yaml documents.
"""

import base64
from dataclasses import dataclass, field
import logging
from typing import Any, ClassVar

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig

from .exceptions import InputException

__all__ = [
    "BaseManifest",
    "KubernetesObject",
    "NamedResource",
    "ObjectMeta",
    "EnvVar",
    "VolumeMount",
    "Volume",
    "Container",
    "DaemonSet",
    "Service",
    "ConfigMap",
    "Secret",
    "PersistentVolumeClaim",
    "Pod",
]

_LOGGER = logging.getLogger(__name__)


DAEMON_SET_KIND = "DaemonSet"
SERVICE_KIND = "Service"
CONFIG_MAP_KIND = "ConfigMap"
SECRET_KIND = "Secret"
PVC_KIND = "PersistentVolumeClaim"
POD_KIND = "Pod"

READ_WRITE_MANY = "ReadWriteMany"
TOLERATION_OP_EXISTS = "Exists"
NODE_SELECTOR_OP_IN = "In"
HOST_PATH_SOCKET = "Socket"
HOSTNAME_LABEL = "kubernetes.io/hostname"


def check_api_version(doc: dict[str, Any], version: str) -> None:
    """Assert that the resource has the specified version."""
    if not (api_version := doc.get("apiVersion")):
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    if not api_version.startswith(version):
        raise InputException(f"Invalid object expected '{version}': {doc}")


def check_metadata(cls: type, doc: dict[str, Any]) -> dict[str, Any]:
    """Assert that the resource has a name and return its metadata."""
    if not (metadata := doc.get("metadata")):
        raise InputException(f"Invalid {cls} missing metadata: {doc}")
    if not metadata.get("name"):
        raise InputException(f"Invalid {cls} missing metadata.name: {doc}")
    return metadata


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class ObjectMeta(BaseManifest):
    """Standard object metadata."""

    name: str
    """The name of the object."""

    namespace: str | None = None
    """The namespace of the object."""

    labels: dict[str, str] | None = None
    """Labels used to select the object."""


@dataclass
class KubernetesObject(BaseManifest):
    """A top level kubernetes object identified by kind and metadata."""

    kind: ClassVar[str]
    api_version: ClassVar[str]

    metadata: ObjectMeta
    """The object metadata."""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels or {}

    @property
    def resource_id(self) -> NamedResource:
        """Return the identity of the object."""
        return NamedResource(self.kind, self.namespace, self.name)

    def to_doc(self) -> dict[str, Any]:
        """Return the object as a kubernetes document with apiVersion and kind."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            **self.to_dict(),
        }


@dataclass
class LocalObjectReference(BaseManifest):
    """A reference to an object in the same namespace."""

    name: str


@dataclass
class ObjectFieldSelector(BaseManifest):
    """Selects a field of the pod."""

    field_path: str = field(metadata=field_options(alias="fieldPath"))


@dataclass
class EnvVarSource(BaseManifest):
    """A source for the value of an environment variable."""

    field_ref: ObjectFieldSelector | None = field(
        metadata=field_options(alias="fieldRef"), default=None
    )


@dataclass
class EnvVar(BaseManifest):
    """An environment variable present in a container."""

    name: str

    value: str | None = None

    value_from: EnvVarSource | None = field(
        metadata=field_options(alias="valueFrom"), default=None
    )


@dataclass
class VolumeMount(BaseManifest):
    """A mounting of a volume within a container."""

    name: str

    mount_path: str = field(metadata=field_options(alias="mountPath"))

    sub_path: str | None = field(metadata=field_options(alias="subPath"), default=None)

    read_only: bool | None = field(
        metadata=field_options(alias="readOnly"), default=None
    )


@dataclass
class PersistentVolumeClaimVolumeSource(BaseManifest):
    """References a PersistentVolumeClaim in the same namespace."""

    claim_name: str = field(metadata=field_options(alias="claimName"))


@dataclass
class HostPathVolumeSource(BaseManifest):
    """A host path mapped into a pod."""

    path: str

    type: str | None = None


@dataclass
class SecretVolumeSource(BaseManifest):
    """Adapts a Secret into a volume."""

    secret_name: str = field(metadata=field_options(alias="secretName"))


@dataclass
class ConfigMapVolumeSource(BaseManifest):
    """Adapts a ConfigMap into a volume."""

    name: str


@dataclass
class Volume(BaseManifest):
    """A named volume in a pod that may be accessed by any container."""

    name: str

    persistent_volume_claim: PersistentVolumeClaimVolumeSource | None = field(
        metadata=field_options(alias="persistentVolumeClaim"), default=None
    )
    host_path: HostPathVolumeSource | None = field(
        metadata=field_options(alias="hostPath"), default=None
    )
    secret: SecretVolumeSource | None = None
    config_map: ConfigMapVolumeSource | None = field(
        metadata=field_options(alias="configMap"), default=None
    )
    empty_dir: dict[str, Any] | None = field(
        metadata=field_options(alias="emptyDir"), default=None
    )


@dataclass
class HTTPGetAction(BaseManifest):
    """An HTTP GET request used by a probe."""

    path: str
    port: int
    host: str | None = None


@dataclass
class Probe(BaseManifest):
    """A health check performed against a container."""

    http_get: HTTPGetAction = field(metadata=field_options(alias="httpGet"))
    initial_delay_seconds: int = field(
        metadata=field_options(alias="initialDelaySeconds"), default=2
    )
    period_seconds: int = field(metadata=field_options(alias="periodSeconds"), default=3)
    timeout_seconds: int = field(
        metadata=field_options(alias="timeoutSeconds"), default=5
    )
    failure_threshold: int = field(
        metadata=field_options(alias="failureThreshold"), default=3
    )
    success_threshold: int = field(
        metadata=field_options(alias="successThreshold"), default=1
    )


@dataclass
class ResourceRequirements(BaseManifest):
    """Compute resource requests and limits."""

    limits: dict[str, str] | None = None
    requests: dict[str, str] | None = None


@dataclass
class Container(BaseManifest):
    """A single application container in a pod."""

    name: str
    image: str
    image_pull_policy: str | None = field(
        metadata=field_options(alias="imagePullPolicy"), default=None
    )
    env: list[EnvVar] = field(default_factory=list)
    args: list[str] = field(default_factory=list)
    volume_mounts: list[VolumeMount] = field(
        metadata=field_options(alias="volumeMounts"), default_factory=list
    )
    readiness_probe: Probe | None = field(
        metadata=field_options(alias="readinessProbe"), default=None
    )
    resources: ResourceRequirements | None = None


@dataclass
class Toleration(BaseManifest):
    """Allows a pod to schedule onto nodes with matching taints."""

    operator: str
    key: str | None = None
    effect: str | None = None
    value: str | None = None


@dataclass
class HostAlias(BaseManifest):
    """An entry injected into the pod's hosts file."""

    ip: str
    hostnames: list[str]


@dataclass
class NodeSelectorRequirement(BaseManifest):
    """A selector requirement on node labels."""

    key: str
    operator: str
    values: list[str]


@dataclass
class NodeSelectorTerm(BaseManifest):
    """A set of requirements that are ANDed together."""

    match_expressions: list[NodeSelectorRequirement] = field(
        metadata=field_options(alias="matchExpressions")
    )


@dataclass
class NodeSelector(BaseManifest):
    """A set of terms that are ORed together."""

    node_selector_terms: list[NodeSelectorTerm] = field(
        metadata=field_options(alias="nodeSelectorTerms")
    )


@dataclass
class NodeAffinity(BaseManifest):
    """Node affinity scheduling rules for a pod."""

    required_during_scheduling_ignored_during_execution: NodeSelector | None = field(
        metadata=field_options(alias="requiredDuringSchedulingIgnoredDuringExecution"),
        default=None,
    )


@dataclass
class Affinity(BaseManifest):
    """Scheduling constraints for a pod."""

    node_affinity: NodeAffinity | None = field(
        metadata=field_options(alias="nodeAffinity"), default=None
    )


@dataclass
class PodSpec(BaseManifest):
    """Specification of the desired behavior of a pod."""

    containers: list[Container]
    volumes: list[Volume] = field(default_factory=list)
    termination_grace_period_seconds: int | None = field(
        metadata=field_options(alias="terminationGracePeriodSeconds"), default=None
    )
    service_account_name: str | None = field(
        metadata=field_options(alias="serviceAccountName"), default=None
    )
    image_pull_secrets: list[LocalObjectReference] | None = field(
        metadata=field_options(alias="imagePullSecrets"), default=None
    )
    tolerations: list[Toleration] | None = None
    host_aliases: list[HostAlias] | None = field(
        metadata=field_options(alias="hostAliases"), default=None
    )
    affinity: Affinity | None = None
    node_name: str | None = field(metadata=field_options(alias="nodeName"), default=None)


@dataclass
class PodTemplateSpec(BaseManifest):
    """Describes the pods created from a template."""

    metadata: ObjectMeta
    spec: PodSpec


@dataclass
class LabelSelector(BaseManifest):
    """A label query over a set of resources."""

    match_labels: dict[str, str] = field(metadata=field_options(alias="matchLabels"))


@dataclass
class DaemonSetSpec(BaseManifest):
    """Specification of a DaemonSet."""

    selector: LabelSelector
    template: PodTemplateSpec


@dataclass
class DaemonSet(KubernetesObject):
    """A DaemonSet runs one pod per eligible node."""

    kind: ClassVar[str] = DAEMON_SET_KIND
    api_version: ClassVar[str] = "apps/v1"

    spec: DaemonSetSpec

    @property
    def pod_spec(self) -> PodSpec:
        """Return the pod spec of the template."""
        return self.spec.template.spec

    @property
    def container(self) -> Container:
        """Return the single container of the pod template."""
        return self.pod_spec.containers[0]


@dataclass
class ServicePort(BaseManifest):
    """A port exposed by a Service."""

    name: str
    port: int
    target_port: int = field(metadata=field_options(alias="targetPort"))
    protocol: str | None = None


@dataclass
class ServiceSpec(BaseManifest):
    """Specification of a Service."""

    ports: list[ServicePort]
    selector: dict[str, str]


@dataclass
class Service(KubernetesObject):
    """A named network endpoint in front of a set of pods."""

    kind: ClassVar[str] = SERVICE_KIND
    api_version: ClassVar[str] = "v1"

    spec: ServiceSpec


@dataclass
class ConfigMap(KubernetesObject):
    """A ConfigMap is an API object used to store data in key-value pairs."""

    kind: ClassVar[str] = CONFIG_MAP_KIND
    api_version: ClassVar[str] = "v1"

    data: dict[str, str] | None = None


@dataclass
class Secret(KubernetesObject):
    """A Secret holds credential material."""

    kind: ClassVar[str] = SECRET_KIND
    api_version: ClassVar[str] = "v1"

    data: dict[str, str] | None = None
    """Base64 encoded values."""

    string_data: dict[str, str] | None = field(
        metadata=field_options(alias="stringData"), default=None
    )
    """Plain text values, taking precedence over data."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Secret":
        """Parse a Secret from a kubernetes resource object."""
        check_api_version(doc, "v1")
        check_metadata(cls, doc)
        return cls.from_dict(doc)

    def decoded(self) -> dict[str, str]:
        """Return the plain text values of the secret."""
        values: dict[str, str] = {}
        for key, value in (self.data or {}).items():
            try:
                values[key] = base64.b64decode(value).decode("utf-8")
            except ValueError as err:
                raise InputException(
                    f"Unable to decode data key {key} of secret {self.resource_id}"
                ) from err
        values.update(self.string_data or {})
        return values


@dataclass
class ResourceRequest(BaseManifest):
    """Requested storage for a claim."""

    requests: dict[str, str]


@dataclass
class PersistentVolumeClaimSpec(BaseManifest):
    """Specification of a PersistentVolumeClaim."""

    access_modes: list[str] = field(metadata=field_options(alias="accessModes"))
    resources: ResourceRequest
    storage_class_name: str = field(metadata=field_options(alias="storageClassName"))


@dataclass
class PersistentVolumeClaim(KubernetesObject):
    """A request for persistent storage, created once and never updated."""

    kind: ClassVar[str] = PVC_KIND
    api_version: ClassVar[str] = "v1"

    spec: PersistentVolumeClaimSpec


@dataclass
class PodStatus(BaseManifest):
    """Observed status of a pod."""

    phase: str | None = None
    pod_ip: str | None = field(metadata=field_options(alias="podIP"), default=None)


@dataclass
class Pod(KubernetesObject):
    """A running pod observed in the cluster."""

    kind: ClassVar[str] = POD_KIND
    api_version: ClassVar[str] = "v1"

    status: PodStatus | None = None

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Pod":
        """Parse a Pod from a kubernetes resource object."""
        check_api_version(doc, "v1")
        check_metadata(cls, doc)
        return cls(
            metadata=ObjectMeta.from_dict(doc["metadata"]),
            status=PodStatus.from_dict(doc["status"]) if doc.get("status") else None,
        )
