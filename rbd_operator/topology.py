"""Library for deriving placement and identity facts from the cluster.

These functions turn the declared cluster facts into the pieces of a pod
spec that depend on topology: where pods may be scheduled, how many replicas
are expected, which registry credentials are injected and which TLS material
is mounted.
"""

from dataclasses import dataclass, field
import logging
import posixpath

from .cluster import ImageHub, K8sNode, RainbondCluster, RbdComponent
from .manifest import (
    HOSTNAME_LABEL,
    NODE_SELECTOR_OP_IN,
    Affinity,
    EnvVar,
    HostAlias,
    LocalObjectReference,
    NodeAffinity,
    NodeSelector,
    NodeSelectorRequirement,
    NodeSelectorTerm,
    Secret,
    SecretVolumeSource,
    Volume,
    VolumeMount,
)

__all__ = [
    "EtcdTLS",
    "affinity_for_required_nodes",
    "replicas_for_nodes",
    "image_hub_envs",
    "repository_path",
    "etcd_tls",
    "etcd_endpoints",
    "image_repository",
    "host_aliases",
    "image_pull_secrets",
]

_LOGGER = logging.getLogger(__name__)


DEFAULT_IMAGE_REPOSITORY = "goodrain.me"
DEFAULT_ETCD_ENDPOINT = "http://rbd-etcd:2379"

ETCD_SSL_VOLUME = "etcdssl"
ETCD_SSL_PATH = "/run/ssl/etcd"

IMAGE_REPOSITORY_DOMAIN_ENV = "BUILD_IMAGE_REPOSTORY_DOMAIN"
IMAGE_REPOSITORY_USER_ENV = "BUILD_IMAGE_REPOSTORY_USER"
IMAGE_REPOSITORY_PASS_ENV = "BUILD_IMAGE_REPOSTORY_PASS"


@dataclass(frozen=True)
class EtcdTLS:
    """TLS material mounted into a pod to talk to etcd."""

    volume: Volume
    mount: VolumeMount
    args: list[str] = field(default_factory=list)


def affinity_for_required_nodes(node_names: list[str]) -> Affinity | None:
    """Return an affinity restricting scheduling to exactly the named nodes."""
    if not node_names:
        return None
    return Affinity(
        node_affinity=NodeAffinity(
            required_during_scheduling_ignored_during_execution=NodeSelector(
                node_selector_terms=[
                    NodeSelectorTerm(
                        match_expressions=[
                            NodeSelectorRequirement(
                                key=HOSTNAME_LABEL,
                                operator=NODE_SELECTOR_OP_IN,
                                values=list(node_names),
                            )
                        ]
                    )
                ]
            )
        )
    )


def replicas_for_nodes(nodes: list[K8sNode]) -> int:
    """Return the desired replica count, one per designated node."""
    return len(nodes)


def image_hub_envs(image_hub: ImageHub | None) -> list[EnvVar]:
    """Return the environment variables carrying external registry credentials."""
    if image_hub is None:
        return []
    return [
        EnvVar(
            name=IMAGE_REPOSITORY_DOMAIN_ENV,
            value=repository_path(image_hub),
        ),
        EnvVar(name=IMAGE_REPOSITORY_USER_ENV, value=image_hub.username),
        EnvVar(name=IMAGE_REPOSITORY_PASS_ENV, value=image_hub.password),
    ]


def repository_path(image_hub: ImageHub) -> str:
    """Return the repository path for an image hub, e.g. `domain/namespace`."""
    parts = [part for part in (image_hub.domain, image_hub.namespace) if part]
    if not parts:
        return ""
    path = posixpath.normpath("/".join(parts))
    # normpath keeps exactly two leading slashes
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    return path


def etcd_tls(secret: Secret | None) -> EtcdTLS | None:
    """Return the volume, mount and flags for the etcd TLS secret, if any."""
    if secret is None:
        return None
    return EtcdTLS(
        volume=Volume(
            name=ETCD_SSL_VOLUME,
            secret=SecretVolumeSource(secret_name=secret.name),
        ),
        mount=VolumeMount(name=ETCD_SSL_VOLUME, mount_path=ETCD_SSL_PATH),
        args=[
            f"--etcd-ca={ETCD_SSL_PATH}/ca-file",
            f"--etcd-cert={ETCD_SSL_PATH}/cert-file",
            f"--etcd-key={ETCD_SSL_PATH}/key-file",
        ],
    )


def etcd_endpoints(cluster: RainbondCluster) -> list[str]:
    """Return the etcd endpoints, defaulting to the in-cluster etcd."""
    if (config := cluster.spec.etcd_config) is None or not config.endpoints:
        return [DEFAULT_ETCD_ENDPOINT]
    return list(config.endpoints)


def image_repository(cluster: RainbondCluster) -> str:
    """Return the image repository used by the cluster."""
    if (image_hub := cluster.spec.image_hub) is None:
        return DEFAULT_IMAGE_REPOSITORY
    return repository_path(image_hub)


def host_aliases(cluster: RainbondCluster) -> list[HostAlias]:
    """Return host entries resolving the default image repository to the gateway."""
    if image_repository(cluster) != DEFAULT_IMAGE_REPOSITORY:
        return []
    if not (ip := cluster.gateway_ingress_ip()):
        _LOGGER.debug(
            "No gateway address for %s, skipping host aliases", cluster.resource_id
        )
        return []
    return [HostAlias(ip=ip, hostnames=[DEFAULT_IMAGE_REPOSITORY])]


def image_pull_secrets(
    component: RbdComponent, cluster: RainbondCluster
) -> list[LocalObjectReference] | None:
    """Return the image pull secrets for the component's pods."""
    if component.spec.image_pull_secrets:
        return list(component.spec.image_pull_secrets)
    if name := cluster.image_pull_secret_name:
        return [LocalObjectReference(name=name)]
    return None
