"""Handler for the rbd-chaos builder daemon.

The builder runs as a DaemonSet on the nodes designated for it by the
cluster, building application images from source. It keeps its source cache
and shared data on two read-write-many claims, and talks to the region
database, etcd and optionally an external image registry.
"""

import logging

from rbd_operator.cluster import PvcParameters, RainbondCluster, RbdComponent
from rbd_operator.config import HandlerConfig
from rbd_operator.context import trace_step
from rbd_operator.exceptions import (
    ConfigResolutionError,
    HandlerNotReadyError,
)
from rbd_operator.manifest import (
    HOST_PATH_SOCKET,
    TOLERATION_OP_EXISTS,
    ConfigMap,
    Container,
    DaemonSet,
    DaemonSetSpec,
    EnvVar,
    EnvVarSource,
    HostPathVolumeSource,
    KubernetesObject,
    LabelSelector,
    ObjectFieldSelector,
    ObjectMeta,
    PersistentVolumeClaimVolumeSource,
    Pod,
    PodSpec,
    PodTemplateSpec,
    Service,
    ServicePort,
    ServiceSpec,
    Toleration,
    Volume,
    VolumeMount,
)
from rbd_operator.merge import (
    merge_args,
    merge_envs,
    merge_volume_mounts,
    merge_volumes,
)
from rbd_operator.store import Store
from rbd_operator import topology

from .common import (
    DB_NAME,
    REGION_DATABASE_NAME,
    ResolvedContext,
    create_persistent_volume_claim_rwx,
    etcd_secret,
    get_default_db_info,
    labels_for_component,
    labels_for_rainbond,
    list_pods,
    make_readiness_probe_http,
    set_storage_class_name,
)
from .handler import (
    ComponentHandler,
    PodLister,
    Replicaser,
    ResourcesCreator,
    StorageClassRWXer,
)

__all__ = ["Chaos", "CHAOS_NAME"]

_LOGGER = logging.getLogger(__name__)


CHAOS_NAME = "rbd-chaos"
RESOURCE_PROXY_NAME = "rbd-resource-proxy"
SERVICE_ACCOUNT_NAME = "rainbond-operator"

GRDATA_PVC = "rbd-cpt-grdata"
CACHE_PVC = "rbd-chaos-cache"

HEALTH_PATH = "/v2/builder/health"
API_PORT = 3228

DOCKER_SOCK_PATH = "/var/run/docker.sock"
CACHE_PATH = "/cache"
SOURCE_PATH = "/cache/source"

MAVEN_SETTING_NAME = "java-maven-aliyun"
MAVEN_SETTING_KEY = "mavensetting"
MAVEN_SETTING = """<settings xmlns="http://maven.apache.org/SETTINGS/1.0.0"
  xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
  xsi:schemaLocation="http://maven.apache.org/SETTINGS/1.0.0
                      http://maven.apache.org/xsd/settings-1.0.0.xsd">
  <localRepository/>
  <interactiveMode/>
  <usePluginRegistry/>
  <offline/>
  <pluginGroups/>
  <servers/>
  <mirrors>
    <mirror>
     <id>aliyunmaven</id>
     <mirrorOf>central</mirrorOf>
     <name>阿里云公共仓库</name>
     <url>https://maven.aliyun.com/repository/central</url>
    </mirror>
    <mirror>
      <id>repo1</id>
      <mirrorOf>central</mirrorOf>
      <name>central repo</name>
      <url>http://repo1.maven.org/maven2/</url>
    </mirror>
    <mirror>
     <id>aliyunmaven</id>
     <mirrorOf>apache snapshots</mirrorOf>
     <name>阿里云阿帕奇仓库</name>
     <url>https://maven.aliyun.com/repository/apache-snapshots</url>
    </mirror>
  </mirrors>
  <proxies/>
  <activeProfiles/>
  <profiles>
    <profile>
        <repositories>
           <repository>
                <id>aliyunmaven</id>
                <name>aliyunmaven</name>
                <url>https://maven.aliyun.com/repository/public</url>
                <layout>default</layout>
                <releases>
                        <enabled>true</enabled>
                </releases>
                <snapshots>
                        <enabled>true</enabled>
                </snapshots>
            </repository>
            <repository>
                <id>MavenCentral</id>
                <url>http://repo1.maven.org/maven2/</url>
            </repository>
            <repository>
                <id>aliyunmavenApache</id>
                <url>https://maven.aliyun.com/repository/apache-snapshots</url>
            </repository>
        </repositories>
     </profile>
  </profiles>
</settings>
"""


class Chaos(
    ComponentHandler, PodLister, StorageClassRWXer, ResourcesCreator, Replicaser
):
    """Handler computing the desired state of the rbd-chaos builder.

    A handler instance is used for a single reconciliation pass: `before()`
    resolves the database, etcd secret and storage class, after which
    `resources()` and `resources_create_if_not_exists()` are pure.
    """

    def __init__(
        self,
        store: Store,
        component: RbdComponent,
        cluster: RainbondCluster,
        config: HandlerConfig | None = None,
    ) -> None:
        """Initialize the handler for the component in the cluster."""
        self._store = store
        self._component = component
        self._cluster = cluster
        self._config = config if config is not None else HandlerConfig.from_env()
        self._labels = labels_for_component(component)
        self._resolved: ResolvedContext | None = None
        self._pvc_parameters_rwx: PvcParameters | None = None

    @property
    def namespace(self) -> str:
        return self._component.namespace or ""

    @property
    def labels(self) -> dict[str, str]:
        """Labels selecting the objects of the component."""
        return dict(self._labels)

    @property
    def resolved(self) -> ResolvedContext:
        """Return the facts resolved by `before()`."""
        if self._resolved is None:
            raise HandlerNotReadyError(
                f"Handler for {self._component.resource_id} was not resolved, call before() first"
            )
        return self._resolved

    def before(self) -> None:
        """Resolve the database, etcd secret and storage class."""
        with trace_step(f"{CHAOS_NAME} before"):
            self._resolved = self._resolve()

    def _resolve(self) -> ResolvedContext:
        try:
            database = get_default_db_info(
                self._store,
                self._cluster.spec.region_database,
                self.namespace,
                DB_NAME,
            )
        except Exception as err:
            raise ConfigResolutionError("database info", err) from err
        if not database.name:
            database.name = REGION_DATABASE_NAME

        try:
            secret = etcd_secret(self._store, self._cluster)
        except Exception as err:
            raise ConfigResolutionError("etcd secret", err) from err
        if secret is None:
            _LOGGER.debug("No etcd secret for %s, TLS disabled", CHAOS_NAME)

        try:
            set_storage_class_name(self._store, self.namespace, self)
        except Exception as err:
            raise ConfigResolutionError("storage class", err) from err

        return ResolvedContext(database=database, etcd_tls=topology.etcd_tls(secret))

    def resources(self) -> list[KubernetesObject]:
        """Return the DaemonSet, Service and default maven settings."""
        resolved = self.resolved
        return [
            self._daemon_set(resolved),
            self._service(),
            self._default_maven_setting(),
        ]

    def after(self) -> None:
        """No post apply hooks."""

    def list_pods(self) -> list[Pod]:
        """Return the builder pods."""
        return list_pods(self._store, self.namespace, self._labels)

    def set_storage_class_name_rwx(self, pvc_parameters: PvcParameters) -> None:
        """Set the storage class parameters used for the claims."""
        self._pvc_parameters_rwx = pvc_parameters

    def resources_create_if_not_exists(self) -> list[KubernetesObject]:
        """Return the shared data and build cache claims."""
        return [
            create_persistent_volume_claim_rwx(
                self.namespace,
                GRDATA_PVC,
                self._pvc_parameters_rwx,
                self._labels,
                self._config.grdata_storage_request,
            ),
            create_persistent_volume_claim_rwx(
                self.namespace,
                CACHE_PVC,
                self._pvc_parameters_rwx,
                self._labels,
                self._config.cache_storage_request,
            ),
        ]

    def replicas(self) -> int:
        """Return one replica per node designated for the builder."""
        return topology.replicas_for_nodes(self._cluster.spec.nodes_for_chaos)

    def _daemon_set(self, resolved: ResolvedContext) -> DaemonSet:
        volume_mounts = [
            VolumeMount(name="grdata", mount_path="/grdata"),
            VolumeMount(name="dockersock", mount_path=DOCKER_SOCK_PATH),
            VolumeMount(name="cache", mount_path=CACHE_PATH),
            VolumeMount(name="grdata", mount_path="/root/.ssh", sub_path="services/ssh"),
        ]
        volumes = [
            Volume(
                name="grdata",
                persistent_volume_claim=PersistentVolumeClaimVolumeSource(
                    claim_name=GRDATA_PVC
                ),
            ),
            Volume(
                name="dockersock",
                host_path=HostPathVolumeSource(
                    path=DOCKER_SOCK_PATH, type=HOST_PATH_SOCKET
                ),
            ),
            Volume(
                name="cache",
                persistent_volume_claim=PersistentVolumeClaimVolumeSource(
                    claim_name=CACHE_PVC
                ),
            ),
        ]
        args = [
            "--hostIP=$(POD_IP)",
            resolved.database.region_data_source(),
            "--etcd-endpoints=" + ",".join(topology.etcd_endpoints(self._cluster)),
            "--pvc-grdata-name=" + GRDATA_PVC,
            "--pvc-cache-name=" + CACHE_PVC,
            "--rbd-namespace=" + self.namespace,
            "--rbd-repo=" + RESOURCE_PROXY_NAME,
        ]
        if (tls := resolved.etcd_tls) is not None:
            volume_mounts.append(tls.mount)
            volumes.append(tls.volume)
            args.extend(tls.args)

        env = [
            EnvVar(
                name="POD_IP",
                value_from=EnvVarSource(
                    field_ref=ObjectFieldSelector(field_path="status.podIP")
                ),
            ),
            EnvVar(name="SOURCE_DIR", value=SOURCE_PATH),
            EnvVar(name="CACHE_DIR", value=CACHE_PATH),
            EnvVar(name="IMAGE_PULL_SECRET", value=self._cluster.image_pull_secret_name),
        ]
        env.extend(topology.image_hub_envs(self._cluster.spec.image_hub))

        spec = self._component.spec
        env = merge_envs(env, spec.env)
        volume_mounts = merge_volume_mounts(volume_mounts, spec.volume_mounts)
        volumes = merge_volumes(volumes, spec.volumes)
        args = merge_args(args, spec.args)

        node_names = [node.name for node in self._cluster.spec.nodes_for_chaos]
        return DaemonSet(
            metadata=ObjectMeta(
                name=CHAOS_NAME, namespace=self.namespace, labels=self.labels
            ),
            spec=DaemonSetSpec(
                selector=LabelSelector(match_labels=self.labels),
                template=PodTemplateSpec(
                    metadata=ObjectMeta(name=CHAOS_NAME, labels=self.labels),
                    spec=PodSpec(
                        termination_grace_period_seconds=0,
                        service_account_name=SERVICE_ACCOUNT_NAME,
                        image_pull_secrets=topology.image_pull_secrets(
                            self._component, self._cluster
                        ),
                        # tolerate everything.
                        tolerations=[Toleration(operator=TOLERATION_OP_EXISTS)],
                        host_aliases=topology.host_aliases(self._cluster) or None,
                        affinity=topology.affinity_for_required_nodes(node_names),
                        containers=[
                            Container(
                                name=CHAOS_NAME,
                                image=spec.image,
                                image_pull_policy=self._component.image_pull_policy,
                                env=env,
                                args=args,
                                volume_mounts=volume_mounts,
                                readiness_probe=make_readiness_probe_http(
                                    HEALTH_PATH, API_PORT
                                ),
                                resources=spec.resources,
                            )
                        ],
                        volumes=volumes,
                    ),
                ),
            ),
        )

    def _service(self) -> Service:
        return Service(
            metadata=ObjectMeta(
                name=CHAOS_NAME, namespace=self.namespace, labels=self.labels
            ),
            spec=ServiceSpec(
                ports=[ServicePort(name="api", port=API_PORT, target_port=API_PORT)],
                selector=self.labels,
            ),
        )

    def _default_maven_setting(self) -> ConfigMap:
        return ConfigMap(
            metadata=ObjectMeta(
                name=MAVEN_SETTING_NAME,
                namespace=self.namespace,
                labels=labels_for_rainbond(
                    {"configtype": "mavensetting", "default": "true"}
                ),
            ),
            data={MAVEN_SETTING_KEY: MAVEN_SETTING},
        )
