import kopf
from typing import Any, Dict, Optional
from kubernetes_asyncio.client import (
    ApiClient,
    V1Container,
    V1ContainerPort,
    V1Deployment,
    V1DeploymentSpec,
    V1DeploymentStrategy,
    V1EmptyDirVolumeSource,
    V1EnvVar,
    V1EnvVarSource,
    V1HostPathVolumeSource,
    V1LabelSelector,
    V1ObjectFieldSelector,
    V1ObjectMeta,
    V1PodSpec,
    V1PodTemplateSpec,
    V1SecurityContext,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1Toleration,
    V1Volume,
    V1VolumeMount,
)
from blockclaim.common.models.labels import Labels
from blockclaim.resources.base import compute_hash, prepare_hash_annotation
from blockclaim.resources.custom import GROUP, VERSION
from blockclaim.resources.volumeclaim import BlockVolume, VolumeClaim
from blockclaim.types.models import VolumeClaimResources
from blockclaim.types.settings import Settings


class ManifestBuilder:
    """Builds the desired state of every object provisioned for a claim.

    Pure: nothing here talks to the API server.
    """

    OPERATOR_NAME = "blockclaim-operator"

    ENDPOINT_COMPONENT = "endpoint"
    VOLUME_COMPONENT = "volume"
    TARGET_COMPONENT = "target"
    REPLICA_COMPONENT = "replica"

    TARGET_PORT_NAME = "iscsi"
    EXPORTER_PORT_NAME = "exporter"
    EXPORTER_PORT = 9500
    MGMT_PORT_NAME = "mgmt"
    MGMT_PORT = 80
    RESYNC_INTERVAL = "30"

    SOCKET_VOLUME = "sockfile"
    CONF_VOLUME = "conf"
    TMP_VOLUME = "tmp"
    SOCKET_DIR = "/var/run"
    CONF_DIR = "/usr/local/etc/istgt"
    TMP_DIR = "/var/tmp"

    # Seconds a target pod stays bound to an unhealthy node before eviction
    TOLERATION_SECONDS = 30

    settings: Settings
    api_client: ApiClient

    def __init__(self, settings: Settings, api_client: ApiClient) -> None:
        self.settings = settings
        self.api_client = api_client

    def serialize(self, obj: Any) -> Dict[str, Any]:
        return self.api_client.sanitize_for_serialization(obj)

    def labels(self, volume_name: str, kind: str, component_type: str) -> Labels:
        return Labels.generate_default_labels(
            volume_name, kind, component_type, self.OPERATOR_NAME
        )

    def target_selector(self, volume_name: str) -> Dict[str, str]:
        return (
            Labels()
            .include_blockclaim_volume(volume_name)
            .include_blockclaim_component_type(self.TARGET_COMPONENT)
            .as_dict()
        )

    def build_endpoint(self, claim: VolumeClaim) -> Dict[str, Any]:
        """Build the Service fronting the volume target."""
        volume_name = claim.volume_name
        service = V1Service(
            api_version="v1",
            kind="Service",
            metadata=V1ObjectMeta(
                name=VolumeClaimResources.endpoint_name(claim.name),
                namespace=claim.namespace,
                labels=self.labels(volume_name, "Service", self.ENDPOINT_COMPONENT).as_dict(),
            ),
            spec=V1ServiceSpec(
                selector=self.target_selector(volume_name),
                type="ClusterIP",
                ports=[
                    V1ServicePort(
                        name=self.TARGET_PORT_NAME,
                        protocol="TCP",
                        port=self.settings.target_port,
                        target_port=self.settings.target_port,
                    ),
                    V1ServicePort(
                        name=self.EXPORTER_PORT_NAME,
                        protocol="TCP",
                        port=self.EXPORTER_PORT,
                        target_port=self.EXPORTER_PORT,
                    ),
                ],
            ),
        )
        body = self.serialize(service)
        kopf.append_owner_reference(body, owner=claim.body)
        return body

    def build_endpoint_ref(self, endpoint: Dict[str, Any]) -> Dict[str, Any]:
        metadata = endpoint.get("metadata") or {}
        spec = endpoint.get("spec") or {}
        return {
            "name": metadata.get("name"),
            "namespace": metadata.get("namespace"),
            "clusterIP": spec.get("clusterIP"),
            "port": self.settings.target_port,
        }

    def build_volume(self, claim: VolumeClaim, endpoint: Dict[str, Any]) -> Dict[str, Any]:
        """Build the volume record, seeded with the endpoint and requested capacity."""
        volume_name = claim.volume_name
        endpoint_ref = self.build_endpoint_ref(endpoint)
        replicas = claim.desired_replicas
        spec = {
            "capacity": claim.requested_capacity,
            "nodeID": claim.node_id,
            "endpointRef": endpoint_ref,
            "replicationFactor": replicas,
            "consistencyFactor": replicas // 2 + 1,
            "targetPortal": self.target_portal(endpoint_ref),
            "iqn": VolumeClaimResources.iqn(volume_name),
        }
        body = {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": BlockVolume.KIND,
            "metadata": {
                "name": volume_name,
                "namespace": claim.namespace,
                "labels": self.labels(volume_name, BlockVolume.KIND, self.VOLUME_COMPONENT).as_dict(),
                "annotations": prepare_hash_annotation(compute_hash(spec)),
            },
            "spec": spec,
        }
        kopf.append_owner_reference(body, owner=claim.body)
        return body

    def target_portal(self, endpoint_ref: Dict[str, Any]) -> Optional[str]:
        if not endpoint_ref.get("clusterIP"):
            return None
        return f"{endpoint_ref['clusterIP']}:{endpoint_ref['port']}"

    def build_target(self, volume: BlockVolume) -> Dict[str, Any]:
        """Build the Deployment serving the volume."""
        volume_name = volume.name
        labels = self.labels(volume_name, "Deployment", self.TARGET_COMPONENT)
        selector = self.target_selector(volume_name)
        pod_labels = labels.as_dict()
        pod_labels.update(selector)
        spec = V1DeploymentSpec(
            replicas=1,
            strategy=V1DeploymentStrategy(type="Recreate"),
            selector=V1LabelSelector(match_labels=selector),
            template=V1PodTemplateSpec(
                metadata=V1ObjectMeta(labels=pod_labels),
                spec=V1PodSpec(
                    service_account_name=self.settings.target_service_account,
                    containers=[
                        self.prepare_target_container(),
                        self.prepare_exporter_container(),
                        self.prepare_mgmt_container(volume),
                    ],
                    tolerations=self.prepare_tolerations(),
                    volumes=self.prepare_volumes(volume_name),
                ),
            ),
        )
        deployment = V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=V1ObjectMeta(
                name=VolumeClaimResources.target_name(volume_name),
                namespace=volume.namespace,
                labels=labels.as_dict(),
            ),
            spec=spec,
        )
        body = self.serialize(deployment)
        body["metadata"]["annotations"] = prepare_hash_annotation(compute_hash(body["spec"]))
        kopf.append_owner_reference(body, owner=volume.body)
        return body

    def prepare_volume_mounts(self):
        return [
            V1VolumeMount(name=self.SOCKET_VOLUME, mount_path=self.SOCKET_DIR),
            V1VolumeMount(name=self.CONF_VOLUME, mount_path=self.CONF_DIR),
            V1VolumeMount(name=self.TMP_VOLUME, mount_path=self.TMP_DIR),
        ]

    def prepare_target_container(self) -> V1Container:
        return V1Container(
            name="target",
            image=self.settings.target_image,
            image_pull_policy="IfNotPresent",
            ports=[
                V1ContainerPort(
                    name=self.TARGET_PORT_NAME,
                    container_port=self.settings.target_port,
                    protocol="TCP",
                )
            ],
            security_context=V1SecurityContext(privileged=True),
            volume_mounts=self.prepare_volume_mounts(),
        )

    def prepare_exporter_container(self) -> V1Container:
        return V1Container(
            name="exporter",
            image=self.settings.target_monitor_image,
            image_pull_policy="IfNotPresent",
            command=["exporter"],
            args=["-e=volume"],
            ports=[
                V1ContainerPort(
                    name=self.EXPORTER_PORT_NAME,
                    container_port=self.EXPORTER_PORT,
                    protocol="TCP",
                )
            ],
            volume_mounts=[
                V1VolumeMount(name=self.SOCKET_VOLUME, mount_path=self.SOCKET_DIR),
                V1VolumeMount(name=self.CONF_VOLUME, mount_path=self.CONF_DIR),
            ],
        )

    def prepare_mgmt_container(self, volume: BlockVolume) -> V1Container:
        return V1Container(
            name="mgmt",
            image=self.settings.target_mgmt_image,
            image_pull_policy="IfNotPresent",
            ports=[
                V1ContainerPort(
                    name=self.MGMT_PORT_NAME,
                    container_port=self.MGMT_PORT,
                    protocol="TCP",
                )
            ],
            env=[
                V1EnvVar(name="VOLUME_ID", value=volume.uid),
                V1EnvVar(name="RESYNC_INTERVAL", value=self.RESYNC_INTERVAL),
                V1EnvVar(
                    name="NODE_NAME",
                    value_from=V1EnvVarSource(
                        field_ref=V1ObjectFieldSelector(field_path="spec.nodeName")
                    ),
                ),
                V1EnvVar(
                    name="POD_NAME",
                    value_from=V1EnvVarSource(
                        field_ref=V1ObjectFieldSelector(field_path="metadata.name")
                    ),
                ),
            ],
            security_context=V1SecurityContext(privileged=True),
            volume_mounts=self.prepare_volume_mounts(),
        )

    def prepare_tolerations(self):
        return [
            V1Toleration(
                key=key,
                operator="Exists",
                effect="NoExecute",
                toleration_seconds=self.TOLERATION_SECONDS,
            )
            for key in (
                "node.kubernetes.io/not-ready",
                "node.kubernetes.io/unreachable",
            )
        ]

    def prepare_volumes(self, volume_name: str):
        return [
            V1Volume(name=self.SOCKET_VOLUME, empty_dir=V1EmptyDirVolumeSource()),
            V1Volume(name=self.CONF_VOLUME, empty_dir=V1EmptyDirVolumeSource()),
            V1Volume(
                name=self.TMP_VOLUME,
                host_path=V1HostPathVolumeSource(
                    path=VolumeClaimResources.target_dir(self.settings.target_dir, volume_name),
                    type="DirectoryOrCreate",
                ),
            ),
        ]

    def build_replica(
        self, claim: VolumeClaim, volume: BlockVolume, pool: str
    ) -> Dict[str, Any]:
        """Build a replica record placed on `pool`.

        The name and replica ID are derived from (volume, pool) only, so
        rebuilding after a lost write yields the same object.
        """
        volume_name = volume.name
        labels = (
            self.labels(volume_name, "VolumeReplica", self.REPLICA_COMPONENT)
            .include_blockclaim_volume(claim.name)
            .include_blockclaim_pool(pool)
        )
        body = {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": "VolumeReplica",
            "metadata": {
                "name": VolumeClaimResources.replica_name(volume_name, pool),
                "namespace": volume.namespace,
                "labels": labels.as_dict(),
            },
            "spec": {
                "replicaID": compute_hash(f"{volume.namespace}/{volume_name}/{pool}"),
                "poolRef": pool,
                "endpointRef": volume.endpoint_ref,
                "capacity": volume.capacity,
            },
        }
        kopf.append_owner_reference(body, owner=volume.body)
        return body
