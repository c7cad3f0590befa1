import asyncio
from kubernetes_asyncio.client import ApiClient
from blockclaim.controller.distributor import ReplicaDistributor
from blockclaim.controller.events import EventIngestor
from blockclaim.controller.finalizer import FinalizerHandler
from blockclaim.controller.placement import OnlinePoolPlacement, PlacementPolicy
from blockclaim.controller.provisioner import ProvisioningOrchestrator
from blockclaim.controller.queue import WorkQueue, default_controller_rate_limiter
from blockclaim.controller.reconciler import Reconciler
from blockclaim.controller.recorder import EventRecorder, KopfEventRecorder
from blockclaim.controller.resize import ResizeStateMachine
from blockclaim.controller.worker import Resyncer, WorkerPool
from blockclaim.resources import (
    BlockVolumeClient,
    DeploymentClient,
    ManifestBuilder,
    ResourceClient,
    ServiceClient,
    StoragePoolClient,
    VolumeClaimClient,
    VolumeReplicaClient,
)
from blockclaim.sensors import SensorDelegate
from blockclaim.sensors.base import OperatorSensor
from blockclaim.types.settings import Settings


class ControllerContext:
    """Everything the volume claim controller runs on, wired once at startup."""

    settings: Settings
    stop: asyncio.Event
    queue: WorkQueue
    ingestor: EventIngestor
    reconciler: Reconciler
    workers: WorkerPool
    resyncer: Resyncer

    def __init__(
        self,
        settings: Settings,
        claims: ResourceClient,
        volumes: ResourceClient,
        replicas: ResourceClient,
        pools: ResourceClient,
        endpoints: ResourceClient,
        targets: ResourceClient,
        manifests: ManifestBuilder,
        recorder: EventRecorder,
        sensor: OperatorSensor = None,
        placement: PlacementPolicy = None,
    ) -> None:
        self.settings = settings
        self.claims = claims
        self.volumes = volumes
        self.replicas = replicas
        self.pools = pools
        self.endpoints = endpoints
        self.targets = targets
        self.manifests = manifests
        self.recorder = recorder
        self.sensor = sensor if sensor is not None else SensorDelegate()
        self.placement = placement or OnlinePoolPlacement(pools, settings.pool_namespace)

        self.stop = asyncio.Event()
        self.queue = WorkQueue(
            rate_limiter=default_controller_rate_limiter(settings), sensor=self.sensor
        )
        self.distributor = ReplicaDistributor(
            replicas, self.placement, manifests, recorder=recorder, sensor=self.sensor
        )
        self.provisioner = ProvisioningOrchestrator(
            claims,
            endpoints,
            volumes,
            targets,
            self.distributor,
            manifests,
            recorder,
            sensor=self.sensor,
        )
        self.resizer = ResizeStateMachine(claims, volumes, recorder, sensor=self.sensor)
        self.finalizer = FinalizerHandler(claims)
        self.reconciler = Reconciler(
            claims,
            volumes,
            self.provisioner,
            self.distributor,
            self.resizer,
            self.finalizer,
            sensor=self.sensor,
        )
        self.ingestor = EventIngestor(self.queue, self.reconciler.has_pending_work)
        self.workers = WorkerPool(
            self.queue, self.reconciler.sync_handler, settings.worker_count, self.stop
        )
        self.resyncer = Resyncer(
            claims, self.ingestor, settings.resync_interval_seconds, self.stop
        )

    @classmethod
    def from_api_client(
        cls, api_client: ApiClient, settings: Settings, sensor: OperatorSensor = None
    ) -> "ControllerContext":
        return cls(
            settings,
            claims=VolumeClaimClient(api_client),
            volumes=BlockVolumeClient(api_client),
            replicas=VolumeReplicaClient(api_client),
            pools=StoragePoolClient(api_client),
            endpoints=ServiceClient(api_client),
            targets=DeploymentClient(api_client),
            manifests=ManifestBuilder(settings, api_client),
            recorder=KopfEventRecorder(),
            sensor=sensor,
        )
