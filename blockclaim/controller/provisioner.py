import copy
import logging
from typing import Any, Dict
from blockclaim.controller.distributor import ReplicaDistributor
from blockclaim.controller.finalizer import ensure_finalizer
from blockclaim.controller.recorder import (
    MESSAGE_RESOURCE_CREATED,
    SYNCED,
    EventRecorder,
)
from blockclaim.resources.base import ResourceClient
from blockclaim.resources.custom import GROUP, VERSION
from blockclaim.resources.manifests import ManifestBuilder
from blockclaim.resources.volumeclaim import BlockVolume, VolumeClaim
from blockclaim.sensors.base import OperatorSensor
from blockclaim.types.models import ClaimPhase
from blockclaim.utils.errors import BindError

logger = logging.getLogger(__name__)


class ProvisioningOrchestrator:
    """Brings up everything a claim needs, then binds the claim.

    Steps run in a fixed order and each one is a get-or-create, so an
    interrupted run is resumed by simply running again:

    1. endpoint (Service)
    2. volume record, seeded with the endpoint and requested capacity
    3. target workload (Deployment), owned by the volume
    4. replica distribution
    5. bind
    """

    def __init__(
        self,
        claims: ResourceClient,
        endpoints: ResourceClient,
        volumes: ResourceClient,
        targets: ResourceClient,
        distributor: ReplicaDistributor,
        manifests: ManifestBuilder,
        recorder: EventRecorder,
        sensor: OperatorSensor = None,
    ) -> None:
        self.claims = claims
        self.endpoints = endpoints
        self.volumes = volumes
        self.targets = targets
        self.distributor = distributor
        self.manifests = manifests
        self.recorder = recorder
        self.sensor = sensor

    async def provision(self, claim: VolumeClaim) -> VolumeClaim:
        """Run every provisioning step for `claim` and return the bound claim."""
        endpoint = await self.ensure(claim, self.endpoints, self.manifests.build_endpoint(claim))
        volume = BlockVolume(
            await self.ensure(
                claim, self.volumes, self.manifests.build_volume(claim, endpoint)
            )
        )
        await self.ensure(claim, self.targets, self.manifests.build_target(volume))
        await self.distributor.distribute(claim, volume)
        return await self.bind(claim, volume)

    async def ensure(
        self, claim: VolumeClaim, client: ResourceClient, body: Dict[str, Any]
    ) -> Dict[str, Any]:
        name = body["metadata"]["name"]
        state = None
        if self.sensor:
            state = self.sensor.on_resource_sync_start(
                claim.name, name, claim.namespace, client.KIND
            )
        try:
            obj, created = await client.get_or_create(body)
        except Exception as e:
            if self.sensor:
                self.sensor.on_resource_sync_complete(
                    claim.name, name, claim.namespace, client.KIND, state, "create", False, e
                )
            raise
        if created:
            logger.info(f"Created {client.KIND} {claim.namespace}/{name} for {claim.key}")
        if self.sensor:
            self.sensor.on_resource_sync_complete(
                claim.name,
                name,
                claim.namespace,
                client.KIND,
                state,
                "created" if created else "no-op",
                True,
            )
        return obj

    async def bind(self, claim: VolumeClaim, volume: BlockVolume) -> VolumeClaim:
        """Bind `claim` to `volume` with a full update of the claim.

        Raises:
            BindError: The volume does not carry the claim's name, or the
                claim already refers to another volume.
        """
        if volume.name != claim.name:
            raise BindError(
                f"volume claim {claim.key} cannot bind to volume {volume.name}: name mismatch"
            )
        if claim.bound_volume_name and claim.bound_volume_name != volume.name:
            raise BindError(
                f"volume claim {claim.key} already refers to volume {claim.bound_volume_name}"
            )
        body = copy.deepcopy(claim.body)
        ensure_finalizer(body)
        status = body.get("status") or {}
        status["phase"] = ClaimPhase.BOUND
        status["capacity"] = claim.requested_capacity
        status["volumeRef"] = self.volume_ref(volume)
        body["status"] = status
        bound = VolumeClaim(await self.claims.update(body))
        logger.info(f"Bound {claim.key} to volume {volume.name}")
        self.recorder.normal(bound.body, SYNCED, MESSAGE_RESOURCE_CREATED)
        return bound

    def volume_ref(self, volume: BlockVolume) -> Dict[str, Any]:
        ref = {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": BlockVolume.KIND,
            "name": volume.name,
            "namespace": volume.namespace,
        }
        if volume.uid:
            ref["uid"] = volume.uid
        return ref
