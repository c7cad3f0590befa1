import logging
from typing import List
from blockclaim.common.models.labels import Labels
from blockclaim.controller.placement import PlacementPolicy
from blockclaim.controller.recorder import PLACEMENT_FAILED, EventRecorder
from blockclaim.resources.base import ResourceClient
from blockclaim.resources.manifests import ManifestBuilder
from blockclaim.resources.volumeclaim import BlockVolume, VolumeClaim, VolumeReplica
from blockclaim.sensors.base import OperatorSensor
from blockclaim.utils.errors import PlacementError

logger = logging.getLogger(__name__)


class ReplicaDistributor:
    """Creates the replicas a claim is missing.

    Only ever adds replicas: a claim with more replicas than desired is left
    alone.
    """

    def __init__(
        self,
        replicas: ResourceClient,
        placement: PlacementPolicy,
        manifests: ManifestBuilder,
        recorder: EventRecorder = None,
        sensor: OperatorSensor = None,
    ) -> None:
        self.replicas = replicas
        self.placement = placement
        self.manifests = manifests
        self.recorder = recorder
        self.sensor = sensor

    async def list_replicas(self, claim: VolumeClaim) -> List[VolumeReplica]:
        items = await self.replicas.list(
            claim.namespace, Labels.volume_selector(claim.name)
        )
        return [VolumeReplica(body) for body in items]

    async def pending_count(self, claim: VolumeClaim) -> int:
        """Number of replicas still to be created; zero or negative when none."""
        return claim.desired_replicas - len(await self.list_replicas(claim))

    async def distribute(self, claim: VolumeClaim, volume: BlockVolume) -> int:
        """Create the missing replicas of `claim`.

        Returns:
            The number of replicas created by this call.

        Raises:
            PlacementError: Fewer pools were available than replicas missing.
                Replicas that could be placed are created first.
        """
        current = await self.list_replicas(claim)
        deficit = claim.desired_replicas - len(current)
        if deficit <= 0:
            if deficit < 0:
                logger.warning(
                    f"{claim.key} has {len(current)} replicas, more than the desired "
                    f"{claim.desired_replicas}; leaving them in place"
                )
            return 0

        used = {replica.pool_name for replica in current if replica.pool_name}
        pools = await self.placement.select_pools(claim, volume, deficit, exclude=used)
        created = 0
        for pool in pools:
            body = self.manifests.build_replica(claim, volume, pool)
            _, was_created = await self.replicas.get_or_create(body)
            if was_created:
                created += 1
                logger.info(f"Created replica {body['metadata']['name']} on pool {pool}")
        if created and self.sensor:
            self.sensor.on_replicas_created(claim.name, claim.namespace, created)

        if len(pools) < deficit:
            message = (
                f"{deficit} replicas pending but only {len(pools)} eligible pools found"
            )
            if self.recorder is not None:
                self.recorder.warning(claim.body, PLACEMENT_FAILED, message)
            raise PlacementError(f"{claim.key}: {message}")
        return created
