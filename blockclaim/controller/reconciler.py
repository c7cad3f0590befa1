import logging
import time
from typing import Any, Dict, Optional
from marshmallow import ValidationError
from blockclaim.controller.conditions import has_resize_in_progress
from blockclaim.controller.distributor import ReplicaDistributor
from blockclaim.controller.finalizer import FinalizerHandler, is_deletion_candidate
from blockclaim.controller.provisioner import ProvisioningOrchestrator
from blockclaim.controller.resize import ResizeStateMachine, is_shrink, needs_resize
from blockclaim.resources.base import ResourceClient
from blockclaim.resources.volumeclaim import BlockVolume, VolumeClaim
from blockclaim.sensors.base import OperatorSensor
from blockclaim.utils.errors import InvalidKeyError
from blockclaim.utils.helpers import split_meta_namespace_key
from blockclaim.utils.quantity import parse_quantity

logger = logging.getLogger(__name__)


class ObservedState:
    NEW = "New"
    PROVISIONING = "Provisioning"
    BOUND = "Bound"
    RESIZING = "Resizing"
    TERMINATING = "Terminating"


def observe_state(claim: VolumeClaim, volume: Optional[BlockVolume] = None) -> str:
    if claim.deletion_timestamp:
        return ObservedState.TERMINATING
    if not claim.is_bound:
        return ObservedState.PROVISIONING if volume is not None else ObservedState.NEW
    if has_resize_in_progress((claim.body.get("status") or {}).get("conditions")):
        return ObservedState.RESIZING
    return ObservedState.BOUND


class Reconciler:
    """Converges the cluster toward one claim's declaration per sync.

    Each sync starts from whatever state the cluster is in and does the next
    thing due, in this order:

    1. a deleted claim carrying our finalizer is released
    2. an invalid claim is logged and left alone
    3. an unprovisioned or unbound claim is provisioned
    4. missing replicas are distributed
    5. a requested capacity expansion is driven through the resize machine
    """

    def __init__(
        self,
        claims: ResourceClient,
        volumes: ResourceClient,
        provisioner: ProvisioningOrchestrator,
        distributor: ReplicaDistributor,
        resizer: ResizeStateMachine,
        finalizer: FinalizerHandler,
        sensor: OperatorSensor = None,
    ) -> None:
        self.claims = claims
        self.volumes = volumes
        self.provisioner = provisioner
        self.distributor = distributor
        self.resizer = resizer
        self.finalizer = finalizer
        self.sensor = sensor

    async def sync_handler(self, key: str) -> None:
        """Sync the claim behind a work queue key.

        A malformed key or a claim that no longer exists is logged and
        dropped. Any other failure propagates so the key is retried.
        """
        try:
            namespace, name = split_meta_namespace_key(key)
        except InvalidKeyError as e:
            logger.error(f"Invalid resource key {key!r}: {e}")
            return

        started = time.monotonic()
        logger.debug(f"Started syncing volume claim {key}")
        try:
            body = await self.claims.get(namespace, name)
            if body is None:
                logger.info(f"Volume claim {key} has been deleted")
                return
            await self.sync_claim(VolumeClaim(body))
        finally:
            logger.debug(
                f"Finished syncing volume claim {key} ({time.monotonic() - started:.3f}s)"
            )

    async def sync_claim(self, claim: VolumeClaim) -> None:
        volume = None
        if not claim.deletion_timestamp:
            body = await self.volumes.get(claim.namespace, claim.volume_name)
            volume = BlockVolume(body) if body is not None else None

        state = None
        if self.sensor:
            state = self.sensor.on_reconcile_start(
                claim.name, claim.namespace, observe_state(claim, volume)
            )
        try:
            await self._sync(claim, volume)
        except Exception as e:
            if self.sensor:
                self.sensor.on_reconcile_complete(claim.name, claim.namespace, state, False, e)
            raise
        if self.sensor:
            self.sensor.on_reconcile_complete(claim.name, claim.namespace, state, True)

    async def _sync(self, claim: VolumeClaim, volume: Optional[BlockVolume]) -> None:
        if is_deletion_candidate(claim):
            await self.finalizer.remove_finalizer(claim)
            return
        if claim.deletion_timestamp:
            logger.debug(f"Volume claim {claim.key} is being deleted")
            return

        problem = self.validate(claim)
        if problem:
            logger.error(f"Invalid volume claim {claim.key}: {problem}")
            return

        if volume is None or not claim.is_bound:
            await self.provisioner.provision(claim)
            return

        if await self.distributor.pending_count(claim) > 0:
            await self.distributor.distribute(claim, volume)

        if needs_resize(claim, volume):
            await self.resizer.resize(claim)
        elif is_shrink(claim):
            logger.warning(
                f"Volume claim {claim.key} requests {claim.requested_capacity}, less than "
                f"the bound {claim.bound_capacity}; shrinking is not supported"
            )

    def validate(self, claim: VolumeClaim) -> Optional[str]:
        """Return a description of what makes `claim` unusable, or None."""
        if not claim.name:
            return "name is empty"
        try:
            if not claim.node_id:
                return "spec.nodeID is empty"
            if claim.requested_capacity:
                parse_quantity(claim.requested_capacity)
        except ValidationError as e:
            return f"invalid spec: {e.messages}"
        except ValueError as e:
            return f"invalid capacity: {e}"
        return None

    async def has_pending_work(self, body: Dict[str, Any]) -> bool:
        """Whether an updated claim still needs reconciling."""
        claim = VolumeClaim(body)
        if is_deletion_candidate(claim):
            return True
        if claim.deletion_timestamp:
            return False
        if self.validate(claim):
            return False
        if not claim.is_bound or needs_resize(claim):
            return True
        return await self.distributor.pending_count(claim) > 0
