import copy
import logging
from typing import Optional
from kubernetes_asyncio.client import ApiException
from blockclaim.controller.conditions import (
    has_resize_in_progress_to,
    merge_resize_conditions,
    new_condition,
    resize_message,
)
from blockclaim.controller.recorder import (
    RESIZE_FAILED,
    RESIZE_SUCCESS,
    RESIZING,
    EventRecorder,
)
from blockclaim.resources.base import ResourceClient
from blockclaim.resources.volumeclaim import BlockVolume, VolumeClaim
from blockclaim.sensors.base import OperatorSensor
from blockclaim.types.models import ConditionStatus, ConditionType
from blockclaim.utils.errors import BlockClaimError, describe_api_exception
from blockclaim.utils.patch import get_patch_data, is_empty_patch
from blockclaim.utils.quantity import compare_quantity

logger = logging.getLogger(__name__)


def needs_resize(claim: VolumeClaim, volume: Optional[BlockVolume] = None) -> bool:
    """A bound claim asking for more than it, or its volume, currently has."""
    requested = claim.requested_capacity
    if not requested or not claim.is_bound:
        return False
    if compare_quantity(requested, claim.bound_capacity) > 0:
        return True
    return volume is not None and compare_quantity(requested, volume.capacity) > 0


def is_shrink(claim: VolumeClaim) -> bool:
    requested = claim.requested_capacity
    if not requested or not claim.bound_capacity:
        return False
    return compare_quantity(requested, claim.bound_capacity) < 0


class ResizeStateMachine:
    """Drives a claim through a capacity expansion.

    1. mark the claim `Resizing`/`InProgress`
    2. grow the volume spec and hand the resize to the volume's owner through
       a `Resizing`/`InProgress` volume condition
    3. clear the claim's resize conditions and record the applied capacity

    Every write is a merge patch of what changed, so a resize interrupted at
    any step continues where it stopped. Any failure posts a `ResizeFailed`
    warning and is re-raised.
    """

    def __init__(
        self,
        claims: ResourceClient,
        volumes: ResourceClient,
        recorder: EventRecorder,
        sensor: OperatorSensor = None,
    ) -> None:
        self.claims = claims
        self.volumes = volumes
        self.recorder = recorder
        self.sensor = sensor

    async def resize(self, claim: VolumeClaim) -> VolumeClaim:
        state = None
        if self.sensor:
            state = self.sensor.on_resize_start(
                claim.name, claim.namespace, claim.bound_capacity, claim.requested_capacity
            )
        try:
            claim = await self.mark_in_progress(claim)
            await self.resize_volume(claim)
            claim = await self.mark_finished(claim)
        except Exception as e:
            message = describe_api_exception(e) if isinstance(e, ApiException) else str(e)
            self.recorder.warning(claim.body, RESIZE_FAILED, message)
            if self.sensor:
                self.sensor.on_resize_complete(claim.name, claim.namespace, state, False)
            raise
        if self.sensor:
            self.sensor.on_resize_complete(claim.name, claim.namespace, state, True)
        return claim

    async def patch_claim_status(self, claim: VolumeClaim, new_status: dict) -> VolumeClaim:
        old_status = claim.body.get("status") or {}
        patch = get_patch_data({"status": old_status}, {"status": new_status})
        if is_empty_patch(patch):
            return claim
        updated = await self.claims.patch(
            claim.namespace, claim.name, patch, subresource="status"
        )
        return VolumeClaim(updated)

    async def mark_in_progress(self, claim: VolumeClaim) -> VolumeClaim:
        status = copy.deepcopy(claim.body.get("status") or {})
        status["conditions"] = merge_resize_conditions(
            status.get("conditions"),
            [new_condition(ConditionType.RESIZING, ConditionStatus.IN_PROGRESS)],
        )
        updated = await self.patch_claim_status(claim, status)
        if updated is not claim:
            logger.info(
                f"Resizing {claim.key} from {claim.bound_capacity} to {claim.requested_capacity}"
            )
            self.recorder.normal(
                updated.body,
                RESIZING,
                f"Resize of volume {claim.volume_name} to {claim.requested_capacity} in progress",
            )
        return updated

    async def resize_volume(self, claim: VolumeClaim) -> BlockVolume:
        """Grow the volume to the claim's requested capacity."""
        body = await self.volumes.get(claim.namespace, claim.volume_name)
        if body is None:
            raise BlockClaimError(f"volume {claim.namespace}/{claim.volume_name} not found")
        volume = BlockVolume(body)
        requested = claim.requested_capacity

        if compare_quantity(requested, volume.capacity) > 0:
            spec = body.get("spec") or {}
            patch = get_patch_data({"spec": spec}, {"spec": dict(spec, capacity=requested)})
            volume = BlockVolume(
                await self.volumes.patch(volume.namespace, volume.name, patch)
            )

        # Volume condition history is additive; only a hand-off for this same
        # capacity is not repeated.
        conditions = (volume.body.get("status") or {}).get("conditions") or []
        if not has_resize_in_progress_to(conditions, requested):
            old_status = volume.body.get("status") or {}
            new_status = dict(old_status)
            new_status["conditions"] = list(conditions) + [
                new_condition(
                    ConditionType.RESIZING,
                    ConditionStatus.IN_PROGRESS,
                    message=resize_message(requested),
                )
            ]
            patch = get_patch_data({"status": old_status}, {"status": new_status})
            volume = BlockVolume(
                await self.volumes.patch(
                    volume.namespace, volume.name, patch, subresource="status"
                )
            )
        return volume

    async def mark_finished(self, claim: VolumeClaim) -> VolumeClaim:
        """Clear the claim's resize conditions and record the applied capacity.

        The recorded capacity never goes down: a volume that lagged behind a
        larger recorded capacity is grown, but the claim keeps its record.
        """
        status = copy.deepcopy(claim.body.get("status") or {})
        status["conditions"] = merge_resize_conditions(status.get("conditions"), [])
        if compare_quantity(claim.requested_capacity, claim.bound_capacity) > 0:
            status["capacity"] = claim.requested_capacity
        updated = await self.patch_claim_status(claim, status)
        logger.info(f"Resized {claim.key} to {claim.requested_capacity}")
        self.recorder.normal(updated.body, RESIZE_SUCCESS, "Resize volume succeeded")
        return updated
