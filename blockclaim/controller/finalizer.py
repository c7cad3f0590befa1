import logging
from typing import Any, Dict
from blockclaim.resources.base import ResourceClient
from blockclaim.resources.volumeclaim import VolumeClaim
from blockclaim.utils.patch import PatchType, remove_finalizer_patch

FINALIZER = "blockclaim.io/finalizer"

logger = logging.getLogger(__name__)


def is_deletion_candidate(claim: VolumeClaim) -> bool:
    """A claim being deleted that still carries our finalizer."""
    return bool(claim.deletion_timestamp) and FINALIZER in claim.finalizers


def ensure_finalizer(body: Dict[str, Any]) -> bool:
    """Add our finalizer to `body` in place; returns True when it was missing."""
    finalizers = body.setdefault("metadata", {}).setdefault("finalizers", [])
    if FINALIZER in finalizers:
        return False
    finalizers.append(FINALIZER)
    return True


class FinalizerHandler:
    """Releases a deleted claim to garbage collection.

    Everything provisioned for a claim is owned by it, directly or through
    its volume, so dropping the finalizer is all that is left to do.
    """

    def __init__(self, claims: ResourceClient) -> None:
        self.claims = claims

    async def remove_finalizer(self, claim: VolumeClaim) -> Dict[str, Any]:
        patch = remove_finalizer_patch(claim.finalizers, FINALIZER)
        updated = await self.claims.patch(
            claim.namespace, claim.name, patch, PatchType.JSON
        )
        logger.info(f"Removed finalizer from {claim.key}")
        return updated
