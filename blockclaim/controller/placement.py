import logging
from typing import Iterable, List, Optional
from blockclaim.resources.base import ResourceClient
from blockclaim.resources.volumeclaim import BlockVolume, StoragePool, VolumeClaim
from blockclaim.utils.quantity import parse_quantity

logger = logging.getLogger(__name__)


class PlacementPolicy:
    """Chooses the storage pools new replicas are placed on."""

    async def select_pools(
        self,
        claim: VolumeClaim,
        volume: BlockVolume,
        count: int,
        exclude: Iterable[str] = (),
    ) -> List[str]:
        """Return up to `count` pool names, none of them in `exclude`."""
        raise NotImplementedError()


class OnlinePoolPlacement(PlacementPolicy):
    """Places replicas on online pools with the most free capacity.

    Pools that report no free capacity, or too little for the volume, are
    skipped. Ties are broken by pool name so placement is deterministic.
    """

    def __init__(self, pools: ResourceClient, pool_namespace: Optional[str] = None) -> None:
        self.pools = pools
        self.pool_namespace = pool_namespace

    async def select_pools(
        self,
        claim: VolumeClaim,
        volume: BlockVolume,
        count: int,
        exclude: Iterable[str] = (),
    ) -> List[str]:
        if count <= 0:
            return []
        exclude = set(exclude)
        required = parse_quantity(volume.capacity) if volume.capacity else 0
        namespace = self.pool_namespace or claim.namespace
        candidates = []
        for body in await self.pools.list(namespace):
            pool = StoragePool(body)
            if pool.name in exclude or not pool.is_online or not pool.free:
                continue
            try:
                free = parse_quantity(pool.free)
            except ValueError as e:
                logger.warning(f"Skipping pool {pool.name}: {e}")
                continue
            if free < required:
                continue
            candidates.append((free, pool.name))
        candidates.sort(key=lambda c: (-c[0], c[1]))
        return [name for _, name in candidates[:count]]
