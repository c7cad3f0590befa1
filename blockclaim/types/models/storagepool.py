from typing import Optional
from blockclaim.types.base import BaseModel


class PoolPhase:
    ONLINE = "Online"
    OFFLINE = "Offline"


class StoragePoolStatus(BaseModel):
    """Observed state of a storage pool, as reported by the pool agent."""

    phase: Optional[str]
    total: Optional[str]
    free: Optional[str]
