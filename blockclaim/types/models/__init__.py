from .condition import Condition, ConditionType, ConditionStatus
from .volumeclaim_spec import (
    ClaimPhase,
    ObjectReference,
    VolumeClaimSpec,
    VolumeClaimStatus,
)
from .volume_spec import VolumePhase, EndpointRef, BlockVolumeSpec, BlockVolumeStatus
from .replica_spec import VolumeReplicaSpec
from .storagepool import PoolPhase, StoragePoolStatus
from .resources import VolumeClaimResources

__all__ = [
    "Condition",
    "ConditionType",
    "ConditionStatus",
    "ClaimPhase",
    "ObjectReference",
    "VolumeClaimSpec",
    "VolumeClaimStatus",
    "VolumePhase",
    "EndpointRef",
    "BlockVolumeSpec",
    "BlockVolumeStatus",
    "VolumeReplicaSpec",
    "PoolPhase",
    "StoragePoolStatus",
    "VolumeClaimResources",
]
