from .condition import ConditionSchema
from .volumeclaim_spec import (
    ObjectReferenceSchema,
    VolumeClaimSpecSchema,
    VolumeClaimStatusSchema,
)
from .volume_spec import EndpointRefSchema, BlockVolumeSpecSchema, BlockVolumeStatusSchema
from .replica_spec import VolumeReplicaSpecSchema
from .storagepool import StoragePoolStatusSchema

__all__ = [
    "ConditionSchema",
    "ObjectReferenceSchema",
    "VolumeClaimSpecSchema",
    "VolumeClaimStatusSchema",
    "EndpointRefSchema",
    "BlockVolumeSpecSchema",
    "BlockVolumeStatusSchema",
    "VolumeReplicaSpecSchema",
    "StoragePoolStatusSchema",
]
