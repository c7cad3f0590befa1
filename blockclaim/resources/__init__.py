from .base import ResourceClient
from .custom import (
    BlockVolumeClient,
    StoragePoolClient,
    VolumeClaimClient,
    VolumeReplicaClient,
)
from .core import DeploymentClient, ServiceClient
from .manifests import ManifestBuilder
from .volumeclaim import BlockVolume, StoragePool, VolumeClaim, VolumeReplica

__all__ = [
    "ResourceClient",
    "VolumeClaimClient",
    "BlockVolumeClient",
    "VolumeReplicaClient",
    "StoragePoolClient",
    "ServiceClient",
    "DeploymentClient",
    "ManifestBuilder",
    "VolumeClaim",
    "BlockVolume",
    "VolumeReplica",
    "StoragePool",
]
