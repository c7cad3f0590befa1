from typing import Any, Dict, List, Optional
from benedict import benedict
from blockclaim.common.models.labels import Labels
from blockclaim.types.models import (
    BlockVolumeSpec,
    BlockVolumeStatus,
    ClaimPhase,
    Condition,
    PoolPhase,
    StoragePoolStatus,
    VolumeClaimResources,
    VolumeClaimSpec,
    VolumeClaimStatus,
    VolumeReplicaSpec,
)
from blockclaim.types.schemas import (
    BlockVolumeSpecSchema,
    BlockVolumeStatusSchema,
    StoragePoolStatusSchema,
    VolumeClaimSpecSchema,
    VolumeClaimStatusSchema,
    VolumeReplicaSpecSchema,
)
from blockclaim.utils.helpers import meta_namespace_key
from blockclaim.utils.objects import cached_property


class BaseObject:
    """Read-only view over a resource body as returned by the API."""

    KIND: str = None

    body: Dict[str, Any]

    def __init__(self, body: Dict[str, Any]) -> None:
        self.body = body

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.body.get("metadata") or {}

    @property
    def name(self) -> str:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")

    @property
    def uid(self) -> Optional[str]:
        return self.metadata.get("uid")

    @property
    def key(self) -> str:
        return meta_namespace_key(self.body)

    @property
    def labels(self) -> Labels:
        return Labels(dict(self.metadata.get("labels") or {}))

    @property
    def finalizers(self) -> List[str]:
        return list(self.metadata.get("finalizers") or [])

    @property
    def deletion_timestamp(self) -> Optional[str]:
        return self.metadata.get("deletionTimestamp")

    @cached_property
    def _status(self) -> benedict:
        return benedict(self.body.get("status") or {}, keyattr_dynamic=True)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.key}>"


class VolumeClaim(BaseObject):
    """A user's declaration of desired block storage."""

    KIND = "VolumeClaim"

    @cached_property
    def spec(self) -> VolumeClaimSpec:
        return VolumeClaimSpecSchema().load(self.body.get("spec") or {})

    @cached_property
    def status(self) -> VolumeClaimStatus:
        return VolumeClaimStatusSchema().load(self.body.get("status") or {})

    @property
    def node_id(self) -> Optional[str]:
        return self.spec.node_id

    @property
    def desired_replicas(self) -> int:
        return self.spec.replica_count

    @property
    def requested_capacity(self) -> Optional[str]:
        return self.spec.capacity

    @property
    def bound_capacity(self) -> Optional[str]:
        return self._status.get("capacity")

    @property
    def phase(self) -> Optional[str]:
        return self._status.get("phase")

    @property
    def is_bound(self) -> bool:
        return self.phase == ClaimPhase.BOUND

    @property
    def conditions(self) -> List[Condition]:
        return list(self.status.conditions or [])

    @property
    def volume_name(self) -> str:
        return VolumeClaimResources.volume_name(self.name)

    @property
    def bound_volume_name(self) -> Optional[str]:
        return self._status.get("volumeRef.name")


class BlockVolume(BaseObject):
    """The record of a provisioned volume."""

    KIND = "BlockVolume"

    @cached_property
    def spec(self) -> BlockVolumeSpec:
        return BlockVolumeSpecSchema().load(self.body.get("spec") or {})

    @cached_property
    def status(self) -> BlockVolumeStatus:
        return BlockVolumeStatusSchema().load(self.body.get("status") or {})

    @property
    def capacity(self) -> Optional[str]:
        return self.spec.capacity

    @property
    def endpoint_ref(self) -> Optional[Dict[str, Any]]:
        """Endpoint reference exactly as stored in the volume spec."""
        return (self.body.get("spec") or {}).get("endpointRef")

    @property
    def conditions(self) -> List[Condition]:
        return list(self.status.conditions or [])


class VolumeReplica(BaseObject):
    KIND = "VolumeReplica"

    @cached_property
    def spec(self) -> VolumeReplicaSpec:
        return VolumeReplicaSpecSchema().load(self.body.get("spec") or {})

    @property
    def pool_name(self) -> Optional[str]:
        return self.spec.pool_ref or self.labels.as_dict().get(Labels.BLOCKCLAIM_POOL_LABEL)


class StoragePool(BaseObject):
    """A node-local pool replicas are placed on."""

    KIND = "StoragePool"

    @cached_property
    def status(self) -> StoragePoolStatus:
        return StoragePoolStatusSchema().load(self.body.get("status") or {})

    @property
    def is_online(self) -> bool:
        return self.status.phase == PoolPhase.ONLINE

    @property
    def free(self) -> Optional[str]:
        return self.status.free
