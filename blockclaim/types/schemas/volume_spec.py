from marshmallow import fields
from blockclaim.types.base import BaseSchema
from blockclaim.types.models.volume_spec import (
    EndpointRef,
    BlockVolumeSpec,
    BlockVolumeStatus,
)
from blockclaim.types.schemas.condition import ConditionSchema


class EndpointRefSchema(BaseSchema):
    __model__ = EndpointRef

    name = fields.Str(data_key="name", required=True)
    namespace = fields.Str(data_key="namespace", allow_none=True, load_default=None)
    cluster_ip = fields.Str(data_key="clusterIP", allow_none=True, load_default=None)
    port = fields.Int(data_key="port", allow_none=True, load_default=None)


class BlockVolumeSpecSchema(BaseSchema):
    __model__ = BlockVolumeSpec

    capacity = fields.Str(data_key="capacity", allow_none=True, load_default=None)
    endpoint_ref = fields.Nested(
        EndpointRefSchema(), data_key="endpointRef", allow_none=True, load_default=None
    )
    node_id = fields.Str(data_key="nodeID", allow_none=True, load_default=None)
    replication_factor = fields.Int(
        data_key="replicationFactor", allow_none=True, load_default=None
    )
    consistency_factor = fields.Int(
        data_key="consistencyFactor", allow_none=True, load_default=None
    )
    target_portal = fields.Str(data_key="targetPortal", allow_none=True, load_default=None)
    iqn = fields.Str(data_key="iqn", allow_none=True, load_default=None)


class BlockVolumeStatusSchema(BaseSchema):
    __model__ = BlockVolumeStatus

    phase = fields.Str(data_key="phase", allow_none=True, load_default=None)
    capacity = fields.Str(data_key="capacity", allow_none=True, load_default=None)
    conditions = fields.List(
        fields.Nested(ConditionSchema()),
        data_key="conditions",
        allow_none=True,
        load_default=[],
    )
