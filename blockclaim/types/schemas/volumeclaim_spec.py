from marshmallow import fields, validate
from blockclaim.types.base import BaseSchema
from blockclaim.types.models.volumeclaim_spec import (
    ObjectReference,
    VolumeClaimSpec,
    VolumeClaimStatus,
)
from blockclaim.types.schemas.condition import ConditionSchema


class ObjectReferenceSchema(BaseSchema):
    __model__ = ObjectReference

    api_version = fields.Str(data_key="apiVersion", allow_none=True, load_default=None)
    kind = fields.Str(data_key="kind", allow_none=True, load_default=None)
    name = fields.Str(data_key="name", required=True)
    namespace = fields.Str(data_key="namespace", allow_none=True, load_default=None)
    uid = fields.Str(data_key="uid", allow_none=True, load_default=None)
    resource_version = fields.Str(
        data_key="resourceVersion", allow_none=True, load_default=None
    )


class VolumeClaimSpecSchema(BaseSchema):
    """Volume claim spec.

    `nodeID` is not required at load time; an unpublished claim is absorbed by
    the reconciler rather than rejected here.
    """

    __model__ = VolumeClaimSpec

    node_id = fields.Str(data_key="nodeID", allow_none=True, load_default=None)
    capacity = fields.Str(data_key="capacity", allow_none=True, load_default=None)
    replica_count = fields.Int(
        data_key="replicaCount",
        load_default=1,
        validate=validate.Range(min=0),
    )


class VolumeClaimStatusSchema(BaseSchema):
    __model__ = VolumeClaimStatus

    phase = fields.Str(data_key="phase", allow_none=True, load_default=None)
    capacity = fields.Str(data_key="capacity", allow_none=True, load_default=None)
    conditions = fields.List(
        fields.Nested(ConditionSchema()),
        data_key="conditions",
        allow_none=True,
        load_default=[],
    )
    volume_ref = fields.Nested(
        ObjectReferenceSchema(), data_key="volumeRef", allow_none=True, load_default=None
    )
