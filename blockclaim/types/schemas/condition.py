from marshmallow import fields
from blockclaim.types.base import BaseSchema
from blockclaim.types.models.condition import Condition


class ConditionSchema(BaseSchema):
    __model__ = Condition

    type = fields.Str(data_key="type", required=True)
    status = fields.Str(data_key="status", allow_none=True, load_default=None)
    last_transition_time = fields.Str(
        data_key="lastTransitionTime", allow_none=True, load_default=None
    )
    reason = fields.Str(data_key="reason", allow_none=True, load_default=None)
    message = fields.Str(data_key="message", allow_none=True, load_default=None)
