from marshmallow import fields
from blockclaim.types.base import BaseSchema
from blockclaim.types.models.storagepool import StoragePoolStatus


class StoragePoolStatusSchema(BaseSchema):
    __model__ = StoragePoolStatus

    phase = fields.Str(data_key="phase", allow_none=True, load_default=None)
    total = fields.Str(data_key="total", allow_none=True, load_default=None)
    free = fields.Str(data_key="free", allow_none=True, load_default=None)
