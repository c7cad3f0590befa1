from typing import Optional
from blockclaim.types.base import BaseModel


class ConditionType:
    """Condition types of the resize domain."""

    RESIZING = "Resizing"
    RESIZE_PENDING = "ResizePending"
    RESIZE_FAILED = "ResizeFailed"
    RESIZE_SUCCESS = "ResizeSuccess"


class ConditionStatus:
    IN_PROGRESS = "InProgress"
    SUCCESS = "Success"
    FAILED = "Failed"


class Condition(BaseModel):
    """Typed, timestamped status entry."""

    type: str
    status: Optional[str]
    last_transition_time: Optional[str]
    reason: Optional[str]
    message: Optional[str]
