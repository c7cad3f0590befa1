import kopf
from typing import Any, Dict

# Event reasons
SYNCED = "Synced"
RESIZING = "Resizing"
RESIZE_SUCCESS = "ResizeSuccess"
RESIZE_FAILED = "ResizeFailed"
PLACEMENT_FAILED = "PlacementFailed"

MESSAGE_RESOURCE_CREATED = "volume claim created successfully"


class EventRecorder:
    """Records Kubernetes events against an object body."""

    def normal(self, body: Dict[str, Any], reason: str, message: str) -> None:
        raise NotImplementedError()

    def warning(self, body: Dict[str, Any], reason: str, message: str) -> None:
        raise NotImplementedError()


class KopfEventRecorder(EventRecorder):
    """Posts events through kopf's event queue."""

    def normal(self, body: Dict[str, Any], reason: str, message: str) -> None:
        kopf.event(body, type="Normal", reason=reason, message=message)

    def warning(self, body: Dict[str, Any], reason: str, message: str) -> None:
        kopf.warn(body, reason=reason, message=message)
