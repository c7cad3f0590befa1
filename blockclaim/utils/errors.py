import json
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_NOT_FOUND = "notfound"


class BlockClaimError(Exception):
    """Base error for the volume claim controller."""


class InvalidKeyError(BlockClaimError):
    """A work queue key could not be derived or split."""


class BindError(BlockClaimError):
    """A claim could not be bound to its volume."""


class PlacementError(BlockClaimError):
    """Not enough storage pools were available to place the pending replicas."""


class PatchError(BlockClaimError):
    """A patch document could not be generated."""


def _reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    try:
        err = json.loads(ex.body) if ex.body else {}
    except (json.JSONDecodeError, TypeError):
        return ""
    return str(err.get("reason", "")).lower()


def already_exists_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 409 and _reason(ex) == _ALREADY_EXISTS


def not_found_error(ex: Exception) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404 or _reason(ex) == _NOT_FOUND


def describe_api_exception(ex: kubernetes_asyncio.client.ApiException) -> str:
    """Render an ApiException as a short, event friendly message."""
    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"
    try:
        if ex.body:
            body = json.loads(ex.body)
            if "message" in body:
                error_msg = f"{error_msg} - {body['message']}"
    except (json.JSONDecodeError, AttributeError, TypeError):
        pass
    return error_msg
