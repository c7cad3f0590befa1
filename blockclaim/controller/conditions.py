from typing import Any, Dict, Iterable, List, Optional
from blockclaim.types.models import ConditionStatus, ConditionType
from blockclaim.utils.helpers import rfc3339_now

RESIZE_CONDITION_TYPES = frozenset(
    (
        ConditionType.RESIZING,
        ConditionType.RESIZE_PENDING,
        ConditionType.RESIZE_FAILED,
        ConditionType.RESIZE_SUCCESS,
    )
)


def new_condition(
    type: str,
    status: str,
    reason: str = None,
    message: str = None,
    now: str = None,
) -> Dict[str, Any]:
    condition = {
        "type": type,
        "status": status,
        "lastTransitionTime": now or rfc3339_now(),
    }
    if reason is not None:
        condition["reason"] = reason
    if message is not None:
        condition["message"] = message
    return condition


def is_resize_condition(condition: Dict[str, Any]) -> bool:
    return condition.get("type") in RESIZE_CONDITION_TYPES


def merge_resize_conditions(
    old: Optional[Iterable[Dict[str, Any]]], new: Iterable[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Merge a new set of resize conditions into an existing condition list.

    Entries are matched by type:

    * old entries of a type that is not a resize condition are kept, in order,
      unless the new set carries the same type;
    * resize conditions in the new set replace their old counterparts;
    * old resize conditions absent from the new set are dropped.

    An entry whose type and status are unchanged keeps its original
    transition time, so merging the same set twice yields the same list.
    """
    old = list(old or [])
    new = list(new or [])
    old_by_type = {c.get("type"): c for c in old}
    new_types = {c.get("type") for c in new}

    merged = [
        dict(c) for c in old if not is_resize_condition(c) and c.get("type") not in new_types
    ]
    seen = set()
    for condition in new:
        ctype = condition.get("type")
        if ctype in seen:
            continue
        seen.add(ctype)
        previous = old_by_type.get(ctype)
        condition = dict(condition)
        if previous and previous.get("status") == condition.get("status"):
            condition["lastTransitionTime"] = previous.get(
                "lastTransitionTime", condition.get("lastTransitionTime")
            )
        merged.append(condition)
    return merged


def find_condition(
    conditions: Optional[Iterable[Dict[str, Any]]], type: str
) -> Optional[Dict[str, Any]]:
    for condition in conditions or []:
        if condition.get("type") == type:
            return condition
    return None


def has_condition(
    conditions: Optional[Iterable[Dict[str, Any]]], type: str, status: str = None
) -> bool:
    condition = find_condition(conditions, type)
    if condition is None:
        return False
    return status is None or condition.get("status") == status


def has_resize_in_progress(conditions: Optional[Iterable[Dict[str, Any]]]) -> bool:
    """True while a downstream resize has been requested and not yet finished."""
    return has_condition(conditions, ConditionType.RESIZING, ConditionStatus.IN_PROGRESS)


def resize_message(capacity: str) -> str:
    return f"Resizing to {capacity}"


def has_resize_in_progress_to(
    conditions: Optional[Iterable[Dict[str, Any]]], capacity: str
) -> bool:
    """True when a pending downstream resize already targets `capacity`."""
    message = resize_message(capacity)
    return any(
        c.get("type") == ConditionType.RESIZING
        and c.get("status") == ConditionStatus.IN_PROGRESS
        and c.get("message") == message
        for c in conditions or []
    )
