"""Patch documents for partial updates of resources.

Two formats are produced:

* Merge patches (RFC 7386) computed as the difference between a previously
  observed object and a locally mutated copy. Lists are replaced wholesale and
  removed keys are sent as ``null``.
* JSON patches (RFC 6902) for structural removals, e.g. dropping a finalizer.
"""
import copy
import json
from typing import Any, Dict, List, Optional
from blockclaim.utils.errors import PatchError
from blockclaim.utils.helpers import canonicalize_dict, deep_compare_dict


class PatchType:
    MERGE = "application/merge-patch+json"
    JSON = "application/json-patch+json"


def create_merge_patch(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Any]:
    """Compute the merge patch that turns `old` into `new`."""
    patch = {}
    for key, old_value in old.items():
        if key not in new:
            patch[key] = None
    for key, new_value in new.items():
        if key not in old:
            patch[key] = copy.deepcopy(new_value)
            continue
        old_value = old[key]
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            nested = create_merge_patch(old_value, new_value)
            if nested:
                patch[key] = nested
        elif not deep_compare_dict(old_value, new_value):
            patch[key] = copy.deepcopy(new_value)
    return patch


def apply_merge_patch(target: Any, patch: Any) -> Any:
    """Apply a merge patch (RFC 7386) and return the patched document."""
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = apply_merge_patch(result.get(key), value)
    return result


def get_patch_data(old: Dict[str, Any], new: Dict[str, Any]) -> bytes:
    """Byte encoded merge patch between two JSON-able objects."""
    try:
        return canonicalize_dict(create_merge_patch(old, new)).encode("utf-8")
    except (TypeError, ValueError, AttributeError) as e:
        raise PatchError(f"failed to generate merge patch: {e}") from e


def is_empty_patch(patch_bytes: bytes) -> bool:
    return json.loads(patch_bytes) in ({}, [])


def remove_finalizer_patch(finalizers: Optional[List[str]], finalizer: str) -> bytes:
    """JSON patch removing `finalizer` from a finalizer list.

    When `finalizer` is the only entry the whole list is removed. Otherwise the
    entry is removed by index, guarded by a `test` operation so a concurrently
    reordered list makes the patch fail instead of dropping someone else's
    finalizer.
    """
    finalizers = list(finalizers or [])
    if finalizer not in finalizers:
        raise PatchError(f"finalizer {finalizer!r} is not present")
    if finalizers == [finalizer]:
        ops = [{"op": "remove", "path": "/metadata/finalizers"}]
    else:
        index = finalizers.index(finalizer)
        path = f"/metadata/finalizers/{index}"
        ops = [
            {"op": "test", "path": path, "value": finalizer},
            {"op": "remove", "path": path},
        ]
    return json.dumps(ops).encode("utf-8")
