import jsonpickle
from datetime import datetime, timezone
from typing import Any, Dict, Tuple
from blockclaim.utils.errors import InvalidKeyError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def rfc3339_now() -> str:
    """Current UTC time at second precision, the format kubernetes uses for timestamps."""
    return utc_now().replace(microsecond=0).isoformat().replace("+00:00", "Z")


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {key: sort_dict_keys(value) for key, value in sorted(d.items())}
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data) -> str:
    """
    Returns a canonical JSON representation of a dictionary.

    The JSON string uses sorted keys, which ensures that the representation
    of the dictionary remains consistent even when key order varies.
    This function works recursively for nested dictionaries and handles lists too.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)


def deep_compare_dict(data1, data2) -> bool:
    """Compare two JSON-like structures deeply, ignoring key order."""
    if data1 is None and data2 is None:
        return True
    if data1 is None or data2 is None:
        return False
    if not isinstance(data1, type(data2)) and not isinstance(data2, type(data1)):
        return False
    try:
        return canonicalize_dict(data1) == canonicalize_dict(data2)
    except (TypeError, ValueError):
        return data1 == data2


def meta_namespace_key(obj: Dict[str, Any]) -> str:
    """Build the `<namespace>/<name>` work queue key for a resource body.

    Cluster scoped objects (no namespace) are keyed by name alone.

    Raises:
        InvalidKeyError: If the object carries no name.
    """
    metadata = (obj or {}).get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise InvalidKeyError(f"object has no name: {obj!r}")
    namespace = metadata.get("namespace")
    if namespace:
        return f"{namespace}/{name}"
    return name


def split_meta_namespace_key(key: str) -> Tuple[str, str]:
    """Split a work queue key into `(namespace, name)`.

    Raises:
        InvalidKeyError: If the key has more than one separator or an empty name.
    """
    parts = key.split("/")
    if len(parts) == 1 and parts[0]:
        return "", parts[0]
    if len(parts) == 2 and parts[1]:
        return parts[0], parts[1]
    raise InvalidKeyError(f"unexpected key format: {key!r}")
