"""Kubernetes storage quantity parsing."""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

_QUANTITY_PATTERN = re.compile(r"^([0-9]*\.?[0-9]+)\s*([A-Za-z]*)$")

_QUANTITY_SUFFIXES = {
    "": 1,
    "k": 1000,
    "K": 1000,
    "M": 1000**2,
    "G": 1000**3,
    "T": 1000**4,
    "P": 1000**5,
    "E": 1000**6,
    "Ki": 1024,
    "Mi": 1024**2,
    "Gi": 1024**3,
    "Ti": 1024**4,
    "Pi": 1024**5,
    "Ei": 1024**6,
}


def parse_quantity(quantity) -> int:
    """Parse a K8s-style quantity (e.g. "10G", "5Gi", "1024") to bytes.

    Raises:
        ValueError: If the quantity is empty or malformed.
    """
    if isinstance(quantity, int):
        return quantity
    if quantity is None or not str(quantity).strip():
        raise ValueError("Quantity cannot be empty")

    match = _QUANTITY_PATTERN.match(str(quantity).strip())
    if not match:
        raise ValueError(f"Invalid quantity: {quantity}")

    number, suffix = match.groups()
    if suffix not in _QUANTITY_SUFFIXES:
        raise ValueError(f"Unknown quantity suffix: {suffix}")
    try:
        return int(Decimal(number) * _QUANTITY_SUFFIXES[suffix])
    except InvalidOperation as e:
        raise ValueError(f"Invalid quantity: {quantity}") from e


def compare_quantity(left: Optional[str], right: Optional[str]) -> int:
    """Compare two quantities; returns -1, 0 or 1. A missing quantity sorts as zero."""
    lbytes = parse_quantity(left) if left else 0
    rbytes = parse_quantity(right) if right else 0
    return (lbytes > rbytes) - (lbytes < rbytes)
