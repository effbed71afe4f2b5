"""Stable slot identifiers.

A slot is never stored as a row: it is the pair ``(lot, index)`` with
``index`` in ``[1, lot.total_slots]``. For display and for matching
bookings it is rendered as ``<slot_prefix>-<index>`` where the prefix is an
opaque per-lot key handed out when the lot is created (``L1``, ``L2`` ...).
Renaming a lot therefore never changes or collides its slot keys.
"""
import re
from typing import Iterator, Tuple

from ...models.parking.parking_lots import SLOT_PREFIX_LETTER

INDEX_WIDTH = 3

SLOT_KEY_PATTERN = re.compile(rf"^({SLOT_PREFIX_LETTER}\d+)-(\d+)$")


def render_slot_key(slot_prefix: str, slot_index: int) -> str:
    if slot_index < 1:
        raise ValueError(f"slot index must be >= 1, got {slot_index}")
    return f"{slot_prefix}-{slot_index:0{INDEX_WIDTH}d}"


def parse_slot_key(slot_key: str) -> Tuple[str, int]:
    match = SLOT_KEY_PATTERN.match(slot_key or "")
    if not match:
        raise ValueError(f"Not a slot key: {slot_key!r}")
    return match.group(1), int(match.group(2))


def slot_keys_for_lot(lot) -> Iterator[Tuple[int, str]]:
    """Yield ``(index, key)`` for every slot of the lot, lowest index first."""
    for index in range(1, lot.total_slots + 1):
        yield index, render_slot_key(lot.slot_prefix, index)
