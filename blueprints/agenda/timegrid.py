# blueprints/agenda/timegrid.py
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional, Tuple

SLOT_MINUTES = 30
DAY_START = "07:30"
DAY_END = "17:30"   # last bookable label, inclusive


def _build_slots(start: str, end: str, step: int) -> Tuple[str, ...]:
    cur = datetime.strptime(start, "%H:%M")
    last = datetime.strptime(end, "%H:%M")
    out = []
    while cur <= last:
        out.append(cur.strftime("%H:%M"))
        cur += timedelta(minutes=step)
    return tuple(out)


# Fixed for the lifetime of the process; not per mechanic, not per day.
TIME_SLOTS: Tuple[str, ...] = _build_slots(DAY_START, DAY_END, SLOT_MINUTES)
LUNCH_SLOTS: frozenset[str] = frozenset({"11:30", "12:00"})

_INDEX = {label: i for i, label in enumerate(TIME_SLOTS)}


def slot_index(label: str | None) -> Optional[int]:
    """Position of ``label`` in TIME_SLOTS, or None for anything outside the grid."""
    if label is None:
        return None
    return _INDEX.get(label)


def is_excluded(label: str) -> bool:
    return label in LUNCH_SLOTS


def bookable_slots() -> Tuple[str, ...]:
    return tuple(t for t in TIME_SLOTS if t not in LUNCH_SLOTS)


def end_label(label: str) -> str:
    """HH:MM at which the slot starting at ``label`` ends."""
    t = datetime.strptime(label, "%H:%M") + timedelta(minutes=SLOT_MINUTES)
    return t.strftime("%H:%M")


def slot_hours(count: int) -> float:
    return count * SLOT_MINUTES / 60
