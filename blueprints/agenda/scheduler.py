# blueprints/agenda/scheduler.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from models import Priority
from .slot_key import SlotKey
from .store import AppointmentItem, AppointmentStore
from .timegrid import TIME_SLOTS, is_excluded, slot_index

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Payload:
    client_name: str = ""
    service_description: str = ""
    priority: Priority = Priority.ZERO


@dataclass
class RangeResult:
    """Outcome per mechanic id: saved items, or None when that batch failed."""
    saved: Dict[Any, Optional[List[AppointmentItem]]] = field(default_factory=dict)

    @property
    def written(self) -> List[AppointmentItem]:
        out: List[AppointmentItem] = []
        for items in self.saved.values():
            out.extend(items or [])
        return out

    @property
    def failed(self) -> List[Any]:
        return [mid for mid, items in self.saved.items() if items is None]

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "written": [a.to_dict() for a in self.written],
            "failed_mechanics": self.failed,
        }


def expand_range(start_time: str, end_time: str) -> List[str]:
    """Labels from start to end, both inclusive, lunch slots dropped.

    Unknown labels or an inverted range give an empty list.
    """
    lo, hi = slot_index(start_time), slot_index(end_time)
    if lo is None or hi is None or lo > hi:
        return []
    return [TIME_SLOTS[i] for i in range(lo, hi + 1) if not is_excluded(TIME_SLOTS[i])]


def build_records(day: date | str, mechanic_id: Any, times: Iterable[str], payload: Payload) -> List[dict]:
    rows = []
    for t in times:
        key = SlotKey.of(day, mechanic_id, t)
        row = key.conflict_values()
        row.update({
            "client_name": payload.client_name,
            "service_description": payload.service_description,
            "priority": Priority.parse(payload.priority).value,
        })
        rows.append(row)
    return rows


def save_appointment_range(
    store: AppointmentStore,
    day: date | str,
    start_time: str,
    end_time: str,
    mechanic_id: Any,
    payload: Payload,
    additional_mechanics: Optional[Iterable[Any]] = None,
) -> RangeResult:
    """Book ``start_time``..``end_time`` for a mechanic and any extra mechanics.

    Every mechanic gets its own batch; there is no transaction across them,
    so one failed batch leaves the others in place. Existing slots in the
    range are overwritten whoever they belonged to.
    """
    result = RangeResult()
    times = expand_range(start_time, end_time)
    if not times:
        log.debug("range %s..%s resolves to no bookable slot", start_time, end_time)
        return result

    targets = [mechanic_id]
    for extra in additional_mechanics or ():
        if extra not in targets:
            targets.append(extra)

    for mid in targets:
        rows = build_records(day, mid, times, payload)
        result.saved[mid] = store.upsert_appointments(rows)
    if result.failed:
        log.warning("range save partially failed for mechanics %s", result.failed)
    return result
