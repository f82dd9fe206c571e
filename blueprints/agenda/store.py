# blueprints/agenda/store.py
"""In-memory projection of mechanics and appointments.

The projection is a cache over the gateway: every mutation is sent to the
gateway first and applied locally only with what the gateway returned.
The one exception is :meth:`AppointmentStore.reorder_mechanics`, which is
optimistic and heals a failed write with :meth:`AppointmentStore.resync`.
No method raises on storage failure; errors are logged and the call
reports ``None``/``False``.
"""
from __future__ import annotations
import logging
from dataclasses import asdict, dataclass, replace
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from models import Priority
from .gateway import APPOINTMENTS, MECHANICS, Gateway, GatewayError, Row
from .slot_key import SlotKey

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MechanicItem:
    id: Any
    name: str
    order: int

    @classmethod
    def from_row(cls, row: Row) -> "MechanicItem":
        return cls(id=row["id"], name=row["name"], order=int(row.get("order") or 0))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AppointmentItem:
    id: Any
    mechanic_id: int
    date: date
    time: str
    client_name: str
    service_description: str
    priority: Priority

    @classmethod
    def from_row(cls, row: Row) -> "AppointmentItem":
        key = SlotKey.from_row(row)
        return cls(
            id=row["id"],
            mechanic_id=key.mechanic_id,
            date=key.date,
            time=key.time,
            client_name=row.get("client_name") or "",
            service_description=row.get("service_description") or "",
            priority=Priority.parse(row.get("priority")),
        )

    @property
    def key(self) -> SlotKey:
        return SlotKey(self.date, self.mechanic_id, self.time)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mechanic_id": self.mechanic_id,
            "date": self.date.isoformat(),
            "time": self.time,
            "client_name": self.client_name,
            "service_description": self.service_description,
            "priority": self.priority.value,
        }


class AppointmentStore:
    def __init__(self, gateway: Gateway):
        self.gateway = gateway
        self._mechanics: List[MechanicItem] = []
        self._appointments: Dict[SlotKey, AppointmentItem] = {}
        self.loaded = False

    # ---------- read side ----------
    @property
    def mechanics(self) -> List[MechanicItem]:
        return list(self._mechanics)

    def find_mechanic(self, mechanic_id: Any) -> Optional[MechanicItem]:
        for m in self._mechanics:
            if m.id == mechanic_id:
                return m
        return None

    def appointments(self) -> Iterator[AppointmentItem]:
        return iter(list(self._appointments.values()))

    def appointments_between(self, d_from: date, d_to: date) -> List[AppointmentItem]:
        items = [a for a in self._appointments.values() if d_from <= a.date <= d_to]
        return sorted(items, key=lambda a: (a.date, a.time, a.mechanic_id))

    def get_appointment(self, day: date | str, time: str, mechanic_id: Any) -> Optional[AppointmentItem]:
        """Pure lookup by natural key; never touches the gateway."""
        try:
            key = SlotKey.of(day, mechanic_id, time)
        except (TypeError, ValueError):
            return None
        return self._appointments.get(key)

    def __len__(self) -> int:
        return len(self._appointments)

    # ---------- sync ----------
    def load(self) -> bool:
        """Replace the whole projection with what the gateway holds now."""
        try:
            mech_rows = self.gateway.select_all(MECHANICS)
            appt_rows = self.gateway.select_all(APPOINTMENTS)
        except GatewayError:
            log.exception("agenda load failed; keeping previous projection")
            return False

        mechanics: List[MechanicItem] = []
        for r in mech_rows:
            try:
                mechanics.append(MechanicItem.from_row(r))
            except (KeyError, TypeError, ValueError) as ex:
                log.warning("skipping malformed mechanic row %r: %s", r, ex)
        mechanics.sort(key=lambda m: m.order)

        appointments: Dict[SlotKey, AppointmentItem] = {}
        for r in appt_rows:
            try:
                item = AppointmentItem.from_row(r)
            except (KeyError, TypeError, ValueError) as ex:
                log.warning("skipping malformed appointment row %r: %s", r, ex)
                continue
            appointments[item.key] = item

        self._mechanics = mechanics
        self._appointments = appointments
        self.loaded = True
        log.info("agenda loaded: %d mechanics, %d appointments", len(mechanics), len(appointments))
        return True

    resync = load

    # ---------- mechanics ----------
    def add_mechanic(self, name: str) -> Optional[MechanicItem]:
        next_order = max((m.order for m in self._mechanics), default=0) + 1
        try:
            rows = self.gateway.insert(MECHANICS, [{"name": name, "order": next_order}])
        except GatewayError:
            log.exception("add mechanic %r failed", name)
            return None
        if not rows:
            return None
        item = MechanicItem.from_row(rows[0])
        self._mechanics = self._mechanics + [item]
        return item

    def rename_mechanic(self, mechanic_id: Any, name: str) -> Optional[MechanicItem]:
        try:
            row = self.gateway.update(MECHANICS, mechanic_id, {"name": name})
        except GatewayError:
            log.exception("rename mechanic %s failed", mechanic_id)
            return None
        if row is None:
            return None
        item = MechanicItem.from_row(row)
        self._mechanics = [item if m.id == mechanic_id else m for m in self._mechanics]
        return item

    def remove_mechanic(self, mechanic_id: Any, confirm: Optional[Callable[[], bool]] = None) -> bool:
        """Delete a mechanic and evict all of its appointments locally.

        ``confirm`` is asked first; a falsy answer makes this a no-op. The
        storage is expected to cascade the delete to appointments.
        """
        if confirm is not None and not confirm():
            return False
        try:
            existed = self.gateway.delete(MECHANICS, mechanic_id)
        except GatewayError:
            log.exception("remove mechanic %s failed", mechanic_id)
            return False
        if not existed:
            log.info("mechanic %s was already gone remotely", mechanic_id)

        self._mechanics = [m for m in self._mechanics if m.id != mechanic_id]
        self._appointments = {
            k: a for k, a in self._appointments.items() if a.mechanic_id != mechanic_id
        }
        return True

    def reorder_mechanics(self, new_order: Sequence[MechanicItem]) -> bool:
        """Optimistic: the projection takes the new order before the write.

        On a failed write nothing is rolled back here; the projection is
        rebuilt from storage instead.
        """
        reordered = [replace(m, order=i + 1) for i, m in enumerate(new_order)]
        self._mechanics = reordered
        updates = [{"id": m.id, "name": m.name, "order": m.order} for m in reordered]
        try:
            self.gateway.upsert(MECHANICS, updates, conflict=("id",))
        except GatewayError:
            log.exception("reorder mechanics failed; resyncing")
            self.resync()
            return False
        return True

    # ---------- appointments ----------
    def upsert_appointments(self, rows: Sequence[Row]) -> Optional[List[AppointmentItem]]:
        """Batch upsert on the natural key; returned rows overwrite by slot key."""
        if not rows:
            return []
        try:
            saved = self.gateway.upsert(APPOINTMENTS, rows, conflict=SlotKey.CONFLICT_COLUMNS)
        except GatewayError:
            log.exception("saving %d appointment slot(s) failed", len(rows))
            return None
        items = [AppointmentItem.from_row(r) for r in saved]
        merged = dict(self._appointments)
        for item in items:
            merged[item.key] = item
        self._appointments = merged
        return items

    def delete_appointment(self, appointment_id: Any) -> bool:
        try:
            self.gateway.delete(APPOINTMENTS, appointment_id)
        except GatewayError:
            log.exception("delete appointment %s failed", appointment_id)
            return False
        # by identity: callers may not know the slot key
        for key, item in list(self._appointments.items()):
            if item.id == appointment_id:
                merged = dict(self._appointments)
                merged.pop(key, None)
                self._appointments = merged
                break
        return True
