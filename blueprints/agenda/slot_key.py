# blueprints/agenda/slot_key.py
from __future__ import annotations
import re
from datetime import date
from typing import Any, Mapping, NamedTuple

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
SEP = "|"


def _norm_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _norm_time(value: str) -> str:
    m = _TIME_RE.match(str(value).strip())
    if not m:
        raise ValueError(f"bad time label: {value!r}")
    h, mi = int(m.group(1)), int(m.group(2))
    if not (0 <= h <= 23 and 0 <= mi <= 59):
        raise ValueError(f"bad time label: {value!r}")
    return f"{h:02d}:{mi:02d}"


def _norm_mechanic(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"bad mechanic id: {value!r}")
    return int(value)


class SlotKey(NamedTuple):
    """Natural key of an appointment: one record per (date, mechanic, time).

    The same key type indexes the in-memory projection and names the
    storage conflict target, so lookups and writes cannot drift apart.
    """
    date: date
    mechanic_id: int
    time: str

    CONFLICT_COLUMNS = ("mechanic_id", "date", "time")

    @classmethod
    def of(cls, day: date | str, mechanic_id: Any, time: str) -> "SlotKey":
        return cls(_norm_date(day), _norm_mechanic(mechanic_id), _norm_time(time))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SlotKey":
        return cls.of(row["date"], row["mechanic_id"], row["time"])

    def encode(self) -> str:
        return SEP.join((self.date.isoformat(), str(self.mechanic_id), self.time))

    @classmethod
    def decode(cls, text: str) -> "SlotKey":
        parts = str(text).split(SEP)
        if len(parts) != 3:
            raise ValueError(f"bad slot key: {text!r}")
        return cls.of(*parts)

    def conflict_values(self) -> dict:
        return {"mechanic_id": self.mechanic_id, "date": self.date.isoformat(), "time": self.time}
