# blueprints/reports/services.py
from __future__ import annotations
from collections import Counter
from datetime import date, timedelta
from io import StringIO
import csv
from typing import Dict, List, Optional

from blueprints.agenda.store import AppointmentItem, AppointmentStore
from blueprints.agenda.timegrid import bookable_slots, end_label, slot_hours
from blueprints.core.filters import weekday_pt
from models import Priority

# "absence" marks a mechanic as away; it is not a booking
NON_BOOKING = {Priority.ABSENCE}


def _days(d_from: date, d_to: date) -> List[date]:
    out = []
    d = d_from
    while d <= d_to:
        out.append(d)
        d += timedelta(days=1)
    return out


def _workdays(d_from: date, d_to: date) -> int:
    return sum(1 for d in _days(d_from, d_to) if d.weekday() < 5)


def _in_range(store: AppointmentStore, d_from: date, d_to: date,
              mechanic_ids: Optional[List[int]] = None) -> List[AppointmentItem]:
    items = store.appointments_between(d_from, d_to)
    if mechanic_ids:
        wanted = set(mechanic_ids)
        items = [a for a in items if a.mechanic_id in wanted]
    return items


def dashboard_summary(store: AppointmentStore, d_from: date, d_to: date, top: int = 5) -> Dict:
    """
    Totals over [d_from, d_to]:
      per mechanic: booked_slots, absence_slots, hours, utilization_pct
      per priority: slot counts
      top clients by booked slots
    utilization_pct = booked_slots / (bookable slots per day * weekdays) * 100
    """
    items = _in_range(store, d_from, d_to)
    capacity = len(bookable_slots()) * _workdays(d_from, d_to)

    booked: Counter = Counter()
    absent: Counter = Counter()
    clients: Counter = Counter()
    priorities: Counter = Counter({p.value: 0 for p in Priority})
    for a in items:
        priorities[a.priority.value] += 1
        if a.priority in NON_BOOKING:
            absent[a.mechanic_id] += 1
            continue
        booked[a.mechanic_id] += 1
        if a.client_name:
            clients[a.client_name] += 1

    per_mechanic = []
    for m in store.mechanics:
        used = booked.get(m.id, 0)
        per_mechanic.append({
            "mechanic_id": m.id,
            "name": m.name,
            "booked_slots": used,
            "absence_slots": absent.get(m.id, 0),
            "hours": round(slot_hours(used), 2),
            "utilization_pct": round(used / capacity * 100.0, 2) if capacity else 0.0,
        })

    total_booked = sum(booked.values())
    return {
        "period": {"start": d_from.isoformat(), "end": d_to.isoformat()},
        "totals": {
            "booked_slots": total_booked,
            "hours": round(slot_hours(total_booked), 2),
            "absence_slots": sum(absent.values()),
            "mechanics": len(store.mechanics),
        },
        "mechanics": per_mechanic,
        "priorities": dict(priorities),
        "top_clients": [{"client_name": c, "slots": n} for c, n in clients.most_common(top)],
    }


def mechanic_hours_csv(store: AppointmentStore, d_from: date, d_to: date,
                       mechanic_ids: Optional[List[int]] = None) -> str:
    """
    CSV: mechanic_id;mechanic;booked_slots;total_hours
    """
    totals: Dict[int, int] = {}
    for a in _in_range(store, d_from, d_to, mechanic_ids):
        if a.priority in NON_BOOKING:
            continue
        totals[a.mechanic_id] = totals.get(a.mechanic_id, 0) + 1

    names = {m.id: m.name for m in store.mechanics}
    buf = StringIO()
    w = csv.writer(buf, delimiter=";")
    w.writerow(["mechanic_id", "mechanic", "booked_slots", "total_hours"])
    for mid in sorted(totals.keys()):
        w.writerow([mid, names.get(mid, str(mid)), totals[mid], f"{slot_hours(totals[mid]):.2f}"])
    return buf.getvalue()


def agenda_csv(store: AppointmentStore, d_from: date, d_to: date,
               mechanic_ids: Optional[List[int]] = None) -> str:
    """
    CSV: date;weekday;start;end;mechanic;client;service;priority
    """
    names = {m.id: m.name for m in store.mechanics}
    buf = StringIO()
    w = csv.writer(buf, delimiter=";")
    w.writerow(["date", "weekday", "start", "end", "mechanic", "client", "service", "priority"])
    for a in _in_range(store, d_from, d_to, mechanic_ids):
        w.writerow([
            a.date.isoformat(),
            weekday_pt(a.date),
            a.time,
            end_label(a.time),
            names.get(a.mechanic_id, str(a.mechanic_id)),
            a.client_name,
            a.service_description,
            a.priority.value,
        ])
    return buf.getvalue()
