# blueprints/agenda/services.py
from __future__ import annotations
import calendar
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from flask import current_app

from blueprints.core.filters import fmt_date, weekday_pt
from extensions import db
from .gateway import SqlGateway
from .store import AppointmentItem, AppointmentStore
from .timegrid import TIME_SLOTS, end_label, is_excluded

STORE_KEY = "agenda_store"


def init_store(app) -> AppointmentStore:
    store = AppointmentStore(SqlGateway(db))
    app.extensions[STORE_KEY] = store
    return store


def get_store() -> AppointmentStore:
    """Store of the current app; loaded on first use when AGENDA_AUTOLOAD is set."""
    store: AppointmentStore = current_app.extensions[STORE_KEY]
    if not store.loaded and current_app.config.get("AGENDA_AUTOLOAD", True):
        store.load()
    return store


def shop_today() -> date:
    """Today in the shop's time zone (SHOP_TIMEZONE), not the server's."""
    tz_name = current_app.config.get("SHOP_TIMEZONE", "America/Sao_Paulo")
    try:
        tz = ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        tz = timezone.utc
    return datetime.now(tz).date()


def month_bounds(day: date) -> Tuple[date, date]:
    _, last = calendar.monthrange(day.year, day.month)
    return day.replace(day=1), day.replace(day=last)


def resolve_period(d_from: Optional[date], d_to: Optional[date], today: date) -> Tuple[date, date]:
    """Fill a missing bound from the month of the other one (current month when both are missing)."""
    if d_from is None and d_to is None:
        return month_bounds(today)
    if d_to is None:
        d_to = month_bounds(d_from)[1]
    elif d_from is None:
        d_from = month_bounds(d_to)[0]
    if d_to < d_from:
        d_from, d_to = d_to, d_from
    return d_from, d_to


@dataclass
class DayConfig:
    date: date
    is_weekend: bool

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "label": fmt_date(self.date),
            "weekday": weekday_pt(self.date),
            "is_weekend": self.is_weekend,
        }


def month_days(year: int, month: int) -> List[DayConfig]:
    _, last = calendar.monthrange(year, month)
    out = []
    for d in range(1, last + 1):
        day = date(year, month, d)
        out.append(DayConfig(date=day, is_weekend=day.weekday() >= 5))
    return out


def day_grid(store: AppointmentStore, day: date) -> Dict:
    """One row per grid label; lunch rows carry no cells."""
    mechanics = store.mechanics
    rows = []
    for label in TIME_SLOTS:
        lunch = is_excluded(label)
        cells: List[Optional[dict]] = []
        if not lunch:
            for m in mechanics:
                appt: Optional[AppointmentItem] = store.get_appointment(day, label, m.id)
                cells.append(appt.to_dict() if appt else None)
        rows.append({
            "time": label,
            "end": end_label(label),
            "is_lunch": lunch,
            "cells": cells,
        })
    return {
        "date": day.isoformat(),
        "label": fmt_date(day),
        "weekday": weekday_pt(day),
        "is_weekend": day.weekday() >= 5,
        "mechanics": [m.to_dict() for m in mechanics],
        "rows": rows,
    }
