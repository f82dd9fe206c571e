from __future__ import annotations
from datetime import date

WEEKDAYS_PT = ["segunda-feira", "terça-feira", "quarta-feira", "quinta-feira",
               "sexta-feira", "sábado", "domingo"]

def fmt_date(value: date | None) -> str:
    if not value:
        return ""
    return value.strftime("%d/%m/%Y")

def fmt_day_month(value: date | None) -> str:
    if not value:
        return ""
    return value.strftime("%d/%m")

def weekday_pt(value: date | int | None) -> str:
    if value is None:
        return ""
    if isinstance(value, int):
        idx = value
    else:
        idx = value.weekday()
    return WEEKDAYS_PT[idx % 7]
