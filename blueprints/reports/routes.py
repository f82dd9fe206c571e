# blueprints/reports/routes.py
from __future__ import annotations
from datetime import date
from flask import Blueprint, request, Response, abort, jsonify

from blueprints.agenda.services import get_store, resolve_period, shop_today
from .services import agenda_csv, dashboard_summary, mechanic_hours_csv

api_bp = Blueprint("reports_api", __name__)

def _optional_date(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        abort(400, description="Bad date")

def _parse_dates() -> tuple[date, date]:
    # a missing bound comes from the other bound's month; none at all means the current month
    d_from = _optional_date(request.args.get("date_from"))
    d_to = _optional_date(request.args.get("date_to"))
    return resolve_period(d_from, d_to, shop_today())

def _mechanic_ids() -> list[int] | None:
    raw = (request.args.get("mechanic_ids") or "").strip()
    return [int(x) for x in raw.split(",") if x.strip().isdigit()] if raw else None

def _csv_resp(content: str, filename: str) -> Response:
    return Response(
        content,
        mimetype="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )

@api_bp.get("/reports/dashboard")
def dashboard():
    d_from, d_to = _parse_dates()
    return jsonify(dashboard_summary(get_store(), d_from, d_to))

@api_bp.get("/reports/mechanic-hours.csv")
def mechanic_hours():
    d_from, d_to = _parse_dates()
    csv_data = mechanic_hours_csv(get_store(), d_from, d_to, _mechanic_ids())
    return _csv_resp(csv_data, "mechanic_hours.csv")

@api_bp.get("/reports/agenda.csv")
def agenda():
    d_from, d_to = _parse_dates()
    csv_data = agenda_csv(get_store(), d_from, d_to, _mechanic_ids())
    return _csv_resp(csv_data, f"agenda_{d_from.isoformat()}_{d_to.isoformat()}.csv")
