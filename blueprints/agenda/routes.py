# blueprints/agenda/routes.py
from __future__ import annotations
import logging
from datetime import date
from typing import Any

from flask import Blueprint, jsonify, request, abort
from pydantic import ValidationError

from . import services as svc
from .scheduler import Payload, save_appointment_range
from .schemas import MechanicIn, MechanicOut, RangeIn, ReorderIn, SlotQuery
from .timegrid import LUNCH_SLOTS, SLOT_MINUTES, TIME_SLOTS

api_bp = Blueprint("agenda_api", __name__)
log = logging.getLogger(__name__)

# ----------------------- Helpers -----------------------
def error(msg: str, status: int = 400, **extra: Any):
    payload = {"error": msg}
    payload.update(extra)
    return jsonify(payload), status

def storage_error():
    return error("storage_unavailable", 502)

def _pydantic_errors_safe(ve: ValidationError):
    errs = ve.errors()
    for e in errs:
        if "ctx" in e and isinstance(e["ctx"], dict):
            e["ctx"] = {k: str(v) for k, v in e["ctx"].items()}
    return errs

def _validate(model, data):
    try:
        return model.model_validate(data or {}), None
    except ValidationError as ve:
        return None, error("validation_error", 400, details=_pydantic_errors_safe(ve))

def _parse_date(value: str | None, default: date | None = None) -> date:
    if not value:
        if default is None:
            abort(400, description="date is required")
        return default
    try:
        return date.fromisoformat(value)
    except ValueError:
        abort(400, description="Bad date")

def _confirmed() -> bool:
    flag = request.args.get("confirm")
    if flag is None:
        flag = (request.get_json(silent=True) or {}).get("confirm")
    return str(flag).lower() in {"1", "true", "yes", "sim"}

# ----------------------- Mechanics -----------------------
@api_bp.get("/mechanics")
def mechanics_list():
    store = svc.get_store()
    return jsonify({"items": [MechanicOut.model_validate(m.to_dict()).model_dump() for m in store.mechanics]})

@api_bp.post("/mechanics")
def mechanics_create():
    data, err = _validate(MechanicIn, request.get_json(silent=True))
    if err:
        return err
    item = svc.get_store().add_mechanic(data.name)
    if item is None:
        return storage_error()
    return jsonify(item.to_dict()), 201

@api_bp.patch("/mechanics/<int:mid>")
def mechanics_rename(mid: int):
    data, err = _validate(MechanicIn, request.get_json(silent=True))
    if err:
        return err
    store = svc.get_store()
    if store.find_mechanic(mid) is None:
        return error("not_found", 404)
    item = store.rename_mechanic(mid, data.name)
    if item is None:
        return storage_error()
    return jsonify(item.to_dict())

@api_bp.delete("/mechanics/<int:mid>")
def mechanics_delete(mid: int):
    store = svc.get_store()
    if store.find_mechanic(mid) is None:
        return error("not_found", 404)
    confirmed = _confirmed()
    if not store.remove_mechanic(mid, confirm=lambda: confirmed):
        if not confirmed:
            return error("confirmation_required", 409,
                         message="Tem certeza que deseja remover este mecânico? Reenvie com confirm=1.")
        return storage_error()
    return jsonify({"ok": True})

@api_bp.put("/mechanics/order")
def mechanics_reorder():
    data, err = _validate(ReorderIn, request.get_json(silent=True))
    if err:
        return err
    store = svc.get_store()
    by_id = {m.id: m for m in store.mechanics}
    if set(data.ids) != set(by_id):
        return error("ids must list every mechanic exactly once", 400)
    ok = store.reorder_mechanics([by_id[i] for i in data.ids])
    # the projection is authoritative for the response either way
    return jsonify({"ok": ok, "items": [m.to_dict() for m in store.mechanics]}), (200 if ok else 502)

# ----------------------- Appointments -----------------------
@api_bp.get("/appointments")
def appointments_list():
    store = svc.get_store()
    d_from = request.args.get("date_from")
    d_to = request.args.get("date_to")
    if d_from or d_to:
        lo = _parse_date(d_from) if d_from else None
        hi = _parse_date(d_to) if d_to else None
        items = store.appointments_between(*svc.resolve_period(lo, hi, svc.shop_today()))
    else:
        items = sorted(store.appointments(), key=lambda a: (a.date, a.time, a.mechanic_id))
    return jsonify({"items": [a.to_dict() for a in items]})

@api_bp.get("/appointments/slot")
def appointments_slot():
    q, err = _validate(SlotQuery, request.args.to_dict())
    if err:
        return err
    appt = svc.get_store().get_appointment(q.date, q.time, q.mechanic_id)
    if appt is None:
        return error("not_found", 404)
    return jsonify(appt.to_dict())

@api_bp.post("/appointments/range")
def appointments_range():
    data, err = _validate(RangeIn, request.get_json(silent=True))
    if err:
        return err
    store = svc.get_store()
    unknown = [m for m in [data.mechanic_id, *data.additional_mechanics] if store.find_mechanic(m) is None]
    if unknown:
        return error("unknown_mechanic", 404, mechanic_ids=unknown)
    result = save_appointment_range(
        store, data.date, data.start_time, data.end_time, data.mechanic_id,
        Payload(data.client_name, data.service_description, data.priority),
        additional_mechanics=data.additional_mechanics,
    )
    return jsonify(result.to_dict()), (200 if result.ok else 502)

@api_bp.delete("/appointments/<int:aid>")
def appointments_delete(aid: int):
    if not svc.get_store().delete_appointment(aid):
        return storage_error()
    return jsonify({"ok": True})

# ----------------------- Agenda views -----------------------
@api_bp.get("/agenda/timegrid")
def agenda_timegrid():
    return jsonify({
        "slot_minutes": SLOT_MINUTES,
        "slots": list(TIME_SLOTS),
        "lunch": sorted(LUNCH_SLOTS),
    })

@api_bp.get("/agenda/month")
def agenda_month():
    today = svc.shop_today()
    try:
        year = int(request.args.get("year", today.year))
        month = int(request.args.get("month", today.month))
        days = svc.month_days(year, month)
    except ValueError:
        abort(400, description="Bad month")
    return jsonify({"year": year, "month": month, "days": [d.to_dict() for d in days]})

@api_bp.get("/agenda/day")
def agenda_day():
    day = _parse_date(request.args.get("date"), svc.shop_today())
    return jsonify(svc.day_grid(svc.get_store(), day))

@api_bp.post("/agenda/reload")
def agenda_reload():
    store = svc.get_store()
    if not store.load():
        return storage_error()
    return jsonify({"ok": True, "mechanics": len(store.mechanics), "appointments": len(store)})
