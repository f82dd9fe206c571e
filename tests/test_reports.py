# tests/test_reports.py
from datetime import date
import pytest

from models import Priority
from blueprints.agenda.scheduler import Payload, save_appointment_range
from blueprints.reports.services import agenda_csv, dashboard_summary, mechanic_hours_csv

MON, TUE, FRI = date(2024, 6, 10), date(2024, 6, 11), date(2024, 6, 14)

@pytest.fixture()
def week(store):
    a = store.add_mechanic("Jacir Silva")
    b = store.add_mechanic("Edson Rocha")
    save_appointment_range(store, MON, "08:00", "09:30", a.id, Payload("Acme", "Revisão", Priority.HIGH))
    save_appointment_range(store, TUE, "14:00", "14:00", b.id, Payload("Beta", "Pneus", Priority.NORMAL))
    save_appointment_range(store, TUE, "16:00", "17:00", b.id, Payload("", "Folga", Priority.ABSENCE))
    # next week, outside every period below
    save_appointment_range(store, date(2024, 6, 17), "08:00", "08:00", a.id, Payload("Acme", "Revisão", Priority.HIGH))
    return a, b

def _lines(text):
    return [ln for ln in text.splitlines() if ln.strip()]

def test_dashboard_summary(store, week):
    a, b = week
    out = dashboard_summary(store, MON, FRI)
    assert out["period"] == {"start": "2024-06-10", "end": "2024-06-14"}
    assert out["totals"] == {"booked_slots": 5, "hours": 2.5, "absence_slots": 3, "mechanics": 2}

    per = {m["mechanic_id"]: m for m in out["mechanics"]}
    # 19 bookable slots a day * 5 weekdays = 95
    assert per[a.id] == {"mechanic_id": a.id, "name": "Jacir Silva", "booked_slots": 4,
                         "absence_slots": 0, "hours": 2.0, "utilization_pct": 4.21}
    assert per[b.id]["booked_slots"] == 1
    assert per[b.id]["absence_slots"] == 3
    assert per[b.id]["utilization_pct"] == 1.05

    assert out["priorities"] == {"max": 0, "high": 4, "normal": 1, "low": 0, "zero": 0, "absence": 3}
    assert out["top_clients"] == [{"client_name": "Acme", "slots": 4}, {"client_name": "Beta", "slots": 1}]

def test_dashboard_on_weekend_only_has_no_capacity(store, week):
    out = dashboard_summary(store, date(2024, 6, 15), date(2024, 6, 16))
    assert all(m["utilization_pct"] == 0.0 for m in out["mechanics"])
    assert out["totals"]["booked_slots"] == 0

def test_mechanic_hours_csv_skips_absence(store, week):
    a, b = week
    lines = _lines(mechanic_hours_csv(store, MON, FRI))
    assert lines[0] == "mechanic_id;mechanic;booked_slots;total_hours"
    assert lines[1:] == [f"{a.id};Jacir Silva;4;2.00", f"{b.id};Edson Rocha;1;0.50"]

    only_b = _lines(mechanic_hours_csv(store, MON, FRI, [b.id]))
    assert only_b[1:] == [f"{b.id};Edson Rocha;1;0.50"]

def test_agenda_csv(store, week):
    lines = _lines(agenda_csv(store, MON, FRI))
    assert lines[0] == "date;weekday;start;end;mechanic;client;service;priority"
    assert len(lines) == 1 + 8
    assert lines[1] == "2024-06-10;segunda-feira;08:00;08:30;Jacir Silva;Acme;Revisão;high"
    assert lines[-1] == "2024-06-11;terça-feira;17:00;17:30;Edson Rocha;;Folga;absence"


# ---------- HTTP ----------
def test_dashboard_route(client, week):
    r = client.get("/api/v1/reports/dashboard?date_from=2024-06-14&date_to=2024-06-10")
    assert r.status_code == 200
    body = r.get_json()
    assert body["period"] == {"start": "2024-06-10", "end": "2024-06-14"}
    assert body["totals"]["booked_slots"] == 5

def test_dashboard_route_rejects_bad_dates(client):
    assert client.get("/api/v1/reports/dashboard?date_from=ontem&date_to=2024-06-10").status_code == 400

def test_csv_routes(client, week):
    a, _ = week
    r = client.get(f"/api/v1/reports/mechanic-hours.csv?date_from=2024-06-10&date_to=2024-06-14&mechanic_ids={a.id}")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    assert _lines(r.data.decode("utf-8"))[1:] == [f"{a.id};Jacir Silva;4;2.00"]

    r = client.get("/api/v1/reports/agenda.csv?date_from=2024-06-10&date_to=2024-06-14")
    assert r.status_code == 200
    assert 'filename="agenda_2024-06-10_2024-06-14.csv"' in r.headers["Content-Disposition"]
    assert len(_lines(r.data.decode("utf-8"))) == 9

def test_one_sided_period_uses_the_month_of_the_given_bound(client, week):
    r = client.get("/api/v1/reports/dashboard?date_from=2024-06-11")
    assert r.status_code == 200
    body = r.get_json()
    assert body["period"] == {"start": "2024-06-11", "end": "2024-06-30"}
    # the Monday booking is outside, the Tuesday ones and next week's are in
    assert body["totals"]["booked_slots"] == 2

    r = client.get("/api/v1/reports/dashboard?date_to=2024-06-10")
    assert r.get_json()["period"] == {"start": "2024-06-01", "end": "2024-06-10"}
