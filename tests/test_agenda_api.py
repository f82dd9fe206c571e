from __future__ import annotations
from datetime import timedelta

from blueprints.agenda.services import shop_today

API = "/api/v1"


def _mechanic(client, name):
    r = client.post(f"{API}/mechanics", json={"name": name})
    assert r.status_code == 201
    return r.get_json()

def _book(client, **body):
    base = {"date": "2024-06-10", "start_time": "08:00", "client_name": "Acme",
            "service_description": "Oil", "priority": "high"}
    base.update(body)
    return client.post(f"{API}/appointments/range", json=base)


def test_mechanics_crud(client):
    a = _mechanic(client, "  Jacir Silva ")
    b = _mechanic(client, "Edson Rocha")
    assert (a["name"], a["order"], b["order"]) == ("Jacir Silva", 1, 2)

    r = client.patch(f"{API}/mechanics/{b['id']}", json={"name": "Edson R."})
    assert r.status_code == 200 and r.get_json()["name"] == "Edson R."
    assert client.patch(f"{API}/mechanics/999", json={"name": "X"}).status_code == 404

    items = client.get(f"{API}/mechanics").get_json()["items"]
    assert [m["name"] for m in items] == ["Jacir Silva", "Edson R."]

def test_create_mechanic_validation(client):
    r = client.post(f"{API}/mechanics", json={"name": "   "})
    assert r.status_code == 400
    assert r.get_json()["error"] == "validation_error"

def test_delete_mechanic_requires_confirmation(client):
    a = _mechanic(client, "Jacir Silva")
    _book(client, mechanic_id=a["id"], end_time="09:00")

    r = client.delete(f"{API}/mechanics/{a['id']}")
    assert r.status_code == 409
    assert r.get_json()["error"] == "confirmation_required"
    assert len(client.get(f"{API}/appointments").get_json()["items"]) == 3

    r = client.delete(f"{API}/mechanics/{a['id']}?confirm=1")
    assert r.status_code == 200
    assert client.get(f"{API}/mechanics").get_json()["items"] == []
    assert client.get(f"{API}/appointments").get_json()["items"] == []
    assert client.delete(f"{API}/mechanics/{a['id']}?confirm=1").status_code == 404

def test_reorder_mechanics(client):
    a = _mechanic(client, "A")
    b = _mechanic(client, "B")
    c = _mechanic(client, "C")
    r = client.put(f"{API}/mechanics/order", json={"ids": [c["id"], a["id"], b["id"]]})
    assert r.status_code == 200
    assert [(m["name"], m["order"]) for m in r.get_json()["items"]] == [("C", 1), ("A", 2), ("B", 3)]

    assert client.put(f"{API}/mechanics/order", json={"ids": [a["id"], b["id"]]}).status_code == 400
    assert client.put(f"{API}/mechanics/order", json={"ids": [a["id"], a["id"], b["id"]]}).status_code == 400

def test_reorder_failure_reports_resynced_order(client, store):
    a = _mechanic(client, "A")
    b = _mechanic(client, "B")
    store.gateway.fail.add(("upsert", "mechanics"))
    r = client.put(f"{API}/mechanics/order", json={"ids": [b["id"], a["id"]]})
    assert r.status_code == 502
    body = r.get_json()
    assert body["ok"] is False
    assert [m["name"] for m in body["items"]] == ["A", "B"]

def test_range_booking_and_slot_lookup(client):
    a = _mechanic(client, "Jacir Silva")
    b = _mechanic(client, "Edson Rocha")
    r = _book(client, mechanic_id=a["id"], start_time="11:00", end_time="12:30",
              additional_mechanics=[b["id"]])
    assert r.status_code == 200
    body = r.get_json()
    assert body["ok"] is True and body["failed_mechanics"] == []
    assert sorted((w["mechanic_id"], w["time"]) for w in body["written"]) == [
        (a["id"], "11:00"), (a["id"], "12:30"), (b["id"], "11:00"), (b["id"], "12:30"),
    ]

    r = client.get(f"{API}/appointments/slot", query_string={"date": "2024-06-10", "time": "12:30", "mechanic_id": b["id"]})
    assert r.status_code == 200
    assert r.get_json()["priority"] == "high"
    r = client.get(f"{API}/appointments/slot", query_string={"date": "2024-06-10", "time": "12:00", "mechanic_id": b["id"]})
    assert r.status_code == 404

def test_range_defaults_to_single_slot(client):
    a = _mechanic(client, "Jacir Silva")
    body = _book(client, mechanic_id=a["id"], start_time="15:00").get_json()
    assert [w["time"] for w in body["written"]] == ["15:00"]

def test_range_rejects_unknown_mechanic_and_bad_input(client):
    a = _mechanic(client, "Jacir Silva")
    r = _book(client, mechanic_id=a["id"], additional_mechanics=[404])
    assert r.status_code == 404
    assert r.get_json()["mechanic_ids"] == [404]
    assert _book(client, mechanic_id=a["id"], priority="urgent").status_code == 400
    assert _book(client, mechanic_id=a["id"], date="10/06/2024").status_code == 400

def test_range_storage_failure_is_502(client, store):
    a = _mechanic(client, "Jacir Silva")
    store.gateway.fail.add("upsert")
    r = _book(client, mechanic_id=a["id"])
    assert r.status_code == 502
    assert r.get_json()["failed_mechanics"] == [a["id"]]

def test_list_appointments_by_period_and_delete(client):
    a = _mechanic(client, "Jacir Silva")
    _book(client, mechanic_id=a["id"], date="2024-06-10")
    _book(client, mechanic_id=a["id"], date="2024-06-20")

    items = client.get(f"{API}/appointments", query_string={"date_from": "2024-06-15"}).get_json()["items"]
    assert [i["date"] for i in items] == ["2024-06-20"]
    items = client.get(f"{API}/appointments", query_string={"date_from": "2024-06-30", "date_to": "2024-06-01"}).get_json()["items"]
    assert len(items) == 2
    assert client.get(f"{API}/appointments", query_string={"date_from": "junho"}).status_code == 400

    r = client.delete(f"{API}/appointments/{items[0]['id']}")
    assert r.status_code == 200
    assert len(client.get(f"{API}/appointments").get_json()["items"]) == 1

def test_timegrid_and_month(client):
    grid = client.get(f"{API}/agenda/timegrid").get_json()
    assert grid["slot_minutes"] == 30
    assert len(grid["slots"]) == 21
    assert grid["lunch"] == ["11:30", "12:00"]

    month = client.get(f"{API}/agenda/month", query_string={"year": 2024, "month": 2}).get_json()
    assert len(month["days"]) == 29
    assert month["days"][0] == {"date": "2024-02-01", "label": "01/02/2024",
                                "weekday": "quinta-feira", "is_weekend": False}
    assert month["days"][2]["is_weekend"] is True
    assert client.get(f"{API}/agenda/month", query_string={"month": 13}).status_code == 400

def test_day_grid(client):
    a = _mechanic(client, "Jacir Silva")
    b = _mechanic(client, "Edson Rocha")
    _book(client, mechanic_id=b["id"], start_time="08:00", end_time="08:30")

    day = client.get(f"{API}/agenda/day", query_string={"date": "2024-06-10"}).get_json()
    assert day["weekday"] == "segunda-feira"
    assert [m["id"] for m in day["mechanics"]] == [a["id"], b["id"]]
    rows = {r["time"]: r for r in day["rows"]}
    assert len(day["rows"]) == 21
    assert rows["11:30"]["is_lunch"] and rows["11:30"]["cells"] == []
    assert rows["08:00"]["cells"][0] is None
    assert rows["08:00"]["cells"][1]["client_name"] == "Acme"
    assert rows["08:30"]["end"] == "09:00"
    assert rows["09:00"]["cells"] == [None, None]

def test_reload_picks_up_outside_writes(client, store):
    from extensions import db
    from models import Mechanic
    db.session.add(Mechanic(name="Externo", order=7))
    db.session.commit()
    assert client.get(f"{API}/mechanics").get_json()["items"] == []

    r = client.post(f"{API}/agenda/reload")
    assert r.status_code == 200 and r.get_json()["mechanics"] == 1
    store.gateway.fail.add("select")
    assert client.post(f"{API}/agenda/reload").status_code == 502


# ---------- chat ----------
def test_chat_greeting_and_empty_message(client):
    assert "assistente" in client.get(f"{API}/chat").get_json()["message"]
    assert client.post(f"{API}/chat", json={"message": ""}).status_code == 400
    assert client.post(f"{API}/chat", json={"message": "   "}).status_code == 400

def test_chat_books_through_the_api(client):
    a = _mechanic(client, "Jacir Silva")
    r = client.post(f"{API}/chat", json={"message": "Agendar alinhamento para Acme amanhã às 9h com Jacir"})
    assert r.status_code == 200
    body = r.get_json()
    assert body["success"] is True
    appt = body["appointment"]
    with client.application.app_context():
        tomorrow = shop_today() + timedelta(days=1)
    assert (appt["date"], appt["time"], appt["mechanic_id"]) == (tomorrow.isoformat(), "09:00", a["id"])
    assert appt["priority"] == "normal"

    again = client.post(f"{API}/chat", json={"message": "Agendar alinhamento para Acme amanhã às 9h com Jacir"})
    assert again.status_code == 200
    assert again.get_json()["success"] is False

def test_one_sided_appointment_period(client):
    a = _mechanic(client, "Jacir Silva")
    _book(client, mechanic_id=a["id"], date="2024-05-31")
    _book(client, mechanic_id=a["id"], date="2024-06-10")
    items = client.get(f"{API}/appointments", query_string={"date_to": "2024-06-15"}).get_json()["items"]
    assert [i["date"] for i in items] == ["2024-06-10"]

def test_defaults_follow_the_shop_time_zone(app, client):
    # UTC+14: the shop's day differs from the server's for most of the UTC day
    app.config["SHOP_TIMEZONE"] = "Pacific/Kiritimati"
    today = shop_today()
    assert client.get(f"{API}/agenda/day").get_json()["date"] == today.isoformat()
    month = client.get(f"{API}/agenda/month").get_json()
    assert (month["year"], month["month"]) == (today.year, today.month)
    period = client.get("/api/v1/reports/dashboard").get_json()["period"]
    assert period["start"] == today.replace(day=1).isoformat()
