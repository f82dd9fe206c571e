"""
Idempotent demo seed.
Usage:
  flask --app app seed-demo            # add missing demo mechanics + one sample booking
  flask --app app seed-demo --reset    # drop and recreate tables first
  python seed.py [--reset]             # same, without the flask CLI
"""
from __future__ import annotations
import argparse
from datetime import date, timedelta

import click
from flask import Flask

from extensions import db
from models import Priority

DEMO_MECHANICS = ["Jacir Silva", "Marcos Petersen", "Marcos", "Edson Rocha"]

def _next_workday(today: date) -> date:
    d = today + timedelta(days=1)
    while d.weekday() >= 5:
        d += timedelta(days=1)
    return d

def seed_demo(store, today: date | None = None) -> dict:
    """Add missing demo mechanics and book 08:00-09:30 for the first one."""
    from blueprints.agenda.scheduler import Payload, save_appointment_range
    from blueprints.agenda.services import shop_today

    store.load()
    existing = {m.name for m in store.mechanics}
    added = 0
    for name in DEMO_MECHANICS:
        if name not in existing and store.add_mechanic(name) is not None:
            added += 1

    first = store.mechanics[0] if store.mechanics else None
    booked = 0
    if first is not None:
        day = _next_workday(today or shop_today())
        if store.get_appointment(day, "08:00", first.id) is None:
            result = save_appointment_range(
                store, day, "08:00", "09:30", first.id,
                Payload("Transportadora ABC", "Revisão completa", Priority.HIGH),
            )
            booked = len(result.written)
    return {"mechanics_added": added, "slots_booked": booked}

def _run(reset: bool) -> dict:
    from blueprints.agenda.services import get_store
    if reset:
        db.drop_all()
    db.create_all()
    store = get_store()
    return seed_demo(store)

def register_commands(app: Flask) -> None:
    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="drop + create tables before seeding")
    def seed_demo_command(reset: bool):
        out = _run(reset)
        click.echo(f"[seed] {out['mechanics_added']} mechanic(s) added, {out['slots_booked']} slot(s) booked")

def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--reset", action="store_true", help="drop + create + seed")
    args = parser.parse_args()

    from app import create_app
    app = create_app()
    with app.app_context():
        out = _run(args.reset)
    print(f"[seed] {out}")

if __name__ == "__main__":
    main()
