from __future__ import annotations
import pytest

from app import create_app
from extensions import db
from blueprints.agenda.gateway import GatewayError, SqlGateway
from blueprints.agenda.services import STORE_KEY


class FlakyGateway(SqlGateway):
    """SqlGateway that records every call and fails the ones it is told to."""

    def __init__(self, db, fail=()):
        super().__init__(db)
        self.fail = set(fail)
        self.calls = []

    def _hit(self, action, table, payload=None):
        self.calls.append((action, table, payload))
        if (action, table) in self.fail or action in self.fail:
            raise GatewayError(f"simulated {action} failure on {table}")

    def count(self, action, table=None):
        return sum(1 for a, t, _ in self.calls if a == action and (table is None or t == table))

    def select_all(self, table, **filters):
        self._hit("select", table, filters)
        return super().select_all(table, **filters)

    def insert(self, table, rows):
        self._hit("insert", table, [dict(r) for r in rows])
        return super().insert(table, rows)

    def upsert(self, table, rows, conflict):
        self._hit("upsert", table, [dict(r) for r in rows])
        return super().upsert(table, rows, conflict)

    def delete(self, table, row_id):
        self._hit("delete", table, row_id)
        return super().delete(table, row_id)

    def update(self, table, row_id, values):
        self._hit("update", table, dict(values))
        return super().update(table, row_id, values)


@pytest.fixture()
def app():
    app = create_app("test")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def store(app):
    st = app.extensions[STORE_KEY]
    st.gateway = FlakyGateway(db)
    st.load()
    return st


@pytest.fixture()
def client(app, store):
    return app.test_client()
