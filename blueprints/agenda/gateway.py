# blueprints/agenda/gateway.py
"""Persistence boundary of the agenda.

The store only ever talks to a :class:`Gateway`; rows cross the boundary as
plain dicts in wire format (``mechanic_id``, ``client_name``,
``service_description``, ``order``, dates as ``YYYY-MM-DD``, times as
``HH:MM``).
"""
from __future__ import annotations
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from models import Appointment, Mechanic

log = logging.getLogger(__name__)

Row = Dict[str, Any]

MECHANICS = "mechanics"
APPOINTMENTS = "appointments"


class GatewayError(Exception):
    """Any failure of the underlying store (network, constraint, driver)."""


class Gateway:
    """Per-table request/response API: select, insert, upsert, delete, update."""

    def select_all(self, table: str, **filters) -> List[Row]:
        raise NotImplementedError

    def insert(self, table: str, rows: Sequence[Row]) -> List[Row]:
        raise NotImplementedError

    def upsert(self, table: str, rows: Sequence[Row], conflict: Sequence[str]) -> List[Row]:
        raise NotImplementedError

    def delete(self, table: str, row_id: Any) -> bool:
        raise NotImplementedError

    def update(self, table: str, row_id: Any, values: Row) -> Optional[Row]:
        raise NotImplementedError


# ----------------------- SQLAlchemy implementation -----------------------
_MODELS = {MECHANICS: Mechanic, APPOINTMENTS: Appointment}

_FIELDS = {
    MECHANICS: ["id", "name", "order"],
    APPOINTMENTS: ["id", "mechanic_id", "date", "time", "client_name", "service_description", "priority"],
}


def _to_wire(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _from_wire(field: str, value: Any) -> Any:
    if field == "date" and isinstance(value, str):
        return date.fromisoformat(value)
    return value


def _row_to_dict(obj, fields: List[str]) -> Row:
    return {f: _to_wire(getattr(obj, f)) for f in fields}


class SqlGateway(Gateway):
    """Gateway over Flask-SQLAlchemy; upserts use the dialect ON CONFLICT clause."""

    def __init__(self, db):
        self.db = db

    # ---- helpers ----
    def _model(self, table: str):
        try:
            return _MODELS[table]
        except KeyError:
            raise GatewayError(f"unknown table {table!r}") from None

    def _values(self, table: str, row: Row) -> Row:
        allowed = _FIELDS[table]
        return {k: _from_wire(k, v) for k, v in row.items() if k in allowed}

    def _insert_construct(self):
        name = self.db.engine.dialect.name
        if name == "postgresql":
            return postgresql.insert
        if name == "sqlite":
            return sqlite.insert
        raise GatewayError(f"upsert is not supported on {name!r}")

    def _fail(self, action: str, table: str, ex: Exception):
        self.db.session.rollback()
        log.warning("gateway %s on %s failed: %s", action, table, ex)
        raise GatewayError(f"{action} {table}: {ex}") from ex

    # ---- API ----
    def select_all(self, table: str, **filters) -> List[Row]:
        model = self._model(table)
        date_from = filters.pop("date_from", None)
        date_to = filters.pop("date_to", None)
        try:
            q = select(model)
            for field, value in filters.items():
                q = q.where(getattr(model, field) == _from_wire(field, value))
            if date_from is not None:
                q = q.where(model.date >= _from_wire("date", date_from))
            if date_to is not None:
                q = q.where(model.date <= _from_wire("date", date_to))
            rows = self.db.session.scalars(q.order_by(model.id)).all()
            return [_row_to_dict(r, _FIELDS[table]) for r in rows]
        except SQLAlchemyError as ex:
            self._fail("select", table, ex)

    def insert(self, table: str, rows: Sequence[Row]) -> List[Row]:
        model = self._model(table)
        try:
            objs = [model(**self._values(table, r)) for r in rows]
            self.db.session.add_all(objs)
            self.db.session.commit()
            return [_row_to_dict(o, _FIELDS[table]) for o in objs]
        except SQLAlchemyError as ex:
            self._fail("insert", table, ex)

    def upsert(self, table: str, rows: Sequence[Row], conflict: Sequence[str]) -> List[Row]:
        if not rows:
            return []
        model = self._model(table)
        values = [self._values(table, r) for r in rows]
        insert = self._insert_construct()
        try:
            stmt = insert(model.__table__).values(values)
            updatable = [c for c in values[0].keys() if c not in conflict and c != "id"]
            set_ = {c: stmt.excluded[c] for c in updatable}
            # ON CONFLICT skips the ORM onupdate hooks
            if "updated_at" in model.__table__.c:
                set_["updated_at"] = datetime.utcnow()
            stmt = stmt.on_conflict_do_update(index_elements=list(conflict), set_=set_)
            self.db.session.execute(stmt)
            self.db.session.commit()
            # bulk statements bypass the identity map
            self.db.session.expire_all()
            return self._fetch_by(model, table, conflict, values)
        except SQLAlchemyError as ex:
            self._fail("upsert", table, ex)

    def _fetch_by(self, model, table: str, conflict: Sequence[str], values: Iterable[Row]) -> List[Row]:
        conds = [and_(*[getattr(model, c) == v[c] for c in conflict]) for v in values]
        found = self.db.session.scalars(select(model).where(or_(*conds))).all()
        by_key = {tuple(_to_wire(getattr(o, c)) for c in conflict): o for o in found}
        out = []
        for v in values:
            o = by_key.get(tuple(_to_wire(v[c]) for c in conflict))
            if o is not None:
                out.append(_row_to_dict(o, _FIELDS[table]))
        return out

    def delete(self, table: str, row_id: Any) -> bool:
        model = self._model(table)
        try:
            obj = self.db.session.get(model, row_id)
            if obj is None:
                return False
            self.db.session.delete(obj)
            self.db.session.commit()
            return True
        except SQLAlchemyError as ex:
            self._fail("delete", table, ex)

    def update(self, table: str, row_id: Any, values: Row) -> Optional[Row]:
        model = self._model(table)
        try:
            obj = self.db.session.get(model, row_id)
            if obj is None:
                return None
            for k, v in self._values(table, values).items():
                if k != "id":
                    setattr(obj, k, v)
            self.db.session.commit()
            return _row_to_dict(obj, _FIELDS[table])
        except SQLAlchemyError as ex:
            self._fail("update", table, ex)
