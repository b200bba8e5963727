# db/client.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from db.models import TABLES
from db.relational import get_engine, session_factory


class BackendError(Exception):
    """Any failed backend call: unknown table/column, constraint violation, driver error."""


class BackendClient:
    """
    Generic query interface over the named collections in db.models.TABLES.

    Usage mirrors a hosted BaaS client:
        client.table("profiles").select("id", "user_type").eq("user_id", uid).maybe_single()
        client.table("appointments").insert({...})
    Every call opens and closes its own Session, so the client can be shared by worker threads.
    """

    def __init__(self, engine: Optional[Engine] = None) -> None:
        self.engine = engine or get_engine()
        self._session_factory = session_factory(self.engine)

    def table(self, name: str) -> "TableQuery":
        model = TABLES.get(name)
        if model is None:
            raise BackendError(f"Unknown table: {name}")
        return TableQuery(self, name, model)

    def session(self):
        return self._session_factory()


class TableQuery:
    """Chainable query builder for one table. Filters/order/limit are collected, then a terminal call runs it."""

    def __init__(self, client: BackendClient, name: str, model) -> None:
        self._client = client
        self.name = name
        self._model = model
        self._table = model.__table__
        self._columns = None
        self._filters: List[Any] = []
        self._order: List[Any] = []
        self._limit: Optional[int] = None

    # -------------------------
    # Builders
    # -------------------------
    def _column(self, name: str):
        if name not in self._table.c:
            raise BackendError(f"Unknown column: {self.name}.{name}")
        return self._table.c[name]

    def _check_values(self, values: Dict[str, Any]) -> None:
        for key in values:
            self._column(key)

    def select(self, *columns: str) -> "TableQuery":
        self._columns = [self._column(c) for c in columns] if columns else None
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        self._filters.append(self._column(column) == value)
        return self

    def in_(self, column: str, values: Iterable[Any]) -> "TableQuery":
        self._filters.append(self._column(column).in_(list(values)))
        return self

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        """Case-insensitive LIKE; backslash escapes % and _."""
        self._filters.append(self._column(column).ilike(pattern, escape="\\"))
        return self

    def order(self, column: str, desc: bool = False) -> "TableQuery":
        col = self._column(column)
        self._order.append(col.desc() if desc else col.asc())
        return self

    def limit(self, n: int) -> "TableQuery":
        self._limit = int(n)
        return self

    # -------------------------
    # Terminal calls
    # -------------------------
    def _run(self, work):
        session = self._client.session()
        try:
            result = work(session)
            session.commit()
            return result
        except SQLAlchemyError as e:
            session.rollback()
            detail = getattr(e, "orig", None) or e
            raise BackendError(f"{self.name}: {detail}") from e
        finally:
            session.close()

    def _select_stmt(self):
        stmt = select(*(self._columns or [self._table]))
        if self._filters:
            stmt = stmt.where(*self._filters)
        if self._order:
            stmt = stmt.order_by(*self._order)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        return stmt

    def execute(self) -> List[Dict[str, Any]]:
        stmt = self._select_stmt()
        return self._run(lambda s: [dict(r._mapping) for r in s.execute(stmt)])

    def single(self) -> Dict[str, Any]:
        rows = self.limit(2).execute()
        if len(rows) != 1:
            raise BackendError(f"{self.name}: expected exactly one row, got {len(rows)}")
        return rows[0]

    def maybe_single(self) -> Optional[Dict[str, Any]]:
        rows = self.limit(2).execute()
        if len(rows) > 1:
            raise BackendError(f"{self.name}: expected at most one row, got several")
        return rows[0] if rows else None

    def count(self) -> int:
        stmt = select(func.count()).select_from(self._table)
        if self._filters:
            stmt = stmt.where(*self._filters)
        return self._run(lambda s: int(s.execute(stmt).scalar_one()))

    def insert(self, values: Dict[str, Any]) -> Dict[str, Any]:
        self._check_values(values)

        def _work(session):
            obj = self._model(**values)
            session.add(obj)
            session.flush()
            return {c.name: getattr(obj, c.key) for c in self._table.columns}

        return self._run(_work)

    def update(self, values: Dict[str, Any]) -> List[Dict[str, Any]]:
        if not self._filters:
            raise BackendError(f"{self.name}: refusing to update without a filter")
        self._check_values(values)
        pk = self._table.c["id"]

        def _work(session):
            ids = [r[0] for r in session.execute(select(pk).where(*self._filters))]
            if not ids:
                return []
            session.execute(update(self._table).where(pk.in_(ids)).values(**values))
            rows = session.execute(select(self._table).where(pk.in_(ids)))
            return [dict(r._mapping) for r in rows]

        return self._run(_work)
