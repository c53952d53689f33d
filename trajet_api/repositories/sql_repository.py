"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trajet_api.core.logger import get_logger
from trajet_api.db.session import Base, get_session
from trajet_api.services.errors import ConflictError, PersistenceFailure, ValidationError

logger = get_logger(__name__)

_OPERATORS = {
    "eq": lambda column, value: column == value,
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "in": lambda column, value: column.in_(list(value)),
    "contains": lambda column, value: func.lower(column).contains(str(value).lower(), autoescape=True),
}


def _column(kind: type[Base], field: str):
    if field not in kind.__table__.columns:
        raise ValidationError(f"Unknown field '{field}' for {kind.__name__}")
    return getattr(kind, field)


def _conditions(kind: type[Base], filters: Mapping[str, Any] | None) -> list:
    """Translate ``{"field": v, "field__gte": v, ...}`` into SQL conditions (AND-ed)."""
    conditions = []
    for key, value in (filters or {}).items():
        field, _, op = key.partition("__")
        op = op or "eq"
        if op not in _OPERATORS:
            raise ValidationError(f"Unsupported filter operator '{op}'")
        conditions.append(_OPERATORS[op](_column(kind, field), value))
    return conditions


def _ordering(kind: type[Base], order_by: str | Sequence[str] | None) -> list:
    if not order_by:
        return []
    keys: Iterable[str] = [order_by] if isinstance(order_by, str) else order_by
    clauses = []
    for key in keys:
        descending = key.startswith("-")
        column = _column(kind, key.lstrip("-"))
        clauses.append(column.desc() if descending else column.asc())
    return clauses


def _check_fields(kind: type[Base], values: Mapping[str, Any]) -> None:
    for field in values:
        _column(kind, field)


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session, generic over the model class."""

    @contextmanager
    def _write(self, action: str, kind: type[Base]):
        with get_session() as session:
            try:
                yield session
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                logger.info("%s %s rejected by a constraint: %s", action, kind.__name__, exc.orig)
                raise ConflictError(f"{kind.__name__} conflicts with an existing record") from exc
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("%s %s failed", action, kind.__name__)
                raise PersistenceFailure("Internal storage error") from exc

    @contextmanager
    def _read(self, kind: type[Base]):
        with get_session() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                logger.exception("Reading %s failed", kind.__name__)
                raise PersistenceFailure("Internal storage error") from exc

    # -------------------------- reads --------------------------
    def find_by_id(self, kind: type[Base], entity_id: str) -> Optional[Base]:
        if not entity_id:
            return None
        with self._read(kind) as session:
            return session.get(kind, entity_id)

    def find_one(self, kind: type[Base], filters: Mapping[str, Any]) -> Optional[Base]:
        stmt = select(kind).where(*_conditions(kind, filters)).limit(1)
        with self._read(kind) as session:
            return session.execute(stmt).scalars().first()

    def find(
        self,
        kind: type[Base],
        filters: Mapping[str, Any] | None = None,
        order_by: str | Sequence[str] | None = None,
    ) -> list[Base]:
        stmt = select(kind).where(*_conditions(kind, filters)).order_by(*_ordering(kind, order_by))
        with self._read(kind) as session:
            return list(session.execute(stmt).scalars().all())

    # -------------------------- writes --------------------------
    def insert(self, kind: type[Base], values: Mapping[str, Any]) -> Base:
        _check_fields(kind, values)
        entity = kind(**values)
        with self._write("Inserting", kind) as session:
            session.add(entity)
            session.flush()
            session.refresh(entity)
        return entity

    def update_by_id(self, kind: type[Base], entity_id: str, patch: Mapping[str, Any]) -> Optional[Base]:
        _check_fields(kind, patch)
        with self._write("Updating", kind) as session:
            entity = session.get(kind, entity_id) if entity_id else None
            if entity is None:
                return None
            for field, value in patch.items():
                setattr(entity, field, value)
            session.flush()
            session.refresh(entity)
        return entity

    def delete_by_id(self, kind: type[Base], entity_id: str) -> bool:
        if not entity_id:
            return False
        primary_key = kind.__table__.primary_key.columns.values()[0]
        with self._write("Deleting", kind) as session:
            result = session.execute(delete(kind).where(primary_key == entity_id))
        return bool(result.rowcount)
