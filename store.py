"""Generic persistent-store interface and its SQLModel implementation.

The reservation core only ever talks to a ``Store``: four logical operations
over named tables, with rows passed around as plain dicts. ``SQLStore`` backs
it with a SQLAlchemy engine and turns driver errors into the core's error
taxonomy, logging each failure once.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Type

import structlog
from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from models import Borrower, Cart, CartItem, InventoryItem, Transaction, User

logger = structlog.get_logger(__name__)

Row = Dict[str, Any]

TABLES: Dict[str, Type[SQLModel]] = {
    "users": User,
    "borrowers": Borrower,
    "inventory": InventoryItem,
    "cart": Cart,
    "cart_items": CartItem,
    "transactions": Transaction,
}

_OPERATORS = {
    "eq": lambda column, value: column.is_(None) if value is None else column == value,
    "ne": lambda column, value: column.is_not(None) if value is None else column != value,
    "in": lambda column, value: column.in_(list(value)),
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
}

# Postgres SQLSTATE codes and the SQLite message prefixes for the same failures
_UNIQUE_VIOLATION = ("23505", "UNIQUE constraint failed")
_FOREIGN_KEY_VIOLATION = ("23503", "FOREIGN KEY constraint failed")


def _violates(exc: IntegrityError, kind: Tuple[str, str]) -> bool:
    sqlstate, message = kind
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == sqlstate
    return str(orig).startswith(message)


def _integrity_failure(operation: str, table: str, exc: IntegrityError):
    error = str(exc.orig)
    if _violates(exc, _UNIQUE_VIOLATION):
        logger.warning("store.conflict", operation=operation, table=table, error=error)
        return ConflictError(f"{operation} on {table} violates a uniqueness constraint")
    if _violates(exc, _FOREIGN_KEY_VIOLATION):
        logger.warning("store.missing_parent", operation=operation, table=table, error=error)
        return NotFoundError(f"{operation} on {table} references a missing row")
    logger.warning("store.invalid_row", operation=operation, table=table, error=error)
    return ValidationError(f"{operation} on {table} violates a constraint")


class Store(Protocol):
    def query(
        self,
        table: str,
        filter: Optional[Mapping[str, Any]] = None,
        order: Optional[Sequence[str]] = None,
    ) -> List[Row]: ...

    def insert(self, table: str, record: Mapping[str, Any]) -> Row: ...

    def update(self, table: str, filter: Mapping[str, Any], patch: Mapping[str, Any]) -> int: ...

    def delete(self, table: str, filter: Mapping[str, Any]) -> int: ...


class SQLStore:
    """Store backed by a SQLAlchemy engine; one short session per call."""

    def __init__(self, engine: Engine, tables: Optional[Mapping[str, Type[SQLModel]]] = None):
        self.engine = engine
        self.tables = dict(tables or TABLES)

    def _model(self, table: str) -> Type[SQLModel]:
        try:
            return self.tables[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    def _where(self, model: Type[SQLModel], filter: Optional[Mapping[str, Any]]) -> list:
        clauses = []
        for key, value in (filter or {}).items():
            name, _, op = key.partition("__")
            column = getattr(model, name, None)
            if column is None:
                raise ValueError(f"Unknown column {name!r} on {model.__name__}")
            try:
                build = _OPERATORS[op or "eq"]
            except KeyError:
                raise ValueError(f"Unknown filter operator: {op}") from None
            clauses.append(build(column, value))
        return clauses

    def _order(self, model: Type[SQLModel], order: Optional[Sequence[str]]) -> list:
        terms = []
        for key in order or ():
            descending = key.startswith("-")
            column = getattr(model, key.lstrip("-"), None)
            if column is None:
                raise ValueError(f"Unknown column {key!r} on {model.__name__}")
            terms.append(column.desc() if descending else column.asc())
        return terms

    def _fail(self, operation: str, table: str, exc: SQLAlchemyError):
        if isinstance(exc, IntegrityError):
            return _integrity_failure(operation, table, exc)
        logger.error("store.failure", operation=operation, table=table, error=str(exc))
        return UpstreamError(f"Store {operation} on {table} failed; try again shortly")

    def query(self, table, filter=None, order=None):
        model = self._model(table)
        statement = select(model).where(*self._where(model, filter)).order_by(*self._order(model, order))
        try:
            with Session(self.engine) as session:
                return [row.model_dump() for row in session.exec(statement).all()]
        except SQLAlchemyError as exc:
            raise self._fail("query", table, exc) from exc

    def insert(self, table, record):
        model = self._model(table)
        row = model(**record)
        try:
            with Session(self.engine) as session:
                session.add(row)
                session.commit()
                session.refresh(row)
                return row.model_dump()
        except SQLAlchemyError as exc:
            raise self._fail("insert", table, exc) from exc

    def update(self, table, filter, patch):
        model = self._model(table)
        statement = sa_update(model).where(*self._where(model, filter)).values(**patch)
        try:
            with self.engine.begin() as connection:
                return connection.execute(statement).rowcount
        except SQLAlchemyError as exc:
            raise self._fail("update", table, exc) from exc

    def delete(self, table, filter):
        model = self._model(table)
        statement = sa_delete(model).where(*self._where(model, filter))
        try:
            with self.engine.begin() as connection:
                return connection.execute(statement).rowcount
        except SQLAlchemyError as exc:
            raise self._fail("delete", table, exc) from exc
