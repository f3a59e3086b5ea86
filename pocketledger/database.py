"""Declarative base and generic lookups shared by the persistent models."""

from __future__ import annotations

from typing import Any

from sqlalchemy import inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session


class Base(DeclarativeBase):
    """Base class of every mapped model."""


class RecordNotFoundError(LookupError):
    """Raised when a lookup matches no live row."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


def init_schema(engine: Engine) -> None:
    """Create the tables of every model registered on ``Base``."""
    Base.metadata.create_all(engine)


def _live_criteria(model: Any) -> list[Any]:
    """Criteria that hide soft-deleted rows of ``model``, if it supports them."""
    deleted_at = getattr(model, "deleted_at", None)
    return [] if deleted_at is None else [deleted_at.is_(None)]


def exists(session: Session, model: Any, *args: Any) -> bool:
    """Return whether a live row of ``model`` matches the given criteria."""
    stmt = select(model).where(*args, *_live_criteria(model)).limit(1)
    return session.execute(stmt).first() is not None


def first_by_primary_key(session: Session, model: Any, key: Any) -> Any:
    """Return the live row of ``model`` whose primary key equals ``key``.

    For composite keys pass a tuple in column order.
    """
    columns = inspect(model).primary_key
    keys = key if isinstance(key, tuple) else (key,)
    if len(keys) != len(columns):
        raise ValueError(f"expected {len(columns)} key value(s), got {len(keys)}")
    stmt = (
        select(model)
        .where(*(column == value for column, value in zip(columns, keys)))
        .where(*_live_criteria(model))
        .order_by(*columns)
        .limit(1)
    )
    result = session.scalars(stmt).first()
    if result is None:
        raise RecordNotFoundError()
    return result


def first_by_field(session: Session, model: Any, field: str, value: Any) -> Any:
    """Return the first live row of ``model`` whose column ``field`` equals ``value``."""
    column = model.__table__.c.get(field)
    if column is None:
        raise ValueError(f"unknown field: {field}")
    stmt = (
        select(model)
        .where(column == value, *_live_criteria(model))
        .order_by(*inspect(model).primary_key)
        .limit(1)
    )
    result = session.scalars(stmt).first()
    if result is None:
        raise RecordNotFoundError()
    return result