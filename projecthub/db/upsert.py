"""Dialect-aware INSERT ... ON CONFLICT DO NOTHING."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_ignore(
    db: Session,
    model: type,
    rows: list[dict[str, Any]],
    index_elements: list[str],
) -> None:
    """
    Insert rows, skipping any that collide with the unique key.

    Does not commit. Callers pass complete rows, including ids and timestamps.
    """
    if not rows:
        return
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise ValueError(f"insert_ignore is not supported on {dialect}") from None
    stmt = insert(model).values(rows).on_conflict_do_nothing(index_elements=index_elements)
    db.execute(stmt)
