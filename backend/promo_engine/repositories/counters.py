"""Atomic increment-with-ceiling primitive for shared usage counters.

All mutation of ``Promotion.current_usage_count``, ``FlashSaleProduct.quantity_sold``
and ``PromotionUserUsage.usage_count`` goes through ``increment_with_ceiling``. The
ceiling check and the increment are one conditional ``UPDATE`` executed by the
database, so two sessions racing for the last unit can never both succeed, even
across processes. A rejected update is the only conflict signal.
"""

from typing import Any

from sqlalchemy import ColumnElement, or_, update
from sqlalchemy.orm import InstrumentedAttribute, Session


def increment_with_ceiling(
    db: Session,
    model: Any,
    counter: InstrumentedAttribute[Any],
    *criteria: ColumnElement[bool],
    amount: int = 1,
    ceiling: InstrumentedAttribute[Any] | int | None = None,
) -> bool:
    """Add ``amount`` to ``counter`` on the row matched by ``criteria``.

    ``ceiling`` may be a column of the same row (a NULL value means uncapped), a
    fixed integer, or ``None`` for no ceiling. Negative amounts release units and are
    floored at zero instead.

    Returns:
        True if exactly one row was updated, False if the guard rejected it.
    """
    stmt = update(model).where(*criteria)
    if amount >= 0:
        if isinstance(ceiling, InstrumentedAttribute):
            stmt = stmt.where(or_(ceiling.is_(None), counter + amount <= ceiling))
        elif ceiling is not None:
            stmt = stmt.where(counter + amount <= ceiling)
    else:
        stmt = stmt.where(counter + amount >= 0)

    stmt = stmt.values({counter.key: counter + amount}).execution_options(
        synchronize_session=False
    )
    result = db.execute(stmt)
    return result.rowcount == 1  # type: ignore[attr-defined]


def insert_ignoring_conflict(
    db: Session, model: Any, values: dict[str, Any], index_elements: list[str]
) -> None:
    """INSERT a row, doing nothing if one with the same unique key already exists."""
    if db.get_bind().dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert

    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    db.execute(stmt)
