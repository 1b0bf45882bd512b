"""Column types and clock helpers shared by the promotion models."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import String, TypeDecorator
from sqlalchemy.engine import Dialect


def _as_uuid(value: Any) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


class UUIDType(TypeDecorator[uuid.UUID]):
    """UUIDs stored as their 36-character string form on every backend."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        parsed = _as_uuid(value)
        return str(parsed) if parsed is not None else None

    def process_result_value(self, value: Any, dialect: Dialect) -> uuid.UUID | None:
        return _as_uuid(value)


def generate_uuid() -> uuid.UUID:
    return uuid.uuid4()


def utc_now() -> datetime:
    """Aware UTC timestamp used for windows, defaults and history rows."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
