"""Shared column helpers for ThesisHub records"""
from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import Column, String, DateTime, Enum as SQLEnum


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_uuid() -> str:
    return str(uuid.uuid4())


def enum_column(enum_cls, default, **kwargs) -> Column:
    """
    Status column persisted as the enum *value* ("pending", not "PENDING"),
    so plain strings from the API and the store's filter() compare directly.
    """
    return Column(
        SQLEnum(
            enum_cls,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            length=32,
        ),
        default=default,
        nullable=False,
        **kwargs,
    )


class RecordMixin:
    """Store-assigned identifier and timestamps present on every record"""

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise an aware datetime from the API to the stored naive-UTC form"""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
