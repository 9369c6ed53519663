"""Declarative bases for the two ownership domains."""

from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


class StorageBase(DeclarativeBase):
    """Base for tables owned by the storage service."""


class AnalysisBase(DeclarativeBase):
    """Base for tables owned by the analysis service."""


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (round-trips identically on every backend)."""
    return datetime.now(UTC).replace(tzinfo=None)
