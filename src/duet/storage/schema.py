"""SQLAlchemy ORM schema for Duet.

Defines the snapshot table and the _duet_meta key/value table.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all Duet ORM models."""

    pass


class SnapshotRow(Base):
    """Latest persisted snapshot for one persist key."""

    __tablename__ = "snapshots"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    schema_name: Mapped[str] = mapped_column(String(255), nullable=False)
    data_json: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class DuetMetaRow(Base):
    """Key/value metadata (schema_version)."""

    __tablename__ = "_duet_meta"

    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
