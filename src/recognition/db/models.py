"""SQLAlchemy ORM models for roles and recognition rules.

The schema belongs to the host application; these mappings only describe
the columns the rule engine reads and writes.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recognition.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoleRow(Base):
    __tablename__ = "family_roles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128))


class RecognitionRuleRow(Base):
    __tablename__ = "recognition_rules"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("family_roles.id", ondelete="CASCADE"), unique=True
    )
    root_node: Mapped[str] = mapped_column(String(100))
    formula: Mapped[str] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    role: Mapped[RoleRow] = relationship(lazy="joined")

    __table_args__ = (
        Index("ix_recognition_rules_created_at", "created_at"),
    )
