# src/folio_stage/models/user.py
"""SQLAlchemy model for the user directory."""

from __future__ import annotations

from typing import Any

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from folio_stage.db.session import Base

# Columns never exposed through the public projection.
PRIVATE_FIELDS = frozenset({"auth", "status"})


class User(Base):
    """Directory entry for a post author."""

    __tablename__ = "app_user"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    # Opaque credential material owned by the auth layer.
    auth: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_public(self) -> dict[str, Any]:
        """Return the record without its private columns."""
        return {
            column.key: getattr(self, column.key)
            for column in self.__table__.columns
            if column.key not in PRIVATE_FIELDS
        }
