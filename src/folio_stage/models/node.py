"""SQLAlchemy model for content nodes."""

from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from folio_stage.db.session import Base


class Node(Base):
    """Opaque content node owned by a single post."""

    __tablename__ = "node"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    # A string or an object, passed through untouched.
    content: Mapped[Any] = mapped_column(JSON, nullable=False)

    def to_body(self) -> dict[str, Any]:
        """Return the node body without its key."""
        return {"type": self.type, "content": self.content}
