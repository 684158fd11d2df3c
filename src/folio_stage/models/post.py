# src/folio_stage/models/post.py
"""SQLAlchemy models for posts and their tag index."""

from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, BigInteger, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from folio_stage.db.session import Base


def _new_id() -> str:
    return str(uuid4())


class Post(Base):
    """Ordered rich-content document.

    Rows are treated as documents: the repository reads and writes them as
    plain dictionaries and never exposes ORM instances to the controller.
    """

    __tablename__ = "post"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    # Uniqueness lives in the slug registry, not in a constraint here.
    slug: Mapped[str | None] = mapped_column(String(60), nullable=True, index=True)
    title: Mapped[str | None] = mapped_column(String(140), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")

    # Epoch milliseconds.
    created: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    published: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    author: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    # Ordered node ids; NULL means the post has no content.
    content: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    def to_document(self) -> dict[str, Any]:
        """Return the stored fields, omitting the ones that are unset."""
        doc: dict[str, Any] = {
            "id": self.id,
            "status": self.status,
            "created": self.created,
            "published": self.published,
        }
        for name in ("slug", "title", "author", "tags", "content"):
            value = getattr(self, name)
            if value is not None:
                doc[name] = list(value) if isinstance(value, list) else value
        return doc


class PostTag(Base):
    """Secondary index row linking a post to one of its tags."""

    __tablename__ = "post_tag"

    post_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    tag: Mapped[str] = mapped_column(Text, nullable=False, index=True)
