# src/folio_stage/models/__init__.py
"""SQLAlchemy models for the Folio Stage application."""

from .node import Node
from .post import Post, PostTag
from .slug import SlugReservation
from .user import User

__all__ = [
    "Node",
    "Post", "PostTag",
    "SlugReservation",
    "User",
]
