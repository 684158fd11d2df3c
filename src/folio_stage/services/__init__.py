"""Business logic services for the Folio application."""

from .errors import (
    BadRequestError,
    ConflictError,
    ConsistencyError,
    ForbiddenFieldError,
    NotFoundError,
    PostError,
)
from .node_store import NodeStore
from .post_controller import PostController
from .slug_registry import SlugRegistry
from .user_directory import UserDirectory

__all__ = [
    "PostController",
    "SlugRegistry",
    "NodeStore",
    "UserDirectory",
    "PostError",
    "NotFoundError",
    "ConflictError",
    "BadRequestError",
    "ForbiddenFieldError",
    "ConsistencyError",
]
