"""Error taxonomy shared by the post controller and its collaborators."""

from __future__ import annotations


class PostError(RuntimeError):
    """Base exception raised for post resource failures."""


class NotFoundError(PostError):
    """Raised when the referenced post or node does not exist."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class ConflictError(PostError):
    """Raised when a unique value is already reserved.

    Callers must pick a different value; nothing retries automatically.
    """

    def __init__(self, namespace: str, value: str) -> None:
        super().__init__(f"Value '{value}' is already taken in '{namespace}'")
        self.namespace = namespace
        self.value = value


class BadRequestError(PostError, ValueError):
    """Raised when a caller supplies data the operation refuses outright."""


class ForbiddenFieldError(BadRequestError):
    """Raised when new post data carries a store-assigned field."""

    def __init__(self, field: str) -> None:
        super().__init__(f"New post data has a forbidden property {field}")
        self.field = field


class ConsistencyError(PostError):
    """Raised when stored data violates an invariant the store cannot enforce."""
