"""Interfaces of the collaborators the post controller relies on."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class UniquenessPort(Protocol):
    """Atomic reservation of values within a namespace."""

    async def ensure(self, namespace: str, value: str) -> None:
        """Reserve ``value``; raise ``ConflictError`` if it is already taken."""
        ...

    async def delete(self, namespace: str, value: str) -> None:
        """Release ``value`` unconditionally."""
        ...


class NodeStorePort(Protocol):
    """Keyed store of opaque content nodes."""

    async def create(self, body: Mapping[str, Any]) -> str: ...

    async def create_many(self, bodies: Sequence[Mapping[str, Any]]) -> list[str]: ...

    async def get_many(self, node_ids: Sequence[str]) -> dict[str, dict[str, Any]]: ...

    async def delete(self, node_id: str) -> None: ...

    async def delete_all(self, node_ids: Sequence[str]) -> int: ...


class UserDirectoryPort(Protocol):
    """Read-only access to public user records."""

    async def get(self, user_id: str) -> dict[str, Any] | None: ...
