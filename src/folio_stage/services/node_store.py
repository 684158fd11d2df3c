"""Content node storage."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio_stage.models.node import Node

logger = logging.getLogger(__name__)


class NodeStore:
    """Keyed store for node bodies; keys are generated on insert."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def create(self, body: Mapping[str, Any]) -> str:
        """Store one node body and return its key."""
        (node_id,) = await self.create_many([body])
        return node_id

    async def create_many(self, bodies: Sequence[Mapping[str, Any]]) -> list[str]:
        """Store node bodies and return their keys in the same order."""
        nodes = [Node(type=body["type"], content=body["content"]) for body in bodies]
        async with self._sessions.begin() as session:
            session.add_all(nodes)
            await session.flush()
            return [node.id for node in nodes]

    async def get_many(self, node_ids: Sequence[str]) -> dict[str, dict[str, Any]]:
        """Return the bodies of the nodes that exist, keyed by id."""
        if not node_ids:
            return {}
        async with self._sessions() as session:
            result = await session.scalars(select(Node).where(Node.id.in_(list(node_ids))))
            return {node.id: node.to_body() for node in result}

    async def delete(self, node_id: str) -> None:
        """Delete a node; a missing node is not an error."""
        await self.delete_all([node_id])

    async def delete_all(self, node_ids: Sequence[str]) -> int:
        """Delete nodes by key and return how many rows were removed."""
        if not node_ids:
            return 0
        async with self._sessions.begin() as session:
            result = await session.execute(delete(Node).where(Node.id.in_(list(node_ids))))
        deleted = result.rowcount or 0
        logger.debug("Deleted %d of %d nodes", deleted, len(node_ids))
        return deleted
