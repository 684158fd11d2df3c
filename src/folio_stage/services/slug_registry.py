"""Slug reservations backed by the ``post_slug`` table."""

from __future__ import annotations

import logging

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio_stage.models.slug import SlugReservation
from folio_stage.services.errors import ConflictError

logger = logging.getLogger(__name__)


class SlugRegistry:
    """Insert-if-absent reservations keyed by ``(namespace, value)``.

    The primary key decides races: of two concurrent reservations of the same
    value exactly one insert commits.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def ensure(self, namespace: str, value: str) -> None:
        """Reserve ``value`` or raise ``ConflictError`` if someone holds it."""
        try:
            async with self._sessions.begin() as session:
                session.add(SlugReservation(namespace=namespace, value=value))
        except IntegrityError as err:
            raise ConflictError(namespace, value) from err
        logger.debug("Reserved %s in %s", value, namespace)

    async def delete(self, namespace: str, value: str) -> None:
        """Release ``value``; releasing an unreserved value is a no-op."""
        async with self._sessions.begin() as session:
            await session.execute(
                delete(SlugReservation).where(
                    SlugReservation.namespace == namespace,
                    SlugReservation.value == value,
                )
            )
        logger.debug("Released %s in %s", value, namespace)

    async def exists(self, namespace: str, value: str) -> bool:
        """Return True if ``value`` is currently reserved."""
        async with self._sessions() as session:
            return await session.get(SlugReservation, (namespace, value)) is not None
