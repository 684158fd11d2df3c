"""Read-only access to the user directory."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio_stage.models.user import User

__all__ = ["UserDirectory"]


class UserDirectory:
    """Looks up users and hands out their public projection."""

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def get(self, user_id: str) -> dict[str, Any] | None:
        """Return the public projection of a user, or None if unknown."""
        async with self._sessions() as session:
            user = await session.get(User, user_id)
            return user.to_public() if user is not None else None
