"""Data access helpers for working with posts."""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, and_, delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio_stage.models.post import Post, PostTag
from folio_stage.services.post_query import (
    AtOrBefore,
    Between,
    Equals,
    HasAllTags,
    HasNoTags,
    Order,
    PostQuery,
    Predicate,
)

__all__ = ["Changes", "PostRepository"]

_COLUMNS = {
    "id": Post.id,
    "slug": Post.slug,
    "status": Post.status,
    "created": Post.created,
    "published": Post.published,
    "author": Post.author,
}


@dataclass(frozen=True)
class Changes:
    """Snapshots of one document taken before and after a single write."""

    old: dict[str, Any]
    new: dict[str, Any]


def _column(name: str) -> Any:
    try:
        return _COLUMNS[name]
    except KeyError:
        raise ValueError(f"Posts cannot be filtered on '{name}'") from None


def compile_predicate(predicate: Predicate) -> ColumnElement[bool]:
    """Translate one query predicate into a SQL expression over ``post``."""
    if isinstance(predicate, Equals):
        return _column(predicate.field) == predicate.value
    if isinstance(predicate, AtOrBefore):
        return _column(predicate.field) <= predicate.value
    if isinstance(predicate, Between):
        column = _column(predicate.field)
        if predicate.upper is None:
            return column >= predicate.lower
        return and_(column >= predicate.lower, column < predicate.upper)
    if isinstance(predicate, HasAllTags):
        return and_(
            *(
                select(PostTag.post_id)
                .where(PostTag.post_id == Post.id, PostTag.tag == tag)
                .exists()
                for tag in dict.fromkeys(predicate.tags)
            )
        )
    if isinstance(predicate, HasNoTags):
        return ~(
            select(PostTag.post_id)
            .where(PostTag.post_id == Post.id, PostTag.tag.in_(predicate.tags))
            .exists()
        )
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _order_clause(order: Order) -> Any:
    column = _column(order.field)
    return column.desc() if order.descending else column.asc()


def _where(query: PostQuery) -> list[ColumnElement[bool]]:
    if query.mode == "id":
        return [Post.id == query.id]
    if query.mode == "slug":
        return [Post.slug == query.slug]
    return [compile_predicate(predicate) for predicate in query.predicates]


class PostRepository:
    """Document-style access to the ``post`` table.

    Every method runs in its own transaction. Writers lock the row they touch
    so that each read-modify-write sees the current document.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository with an async session factory."""
        self._sessions = sessions

    async def find(self, query: PostQuery) -> list[dict[str, Any]]:
        """Return the documents matching ``query`` in query order."""
        stmt = select(Post).where(*_where(query))
        if query.mode == "collection":
            if query.order is not None:
                stmt = stmt.order_by(_order_clause(query.order))
            if query.limit is not None:
                stmt = stmt.limit(query.limit)
        async with self._sessions() as session:
            result = await session.scalars(stmt)
            return [post.to_document() for post in result]

    async def count(self, query: PostQuery) -> int:
        """Return how many documents match ``query``'s filters."""
        stmt = select(func.count()).select_from(Post).where(*_where(query))
        async with self._sessions() as session:
            return int(await session.scalar(stmt) or 0)

    async def get(self, post_id: str) -> dict[str, Any] | None:
        """Return a post by identifier."""
        async with self._sessions() as session:
            post = await session.get(Post, post_id)
            return post.to_document() if post is not None else None

    async def insert(self, document: dict[str, Any]) -> str:
        """Insert a new post and return its generated identifier."""
        async with self._sessions.begin() as session:
            post = Post(**document)
            session.add(post)
            await session.flush()
            await self._index_tags(session, post.id, document.get("tags"))
            return post.id

    async def merge(
        self,
        post_id: str,
        patch: dict[str, Any],
        *,
        check: Callable[[dict[str, Any]], None] | None = None,
    ) -> Changes | None:
        """Apply ``patch`` to a post and return its before/after snapshots.

        Args:
            post_id: Post to update.
            patch: Fields to overwrite.
            check: Called with the locked document before the patch is
                applied; an exception it raises aborts the write.

        Returns:
            The changes, or None when no post has this identifier.
        """
        async with self._sessions.begin() as session:
            post = await self._lock(session, post_id)
            if post is None:
                return None
            old = post.to_document()
            if check is not None:
                check(old)
            for name, value in patch.items():
                setattr(post, name, value)
            if "tags" in patch:
                await self._index_tags(session, post_id, patch["tags"], replace=True)
            await session.flush()
            return Changes(old=old, new=post.to_document())

    async def remove(self, post_id: str) -> dict[str, Any] | None:
        """Delete a post and return the document it held, or None if absent."""
        async with self._sessions.begin() as session:
            post = await self._lock(session, post_id)
            if post is None:
                return None
            document = post.to_document()
            await session.execute(delete(PostTag).where(PostTag.post_id == post_id))
            await session.delete(post)
            return document

    async def edit_content(
        self,
        post_id: str,
        edit: Callable[[list[str]], list[str]],
    ) -> list[str] | None:
        """Replace a post's node list with ``edit(current)`` under the row lock.

        Returns:
            The stored list, or None when no post has this identifier.
        """
        async with self._sessions.begin() as session:
            post = await self._lock(session, post_id)
            if post is None:
                return None
            current = list(post.content or [])
            edited = edit(list(current))
            if edited != current:
                post.content = edited
            return edited

    async def _lock(self, session: AsyncSession, post_id: str) -> Post | None:
        stmt = select(Post).where(Post.id == post_id).with_for_update()
        return await session.scalar(stmt)

    async def _index_tags(
        self,
        session: AsyncSession,
        post_id: str,
        tags: Sequence[str] | None,
        *,
        replace: bool = False,
    ) -> None:
        if replace:
            await session.execute(delete(PostTag).where(PostTag.post_id == post_id))
        if tags:
            await session.execute(
                insert(PostTag),
                [
                    {"post_id": post_id, "position": position, "tag": tag}
                    for position, tag in enumerate(tags)
                ],
            )
