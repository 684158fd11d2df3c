"""Post controller: selection, lifecycle and node management for posts.

The controller keeps no state between calls. Slug uniqueness is maintained
with an explicit two-phase protocol against the uniqueness service:
reserve before the write that introduces a slug, release after the write
that drops it (rename or delete).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from folio_stage.db.time import now_ms
from folio_stage.schemas.post import PostSelector
from folio_stage.services.errors import (
    BadRequestError,
    ConflictError,
    ConsistencyError,
    ForbiddenFieldError,
    NotFoundError,
)
from folio_stage.services.ports import NodeStorePort, UniquenessPort, UserDirectoryPort
from folio_stage.services.post_query import build_query

if TYPE_CHECKING:
    from folio_stage.repositories.post_repo import Changes, PostRepository

logger = logging.getLogger(__name__)

# Fields a caller may write; id and created are assigned by the controller/store.
WRITABLE_FIELDS = frozenset({"slug", "title", "status", "tags", "author", "content", "published"})
STORE_ASSIGNED_FIELDS = ("id", "created")

IncludeHandler = Callable[[list[dict[str, Any]]], Awaitable[None]]


def _require_slug(slug: str, conflict: ConflictError) -> Callable[[dict[str, Any]], None]:
    def check(old: dict[str, Any]) -> None:
        if old.get("slug") != slug:
            raise conflict

    return check


class PostController:
    """Coordinates the post store with the slug registry, node store and user directory."""

    def __init__(
        self,
        posts: PostRepository,
        slugs: UniquenessPort,
        nodes: NodeStorePort,
        users: UserDirectoryPort,
        *,
        slug_namespace: str = "posts_slugs",
        max_limit: int | None = 20,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._posts = posts
        self._slugs = slugs
        self._nodes = nodes
        self._users = users
        self._slug_namespace = slug_namespace
        self._max_limit = max_limit
        self._clock = clock
        self._includes: dict[str, IncludeHandler] = {
            "content": self._include_content,
            "author": self._include_author,
        }

    @property
    def nodes(self) -> NodeStorePort:
        """The node store this controller writes to."""
        return self._nodes

    def includes(self) -> list[str]:
        """Return the include names ``get`` understands, in registry order."""
        return list(self._includes)

    # --- retrieval -----------------------------------------------------------

    async def get(
        self,
        selector: PostSelector | Mapping[str, Any],
    ) -> dict[str, Any] | list[dict[str, Any]] | int:
        """Return one post, a list of posts, or a count.

        Args:
            selector: Get options. ``id`` selects by identifier, otherwise
                ``slug`` selects by slug, otherwise the collection is filtered.

        Returns:
            The post for id/slug lookups, the ordered list for collections,
            or an integer when ``quantity`` is requested.

        Raises:
            NotFoundError: If an id or slug lookup matches nothing.
            ConsistencyError: If more than one post carries the slug.
        """
        if not isinstance(selector, PostSelector):
            selector = PostSelector.model_validate(selector)

        query = build_query(selector, now=self._clock(), max_limit=self._max_limit)
        if query.count:
            return await self._posts.count(query)

        documents = await self._posts.find(query)
        await self._project(documents, query.include)

        if query.mode == "collection":
            return documents
        if not documents:
            raise NotFoundError()
        if len(documents) > 1:
            raise ConsistencyError(f"Slug '{query.slug}' is held by {len(documents)} posts")
        return documents[0]

    async def _project(self, documents: list[dict[str, Any]], include: tuple[str, ...]) -> None:
        for name in include:
            handler = self._includes.get(name)
            if handler is not None:
                await handler(documents)

        # The node list is internal unless the caller asked for content.
        if "content" not in include:
            for document in documents:
                document.pop("content", None)

    async def _include_content(self, documents: list[dict[str, Any]]) -> None:
        wanted = [node_id for doc in documents for node_id in doc.get("content") or ()]
        bodies = await self._nodes.get_many(list(dict.fromkeys(wanted)))
        for document in documents:
            if "content" in document:
                document["nodes"] = {
                    node_id: bodies[node_id]
                    for node_id in document["content"]
                    if node_id in bodies
                }

    async def _include_author(self, documents: list[dict[str, Any]]) -> None:
        cache: dict[str, dict[str, Any] | None] = {}
        for document in documents:
            author_id = document.get("author")
            if author_id is None:
                continue
            if author_id not in cache:
                cache[author_id] = await self._users.get(author_id)
            document["author"] = cache[author_id]

    # --- lifecycle -----------------------------------------------------------

    async def create(self, post: Mapping[str, Any]) -> dict[str, Any]:
        """Create a post, its slug reservation and its nodes.

        Args:
            post: New post fields. ``content`` holds node bodies (not ids) in
                display order.

        Returns:
            The stored post. When nodes were supplied it carries ``content``
            (their ids in order) and ``nodes`` (id to body), assembled from
            the bodies just written rather than read back.

        Raises:
            ForbiddenFieldError: If ``id`` or ``created`` is supplied.
            ConflictError: If the slug is already reserved; nothing is written.
        """
        self._will_create(post)

        record = {name: value for name, value in post.items() if value is not None}
        record["created"] = self._clock()
        if not record.get("status"):
            record["status"] = "draft"
        if record.get("published") is None:
            record["published"] = record["created"]

        bodies = [dict(body) for body in record.pop("content", None) or ()]

        if record.get("slug"):
            await self._slugs.ensure(self._slug_namespace, record["slug"])

        node_ids: list[str] = []
        if bodies:
            node_ids = await self._nodes.create_many(bodies)
            record["content"] = node_ids

        record["id"] = await self._posts.insert(record)
        logger.info("Created post %s with %d nodes", record["id"], len(node_ids))

        if node_ids:
            record["nodes"] = dict(zip(node_ids, bodies, strict=True))
        return record

    def _will_create(self, post: Mapping[str, Any]) -> None:
        for name in STORE_ASSIGNED_FIELDS:
            if name in post:
                raise ForbiddenFieldError(name)
        self._check_writable(post)

    async def update(self, post_id: str, to: Mapping[str, Any]) -> str:
        """Merge ``to`` into a post and run the rename/publish follow-ups.

        A new slug is reserved before the merge so that losing a race leaves
        the post untouched; the slug the post drops is released afterwards.
        A slug that is already reserved is only accepted when the locked post
        is the one holding it. A new ``content`` list must name existing
        nodes without repeats; nodes it drops are deleted. Moving ``status``
        to ``published`` stamps ``published`` with the current time in a
        second update.

        Returns:
            The post's identifier.

        Raises:
            NotFoundError: If no post has this identifier.
            ConflictError: If the new slug belongs to another post.
            BadRequestError: If ``content`` repeats or names unknown nodes.
        """
        self._will_update(to)
        patch = dict(to)

        if await self._posts.get(post_id) is None:
            raise NotFoundError()

        if patch.get("content") is not None:
            await self._check_content(patch["content"])

        reserved: str | None = None
        check: Callable[[dict[str, Any]], None] | None = None
        slug = patch.get("slug")
        if slug is not None:
            try:
                await self._slugs.ensure(self._slug_namespace, slug)
                reserved = slug
            except ConflictError as err:
                # Taken: only acceptable if this post is the holder.
                check = _require_slug(slug, err)

        try:
            changes = await self._posts.merge(post_id, patch, check=check)
        except Exception:
            if reserved is not None:
                await self._release_quietly(reserved)
            raise
        if changes is None:
            # Deleted between the read and the merge.
            if reserved is not None:
                await self._release_quietly(reserved)
            raise NotFoundError()

        return await self._did_update(changes)

    def _will_update(self, to: Mapping[str, Any]) -> None:
        for name in STORE_ASSIGNED_FIELDS:
            if name in to:
                raise ForbiddenFieldError(name)
        self._check_writable(to)

    async def _check_content(self, node_ids: list[str]) -> None:
        if len(set(node_ids)) != len(node_ids):
            raise BadRequestError("Post content lists a node more than once")
        found = await self._nodes.get_many(node_ids)
        missing = [node_id for node_id in node_ids if node_id not in found]
        if missing:
            raise BadRequestError(f"Unknown node(s): {', '.join(missing)}")

    async def _did_update(self, changes: Changes) -> str:
        old, new = changes.old, changes.new

        old_slug = old.get("slug")
        if old_slug is not None and old_slug != new.get("slug"):
            await self._slugs.delete(self._slug_namespace, old_slug)

        kept = set(new.get("content") or ())
        dropped = [node_id for node_id in old.get("content") or () if node_id not in kept]
        if dropped:
            await self._nodes.delete_all(dropped)

        if old["status"] != new["status"] and new["status"] == "published":
            logger.info("Post %s published", new["id"])
            return await self.update(new["id"], {"published": self._clock()})

        return old["id"]

    async def delete(self, post_id: str) -> str:
        """Delete a post, release its slug and delete its nodes.

        The node cleanup is not rolled back on partial failure; the post is
        already gone by then.

        Returns:
            The deleted post's identifier.

        Raises:
            NotFoundError: If no post has this identifier.
        """
        document = await self._posts.remove(post_id)
        if document is None:
            raise NotFoundError()

        if document.get("slug"):
            await self._slugs.delete(self._slug_namespace, document["slug"])

        node_ids = document.get("content")
        if node_ids:
            await self._nodes.delete_all(node_ids)

        logger.info("Deleted post %s", document["id"])
        return document["id"]

    # --- nodes ---------------------------------------------------------------

    async def create_node(
        self,
        post_id: str,
        node: Mapping[str, Any],
        index: int | None = None,
    ) -> str:
        """Create a node and place its id in the post's node list.

        ``index`` inserts at that position when ``0 <= index < len``;
        anything else (missing, negative, past the end) appends.

        Returns:
            The new node's identifier.

        Raises:
            NotFoundError: If no post has this identifier.
        """
        if await self._posts.get(post_id) is None:
            raise NotFoundError()

        node_id = await self._nodes.create(dict(node))

        def place(content: list[str]) -> list[str]:
            if index is not None and 0 <= index < len(content):
                content.insert(index, node_id)
            else:
                content.append(node_id)
            return content

        if await self._posts.edit_content(post_id, place) is None:
            await self._discard_quietly(node_id)
            raise NotFoundError()
        return node_id

    async def delete_node(self, post_id: str, node_id: str) -> str:
        """Delete a node and drop its id from the post's node list.

        Removing an id that is not in the list succeeds and changes nothing.

        Raises:
            NotFoundError: If no post has this identifier.
        """
        if await self._posts.get(post_id) is None:
            raise NotFoundError()

        await self._nodes.delete(node_id)

        stored = await self._posts.edit_content(
            post_id,
            lambda content: [existing for existing in content if existing != node_id],
        )
        if stored is None:
            raise NotFoundError()
        return node_id

    # --- helpers -------------------------------------------------------------

    def _check_writable(self, fields: Mapping[str, Any]) -> None:
        unknown = sorted(set(fields) - WRITABLE_FIELDS)
        if unknown:
            raise BadRequestError(f"Unknown post field(s): {', '.join(unknown)}")

    async def _release_quietly(self, slug: str) -> None:
        try:
            await self._slugs.delete(self._slug_namespace, slug)
        except Exception:
            logger.warning("Could not release slug %s", slug, exc_info=True)

    async def _discard_quietly(self, node_id: str) -> None:
        try:
            await self._nodes.delete(node_id)
        except Exception:
            logger.warning("Could not delete orphaned node %s", node_id, exc_info=True)
