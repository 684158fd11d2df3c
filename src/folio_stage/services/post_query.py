"""Pure query descriptions for the post collection.

Nothing here touches the database. ``build_query`` turns validated get
options into a ``PostQuery`` value that the repository compiles and runs,
which keeps the selection rules testable on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from folio_stage.schemas.post import DateFilter, PostSelector

OrderField = Literal["created", "published"]

DEFAULT_ORDER_FIELD: OrderField = "published"
# Present-tag values that disable the present-tag filter.
MATCH_ALL_TAGS = frozenset({"all", "everything"})
ABSENT_TAG_PREFIX = "-"


@dataclass(frozen=True)
class Equals:
    """``field == value``."""

    field: str
    value: Any


@dataclass(frozen=True)
class AtOrBefore:
    """``field <= value``."""

    field: str
    value: int


@dataclass(frozen=True)
class Between:
    """``lower <= field < upper``; a missing upper bound leaves the range open."""

    field: str
    lower: int
    upper: int | None = None


@dataclass(frozen=True)
class HasAllTags:
    """The post carries every one of ``tags``."""

    tags: tuple[str, ...]


@dataclass(frozen=True)
class HasNoTags:
    """The post is untagged or carries none of ``tags``."""

    tags: tuple[str, ...]


Predicate = Equals | AtOrBefore | Between | HasAllTags | HasNoTags


@dataclass(frozen=True)
class Order:
    """Sort on one of the indexed timestamp fields."""

    field: OrderField
    descending: bool


@dataclass(frozen=True)
class PostQuery:
    """Structured description of a post lookup.

    Exactly one of ``id``/``slug``/collection applies; ``predicates``,
    ``order`` and ``limit`` are only meaningful for the collection.
    """

    id: str | None = None
    slug: str | None = None
    predicates: tuple[Predicate, ...] = ()
    order: Order | None = None
    limit: int | None = None
    count: bool = False
    include: tuple[str, ...] = field(default_factory=tuple)

    @property
    def mode(self) -> Literal["id", "slug", "collection"]:
        if self.id is not None:
            return "id"
        if self.slug is not None:
            return "slug"
        return "collection"


def resolve_order(token: str | None) -> Order:
    """Map an order token to a field and direction.

    ``-field`` sorts descending and ``field`` ascending; without a token the
    collection comes newest-published first.
    """
    if not token:
        return Order(DEFAULT_ORDER_FIELD, descending=True)
    if token.startswith("-"):
        return Order(token[1:], descending=True)  # type: ignore[arg-type]
    return Order(token, descending=False)  # type: ignore[arg-type]


def date_predicates(name: str, value: DateFilter | None) -> list[Predicate]:
    if value is None:
        return []
    if isinstance(value, tuple | list):
        lower, upper = (tuple(value) + (None,))[:2]
        return [Between(name, lower, upper)]
    return [AtOrBefore(name, value)]


def tag_predicates(tags: list[str] | None) -> list[Predicate]:
    """Split ``tags`` into present and ``-``-prefixed absent partitions."""
    if not tags:
        return []

    present = [tag for tag in tags if not tag.startswith(ABSENT_TAG_PREFIX)]
    absent = [tag[1:] for tag in tags if tag.startswith(ABSENT_TAG_PREFIX) and len(tag) > 1]

    predicates: list[Predicate] = []
    if present and not MATCH_ALL_TAGS.intersection(present):
        predicates.append(HasAllTags(tuple(present)))
    if absent:
        predicates.append(HasNoTags(tuple(absent)))
    return predicates


def status_predicates(status: str | None, now: int) -> list[Predicate]:
    if status is None or status == "*":
        return []
    if status == "published":
        # Scheduled posts stay hidden until their publish time passes.
        return [Equals("status", status), AtOrBefore("published", now)]
    return [Equals("status", status)]


def clamp_limit(requested: int | None, maximum: int | None) -> int | None:
    if requested is None:
        return None
    if maximum is None:
        return requested
    return min(requested, maximum)


def build_query(selector: PostSelector, *, now: int, max_limit: int | None) -> PostQuery:
    """Compose the query description for ``selector``.

    Args:
        selector: Validated get options.
        now: Current time in epoch milliseconds, used by the published filter.
        max_limit: Configured ceiling for collection limits, or None.

    Returns:
        The ``PostQuery`` to hand to the repository.
    """
    include = tuple(dict.fromkeys(selector.include))

    if selector.id is not None:
        return PostQuery(id=selector.id, count=selector.quantity, include=include)
    if selector.slug is not None:
        return PostQuery(slug=selector.slug, count=selector.quantity, include=include)

    predicates: list[Predicate] = []
    predicates += date_predicates("created", selector.created)
    predicates += date_predicates("published", selector.published)
    if selector.author:
        predicates.append(Equals("author", selector.author))
    predicates += tag_predicates(selector.tags)
    predicates += status_predicates(selector.status, now)

    return PostQuery(
        predicates=tuple(predicates),
        order=resolve_order(selector.order),
        limit=clamp_limit(selector.limit, max_limit),
        count=selector.quantity,
        include=include,
    )


def restrict_to_public(selector: PostSelector, now: int) -> PostSelector:
    """Return ``selector`` narrowed to what anonymous callers may see.

    Status is forced to ``published`` and the ``published`` upper bound is
    pulled back to ``now`` whenever it is missing or lies in the future. A
    range end is exclusive, so a clamped range ends at ``now + 1`` to keep
    posts published exactly at ``now`` visible, as ``is_public`` does.
    """
    published = selector.published
    if isinstance(published, tuple | list):
        lower, upper = (tuple(published) + (None,))[:2]
        if upper is None or upper > now + 1:
            upper = now + 1
        published = (lower, upper)
    elif published is None or published > now:
        published = now

    return selector.model_copy(update={"status": "published", "published": published})


def is_public(document: dict[str, Any], now: int) -> bool:
    """Return True when an anonymous caller may see ``document``."""
    return document.get("status") == "published" and document.get("published", now + 1) <= now
