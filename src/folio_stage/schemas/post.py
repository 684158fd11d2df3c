"""Post-related Pydantic schemas.

These are the validation contracts of the post resource. The controller
trusts that data reaching it has already passed through them.
"""

from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)
from pydantic.json_schema import SkipJsonSchema

from .node import NodeIn, NodeOut
from .user import AuthorOut

SLUG_PATTERN = r"^[-a-z0-9_]{1,60}$"
UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

Slug = Annotated[str, StringConstraints(pattern=SLUG_PATTERN)]
Title = Annotated[str, StringConstraints(max_length=140)]
Uuid = Annotated[str, StringConstraints(pattern=UUID_PATTERN)]
Timestamp = Annotated[int, Field(ge=0, description="Epoch milliseconds")]

PostStatus = Literal["draft", "ready", "published"]
StatusFilter = Literal["draft", "ready", "published", "*"]
OrderToken = Literal["created", "published", "-created", "-published"]
IncludeName = Literal["content", "author"]

# A scalar means "at or before"; a pair is a [from, to) range with an optional end.
DateRange = tuple[Timestamp, Timestamp | None]
DateFilter = Timestamp | DateRange


class PostSelector(BaseModel):
    """Options accepted by ``PostController.get``.

    ``id`` wins over ``slug``; when neither is present the remaining fields
    filter, order, limit and project the collection.
    """

    id: str | None = None
    slug: Slug | None = None
    status: StatusFilter | None = None
    created: DateFilter | None = None
    published: DateFilter | None = None
    order: OrderToken | None = None
    tags: list[Slug] | None = None
    author: str | None = None
    limit: int | None = Field(None, ge=1)
    quantity: bool = False
    include: list[str] = Field(default_factory=list)

    @field_validator("created", "published", mode="before")
    @classmethod
    def _pad_open_range(cls, value: Any) -> Any:
        if isinstance(value, list | tuple) and len(value) == 1:
            return (value[0], None)
        return value


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    slug: Slug
    title: Title
    status: PostStatus | None = None
    tags: list[Slug] | None = None
    published: Timestamp | None = None
    content: list[NodeIn] | None = Field(None, description="Node bodies in display order")
    # Accepted only so the controller can refuse it with a 400.
    id: SkipJsonSchema[str | None] = None

    model_config = ConfigDict(extra="forbid")


class PostUpdate(BaseModel):
    """Partial update applied to an existing post."""

    slug: Slug | None = None
    title: Title | None = None
    status: PostStatus | None = None
    tags: list[Slug] | None = None
    content: list[Uuid] | None = Field(None, description="Ordered node ids")
    published: Timestamp | None = None
    author: str | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("content")
    @classmethod
    def _unique_node_ids(cls, value: list[str] | None) -> list[str] | None:
        if value is not None and len(set(value)) != len(value):
            raise ValueError("Node ids in content must be unique")
        return value

    @model_validator(mode="after")
    def _require_a_field(self) -> "PostUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be updated")
        return self


class PostOut(BaseModel):
    """Schema for post information returned by the API."""

    id: str
    created: Timestamp
    published: Timestamp
    status: PostStatus
    slug: Slug | None = None
    title: Title | None = None
    tags: list[str] | None = None
    author: AuthorOut | str | None = None
    content: list[str] | None = None
    nodes: dict[str, NodeOut] | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _content_needs_nodes(self) -> "PostOut":
        has_content = "content" in self.model_fields_set
        has_nodes = "nodes" in self.model_fields_set
        if has_content != has_nodes:
            raise ValueError("'content' and 'nodes' must be returned together")
        return self


class IdResponse(BaseModel):
    """Identifier of the post or node an operation acted on."""

    id: str
