"""Content node Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NodeIn(BaseModel):
    """Body of a content node supplied by a client."""

    type: str = Field(..., min_length=1, description="Node kind, interpreted by renderers")
    content: str | dict[str, Any] = Field(..., description="Node payload")

    model_config = ConfigDict(extra="forbid")


class NodeOut(BaseModel):
    """Materialised node body returned inside a post's ``nodes`` map."""

    type: str
    content: str | dict[str, Any]


class NodeCreate(BaseModel):
    """Request to add a node to an existing post."""

    node: NodeIn
    index: int | None = Field(
        None,
        description="Insert position; missing, negative or out of range appends",
    )

    model_config = ConfigDict(extra="forbid")
