"""Post-related endpoints for the Folio API."""

import logging
from collections.abc import Awaitable
from typing import Annotated, Any, TypeVar

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from folio_stage.api.v1.dependencies import (
    ClockDep,
    CurrentUserDep,
    OptionalUserDep,
    PostControllerDep,
)
from folio_stage.schemas.node import NodeCreate
from folio_stage.schemas.post import (
    IdResponse,
    IncludeName,
    OrderToken,
    PostCreate,
    PostOut,
    PostSelector,
    PostUpdate,
    StatusFilter,
)
from folio_stage.services import PostController
from folio_stage.services.errors import (
    BadRequestError,
    ConflictError,
    ConsistencyError,
    NotFoundError,
)
from folio_stage.services.post_query import is_public, restrict_to_public

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])

T = TypeVar("T")

IncludeQuery = Annotated[
    list[IncludeName] | None,
    Query(description="Extra data to materialise: content, author"),
]


async def _run(operation: Awaitable[T]) -> T:
    """Await a controller call and translate its errors into HTTP responses."""
    try:
        return await operation
    except NotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err)) from err
    except ConflictError as err:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err
    except BadRequestError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    except ConsistencyError as err:
        logger.error("Post store is inconsistent: %s", err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(err),
        ) from err
    except SQLAlchemyError as err:
        logger.exception("Database error while handling post request")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from err


def _date_filter(name: str, values: list[int] | None) -> int | tuple[int, int] | None:
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    if len(values) == 2:
        return (values[0], values[1])
    raise RequestValidationError(
        [
            {
                "type": "too_long",
                "loc": ("query", name),
                "msg": "Expected one timestamp or a [from, to) pair",
                "input": values,
            }
        ]
    )


def _selector(**options: Any) -> PostSelector:
    try:
        return PostSelector.model_validate(
            {name: value for name, value in options.items() if value is not None}
        )
    except ValidationError as err:
        raise RequestValidationError(err.errors()) from err


async def _get_one(
    controller: PostController,
    selector: PostSelector,
    user: dict[str, Any] | None,
    now: int,
) -> dict[str, Any]:
    post = await _run(controller.get(selector))
    # Anonymous callers only see posts that are published and due.
    if user is None and not is_public(post, now):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return post


@router.get(
    "",
    response_model=list[PostOut] | int,
    response_model_exclude_unset=True,
)
async def list_posts(
    controller: PostControllerDep,
    user: OptionalUserDep,
    clock: ClockDep,
    status_filter: Annotated[StatusFilter | None, Query(alias="status")] = None,
    created: Annotated[
        list[int] | None,
        Query(description="At-or-before timestamp, or a [from, to) pair"),
    ] = None,
    published: Annotated[
        list[int] | None,
        Query(description="At-or-before timestamp, or a [from, to) pair"),
    ] = None,
    order: OrderToken | None = None,
    tags: Annotated[list[str] | None, Query(description="Required tags; prefix with - to exclude")] = None,
    author: str | None = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
    quantity: bool = False,
    include: IncludeQuery = None,
) -> list[dict[str, Any]] | int:
    """List posts, or count them when ``quantity`` is set.

    Anonymous callers only ever see published posts whose publish time has
    passed, whatever filters they send.
    """
    selector = _selector(
        status=status_filter,
        created=_date_filter("created", created),
        published=_date_filter("published", published),
        order=order,
        tags=tags,
        author=author,
        limit=limit,
        quantity=quantity,
        include=include,
    )
    if user is None:
        selector = restrict_to_public(selector, clock())
    return await _run(controller.get(selector))


@router.get(
    "/slug/{slug}",
    response_model=PostOut,
    response_model_exclude_unset=True,
)
async def get_post_by_slug(
    slug: str,
    controller: PostControllerDep,
    user: OptionalUserDep,
    clock: ClockDep,
    include: IncludeQuery = None,
) -> dict[str, Any]:
    """Get a single post by its slug."""
    selector = _selector(slug=slug, include=include)
    return await _get_one(controller, selector, user, clock())


@router.get(
    "/{post_id}",
    response_model=PostOut,
    response_model_exclude_unset=True,
)
async def get_post(
    post_id: str,
    controller: PostControllerDep,
    user: OptionalUserDep,
    clock: ClockDep,
    include: IncludeQuery = None,
) -> dict[str, Any]:
    """Get a single post by its identifier."""
    selector = _selector(id=post_id, include=include)
    return await _get_one(controller, selector, user, clock())


@router.post(
    "",
    response_model=PostOut,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    payload: PostCreate,
    controller: PostControllerDep,
    current_user: CurrentUserDep,
) -> dict[str, Any]:
    """Create a post authored by the current user.

    Node bodies in ``content`` are stored as nodes; the response lists their
    ids in ``content`` and their bodies in ``nodes``.

    Raises:
        HTTPException: 400 when an id is supplied, 409 when the slug is taken
    """
    data = payload.model_dump(exclude_unset=True)
    data["author"] = current_user["id"]
    return await _run(controller.create(data))


@router.patch("/{post_id}", response_model=IdResponse)
async def update_post(
    post_id: str,
    payload: PostUpdate,
    controller: PostControllerDep,
    current_user: CurrentUserDep,
) -> IdResponse:
    """Apply a partial update to a post."""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    updated_id = await _run(controller.update(post_id, changes))
    logger.debug("User %s updated post %s", current_user["id"], updated_id)
    return IdResponse(id=updated_id)


@router.delete("/{post_id}", response_model=IdResponse)
async def delete_post(
    post_id: str,
    controller: PostControllerDep,
    current_user: CurrentUserDep,
) -> IdResponse:
    """Delete a post together with its slug reservation and nodes."""
    deleted_id = await _run(controller.delete(post_id))
    logger.debug("User %s deleted post %s", current_user["id"], deleted_id)
    return IdResponse(id=deleted_id)


@router.post(
    "/{post_id}/nodes",
    response_model=IdResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_node(
    post_id: str,
    payload: NodeCreate,
    controller: PostControllerDep,
    current_user: CurrentUserDep,
) -> IdResponse:
    """Add a node to a post at ``index``, or at the end."""
    node_id = await _run(
        controller.create_node(post_id, payload.node.model_dump(), payload.index)
    )
    return IdResponse(id=node_id)


@router.delete("/{post_id}/nodes/{node_id}", response_model=IdResponse)
async def delete_node(
    post_id: str,
    node_id: str,
    controller: PostControllerDep,
    current_user: CurrentUserDep,
) -> IdResponse:
    """Remove a node from a post and delete it."""
    removed_id = await _run(controller.delete_node(post_id, node_id))
    return IdResponse(id=removed_id)
