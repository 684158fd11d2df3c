"""Shared API dependencies for authentication and service wiring."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio_stage.core.settings import settings
from folio_stage.db.session import get_sessionmaker
from folio_stage.db.time import now_ms
from folio_stage.repositories.post_repo import PostRepository
from folio_stage.services import NodeStore, PostController, SlugRegistry, UserDirectory

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
# Same scheme for endpoints that also serve anonymous callers
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for session factory dependency
SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_sessionmaker)]


def get_clock() -> Callable[[], int]:
    """Return the millisecond clock used for timestamps and visibility checks."""
    return now_ms


ClockDep = Annotated[Callable[[], int], Depends(get_clock)]


def get_user_directory(sessions: SessionFactoryDep) -> UserDirectory:
    return UserDirectory(sessions)


def get_post_controller(sessions: SessionFactoryDep, clock: ClockDep) -> PostController:
    """Assemble a post controller over the request's session factory."""
    return PostController(
        PostRepository(sessions),
        SlugRegistry(sessions),
        NodeStore(sessions),
        UserDirectory(sessions),
        slug_namespace=settings.slug_namespace,
        max_limit=settings.post_limit,
        clock=clock,
    )


UserDirectoryDep = Annotated[UserDirectory, Depends(get_user_directory)]
PostControllerDep = Annotated[PostController, Depends(get_post_controller)]


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token whose subject is the user identifier."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


async def _resolve_user(token: str, users: UserDirectory) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = await users.get(subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    users: UserDirectoryDep,
) -> dict[str, Any]:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        users: User directory used to confirm the subject still exists

    Returns:
        Public projection of the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    return await _resolve_user(credentials.credentials, users)


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
    users: UserDirectoryDep,
) -> dict[str, Any] | None:
    """Return the authenticated user, or None for anonymous requests.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return await _resolve_user(credentials.credentials, users)


# Type aliases for user dependencies
CurrentUserDep = Annotated[dict[str, Any], Depends(get_current_user)]
OptionalUserDep = Annotated[dict[str, Any] | None, Depends(get_optional_user)]
