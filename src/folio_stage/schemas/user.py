"""User-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict


class AuthorOut(BaseModel):
    """Public projection of a user record."""

    id: str
    name: str | None = None
    email: str | None = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")
