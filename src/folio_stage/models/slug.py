"""Reservation table backing slug uniqueness."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from folio_stage.db.session import Base


class SlugReservation(Base):
    """Existence of a row means the value is taken within its namespace."""

    __tablename__ = "post_slug"

    namespace: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(String(60), primary_key=True)
