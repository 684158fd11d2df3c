"""Database configuration and utilities."""

from .session import SessionLocal, get_sessionmaker

__all__ = ["get_sessionmaker", "SessionLocal"]
