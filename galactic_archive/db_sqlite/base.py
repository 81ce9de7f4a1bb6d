"""SQLAlchemy declarative base for the index tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all index models."""
