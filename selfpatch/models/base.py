"""
SQLAlchemy Base for SelfPatch.

This module provides the declarative base for all SQLAlchemy tables.

Usage:
    from selfpatch.models.base import Base

    class MyRow(Base):
        __tablename__ = "my_table"
        ...
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by every SelfPatch table."""


__all__ = ["Base"]
