"""Declarative base shared by every ORM model."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    # Models use plain ``Column`` attributes with non-``Mapped`` annotations.
    __allow_unmapped__ = True
