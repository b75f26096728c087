"""
SQLAlchemy ORM models mirroring database/schema.sql.
"""

from __future__ import annotations

from sqlalchemy import Column, Text
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    # username doubles as the mapper identity; it is unique and not null either way
    username = Column(Text, primary_key=True)
    email = Column(Text, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
