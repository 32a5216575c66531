"""Shared base for SQLModel domain entities."""

import uuid
from datetime import datetime, timezone
from sqlalchemy import BigInteger, DateTime, Integer
from sqlmodel import SQLModel

# SQLite only auto-increments INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")

# Stored datetimes are naive UTC on every backend
UTCDateTime = DateTime(timezone=False)


class BaseModel(SQLModel):
    pass


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every stored datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
