"""Ledger Entry Domain Entity

Immutable append-only audit trail of every credit mutation of a user.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel as PydanticModel, ConfigDict
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, Integer, JSON, String
from src.domain.base import BaseModel, BigIntPK, UTCDateTime, utcnow


class EntryKind(str, Enum):
    """Direction of a ledger entry"""
    EARNED = "EARNED"        # Credits added (renewal, purchase, bonus, admin add)
    SPENT = "SPENT"          # Credits consumed (generation, training, admin remove)
    EXPIRED = "EXPIRED"      # Credits lost to expiration
    REFUNDED = "REFUNDED"    # Credits returned to the user


class CreditSource(str, Enum):
    """Origin of a ledger entry"""
    SUBSCRIPTION = "SUBSCRIPTION"
    PURCHASE = "PURCHASE"
    BONUS = "BONUS"
    GENERATION = "GENERATION"
    TRAINING = "TRAINING"
    UPSCALE = "UPSCALE"
    EDIT = "EDIT"
    VIDEO = "VIDEO"
    REFUND = "REFUND"
    EXPIRATION = "EXPIRATION"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


CREDITING_KINDS = frozenset({EntryKind.EARNED, EntryKind.REFUNDED})


class LedgerMetadata(PydanticModel):
    """
    Audit context stored with a ledger entry

    The known fields are typed; anything else is accepted and kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    reason: Optional[str] = None
    admin_id: Optional[str] = None
    package_id: Optional[str] = None


class LedgerEntry(BaseModel, table=True):
    """
    Ledger Entry - one credit mutation of a user

    Domain Rules:
    - Entries are append-only; amount and kind never change after creation
    - amount is never negative, kind gives the direction
    - balance_after is the user's total available credits right after the
      mutation; only the administrative recomputation rewrites it
    """

    __tablename__ = "credit_ledger_entries"
    __table_args__ = (
        CheckConstraint('amount >= 0', name='ledger_amount_non_negative'),
        Index('ix_credit_ledger_entries_user_created', 'user_id', 'created_at'),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigIntPK, primary_key=True, autoincrement=True),
        description="Unique entry identifier (auto-increment)"
    )

    user_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Owner of the entry"
    )

    kind: EntryKind = Field(
        description="Entry direction (EARNED, SPENT, EXPIRED, REFUNDED)"
    )

    source: CreditSource = Field(
        description="Origin of the mutation"
    )

    amount: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Credit amount (non-negative), direction given by kind"
    )

    balance_after: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Total available credits after this entry"
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Human readable description"
    )

    reference_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Referenced entity (generation id, payment id, ...)"
    )

    credit_purchase_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Purchased package this entry belongs to"
    )

    metadata_json: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Free-form audit context"
    )

    created_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Entry timestamp (immutable)"
    )

    @property
    def signed_amount(self) -> int:
        """Effect of this entry on the total balance"""
        if self.kind in CREDITING_KINDS:
            return self.amount
        return -self.amount

    @property
    def audit(self) -> LedgerMetadata:
        return LedgerMetadata(**(self.metadata_json or {}))

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "user_id": "0c5e0c1e-5e8e-4a43-9a0e-0b8f6b0b6c11",
                "kind": "SPENT",
                "source": "GENERATION",
                "amount": 50,
                "balance_after": 450,
                "description": "Image generation",
                "reference_id": "gen_123",
                "metadata_json": {"reason": None},
                "created_at": "2024-01-01T00:00:00Z"
            }
        }
