"""Request schemas for Billing API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator
from src.domain.ledger_entry import CreditSource
from src.app.use_cases.credits.dtos import SPENDING_SOURCES


class SpendCreditsRequestSchema(BaseModel):
    """
    Request schema for spending credits

    Used for POST /billing/credits/users/{user_id}/spend endpoint.
    """

    amount: int = Field(
        ...,
        gt=0,
        description="Credits to consume (must be > 0)"
    )

    source: CreditSource = Field(
        default=CreditSource.GENERATION,
        description="What consumed the credits (GENERATION, TRAINING, UPSCALE, EDIT, VIDEO)"
    )

    description: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Human readable description"
    )

    reference_id: Optional[str] = Field(
        default=None,
        description="ID of the generation/training job"
    )

    @field_validator('source')
    @classmethod
    def validate_source(cls, v):
        """Only consumption sources may spend credits"""
        if v not in SPENDING_SOURCES:
            raise ValueError(f"Source {v.value} cannot spend credits")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "amount": 50,
                "source": "GENERATION",
                "description": "Image generation",
                "reference_id": "gen_456"
            }
        }
