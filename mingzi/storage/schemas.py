"""Pydantic schemas for naming DB rows."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CustomerRecord(BaseModel):
    """Validated representation of a customer row."""

    id: str
    user_id: str
    email: str | None = None
    credits: int = Field(default=0, ge=0)
    created_at: str
    updated_at: str | None = None


class CreditTransaction(BaseModel):
    """One credits_history row."""

    customer_id: str
    amount: int = Field(gt=0)
    type: str = Field(pattern="^(add|subtract)$")
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None


class GeneratedNameRow(BaseModel):
    """A stored name, as returned by batch history queries."""

    batch_id: str
    chinese_name: str
    pinyin: str
    characters: list[dict[str, Any]]
    meaning: str = ""
    cultural_notes: str = ""
    personality_match: str = ""
    style: str
    position_in_batch: int
    generation_round: int
