"""Pydantic models for Mingzi, organized by domain.

- naming.py: requests, name records, batches and HTTP responses
"""

from .naming import (
    Gender,
    PlanType,
    CharacterEntry,
    NameRecord,
    Caller,
    GenerationRequest,
    GenerationBatch,
    BatchSummary,
    GenerationResponse,
)

__all__ = [
    "Gender",
    "PlanType",
    "CharacterEntry",
    "NameRecord",
    "Caller",
    "GenerationRequest",
    "GenerationBatch",
    "BatchSummary",
    "GenerationResponse",
]
