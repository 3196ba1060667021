"""Naming models for Mingzi.

Wire payloads use camelCase keys (englishName, culturalNotes, ...); Python
attributes are snake_case. Every model accepts either form on input and
serializes with `model_dump(by_alias=True)` for the HTTP boundary.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ...errors import ValidationError


# =============================================================================
# Enums
# =============================================================================


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PlanType(str, Enum):
    """Plan tier. The wire value is the credit cost."""

    STANDARD = "1"
    PREMIUM = "4"

    @property
    def credits(self) -> int:
        return int(self.value)

    @property
    def label(self) -> str:
        return "Premium" if self is PlanType.PREMIUM else "Standard"

    @classmethod
    def parse(cls, value: Any) -> "PlanType":
        """Accept "1"/"4", 1/4, or "Standard"/"Premium" (any case)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for plan in cls:
            if text == plan.value or text.lower() == plan.label.lower():
                return plan
        raise ValueError(f"Unknown plan type: {value!r}")


# =============================================================================
# Name records
# =============================================================================


class CharacterEntry(BaseModel):
    """One character of a name with its reading and gloss."""

    character: str = Field(min_length=1)
    pinyin: str = ""
    meaning: str = ""
    explanation: str = ""


class NameRecord(BaseModel):
    """A single suggested name. `style` is always fixed by the requested plan."""

    model_config = ConfigDict(populate_by_name=True)

    chinese: str = Field(min_length=1)
    pinyin: str = Field(min_length=1)
    characters: list[CharacterEntry] = Field(min_length=2, max_length=3)
    meaning: str = ""
    cultural_notes: str = Field(default="", alias="culturalNotes")
    personality_match: str = Field(default="", alias="personalityMatch")
    style: str = "Standard"

    @field_validator("meaning", "cultural_notes", "personality_match", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


# =============================================================================
# Requests
# =============================================================================


class Caller(BaseModel):
    """Who is asking: an authenticated user, or an anonymous network origin."""

    user_id: str | None = None
    email: str | None = None
    client_ip: str = "127.0.0.1"

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id)


_REQUIRED_REQUEST_FIELDS = ("englishName", "gender", "planType")


class GenerationRequest(BaseModel):
    """Validated input for one generation invocation."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    english_name: str = Field(min_length=1, alias="englishName")
    gender: Gender
    birth_year: str | None = Field(default=None, alias="birthYear")
    personality_traits: str | None = Field(default=None, alias="personalityTraits")
    name_preferences: str | None = Field(default=None, alias="namePreferences")
    plan_type: PlanType = Field(alias="planType")
    continue_batch: bool = Field(default=False, alias="continueBatch")
    batch_id: str | None = Field(default=None, alias="batchId")

    @field_validator("plan_type", mode="before")
    @classmethod
    def _parse_plan(cls, v: Any) -> PlanType:
        return PlanType.parse(v)

    @field_validator("gender", mode="before")
    @classmethod
    def _lower_gender(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("birth_year", mode="before")
    @classmethod
    def _stringify_year(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("personality_traits", "name_preferences", "batch_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "GenerationRequest":
        """Build a request from a raw JSON body.

        Raises:
            ValidationError: Missing englishName/gender/planType, or invalid values.
        """
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        missing = [k for k in _REQUIRED_REQUEST_FIELDS if not payload.get(k)]
        if missing:
            raise ValidationError(
                "Missing required fields: englishName, gender, and planType"
            )
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(p) for p in first.get("loc", ()))
            raise ValidationError(f"Invalid {where}: {first.get('msg')}") from exc


# =============================================================================
# Batches and responses
# =============================================================================


class GenerationBatch(BaseModel):
    """Persisted grouping of name records across continuation rounds."""

    id: str
    user_id: str
    english_name: str
    gender: str
    birth_year: str | None = None
    personality_traits: str | None = None
    name_preferences: str | None = None
    plan_type: str
    credits_used: int = 0
    names_count: int = 0
    created_at: str
    updated_at: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class BatchSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    english_name: str = Field(alias="englishName")
    gender: str
    plan_type: str = Field(alias="planType")
    total_names_generated: int = Field(alias="totalNamesGenerated")
    total_credits_used: int = Field(alias="totalCreditsUsed")
    created_at: str = Field(alias="createdAt")

    @classmethod
    def from_batch(cls, batch: GenerationBatch) -> "BatchSummary":
        return cls(
            id=batch.id,
            english_name=batch.english_name,
            gender=batch.gender,
            plan_type=batch.plan_type,
            total_names_generated=batch.names_count,
            total_credits_used=batch.credits_used,
            created_at=batch.created_at,
        )


class GenerationResponse(BaseModel):
    """HTTP-facing result of one generation invocation."""

    model_config = ConfigDict(populate_by_name=True)

    names: list[NameRecord]
    total: int
    plan_type: str = Field(alias="planType")
    credits_used: int = Field(alias="creditsUsed")
    batch_id: str | None = Field(default=None, alias="batchId")
    generation_round: int = Field(default=1, alias="generationRound")
    is_continuation: bool = Field(default=False, alias="isContinuation")
    batch: BatchSummary | None = None
    message: str
