"""Tolerant decoding of provider output into NameRecords.

Providers are told to answer with bare JSON but routinely wrap it in prose or
markdown fences. Decoding takes the span from the first "{" to the last "}",
falls back to the shortest brace-delimited substring, and validates the result
against the NameRecord schema.
"""

import json
import re
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from ..core.models import NameRecord, PlanType
from ..errors import ParseError, SchemaError

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*?\}")

REQUIRED_FIELDS = ("chinese", "pinyin", "characters")


@dataclass(frozen=True)
class ParseResult:
    """Tagged decode outcome: exactly one of `record` / `error` is set."""

    record: NameRecord | None = None
    error: ParseError | SchemaError | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None

    def unwrap(self) -> NameRecord:
        if self.record is None:
            raise self.error or ParseError("Empty parse result")
        return self.record


def extract_json_candidate(text: str) -> str | None:
    """Return the substring most likely to hold the JSON object, or None."""
    cleaned = text.strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        return cleaned[start : end + 1]
    match = _JSON_OBJECT_RE.search(cleaned)
    return match.group(0) if match else None


def decode_name_record(text: str, plan: PlanType) -> ParseResult:
    """Decode raw provider text into a NameRecord with `style` forced from `plan`."""
    candidate = extract_json_candidate(text or "")
    if candidate is None:
        return ParseResult(error=ParseError("No valid JSON object found in AI response"))

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return ParseResult(error=ParseError(f"Invalid JSON in AI response: {exc}"))

    if not isinstance(data, dict):
        return ParseResult(error=SchemaError("AI response JSON is not an object"))

    missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
    if missing:
        return ParseResult(
            error=SchemaError(f"Missing required fields in AI response: {', '.join(missing)}")
        )

    data["style"] = plan.label
    try:
        record = NameRecord.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        return ParseResult(error=SchemaError(f"Invalid {where}: {first.get('msg')}"))

    return ParseResult(record=record)
