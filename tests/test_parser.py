"""Tests for provider output decoding (mingzi/naming/parser.py)."""

import json

import pytest

from mingzi.core.models import PlanType
from mingzi.errors import ParseError, SchemaError
from mingzi.naming import decode_name_record, extract_json_candidate

from .helpers import name_json


class TestExtractJsonCandidate:
    """Brace-span extraction from noisy text."""

    def test_bare_object(self):
        assert extract_json_candidate('{"a": 1}') == '{"a": 1}'

    def test_prose_and_fences(self):
        text = 'Sure! Here is the name:\n```json\n{"a": {"b": 2}}\n```\nEnjoy.'
        assert extract_json_candidate(text) == '{"a": {"b": 2}}'

    def test_no_braces(self):
        assert extract_json_candidate("no json here") is None

    def test_reversed_braces_fall_back_to_regex(self):
        assert extract_json_candidate("} nothing {") is None


class TestDecodeNameRecord:
    """Tagged decode results."""

    def test_valid_record(self):
        result = decode_name_record(name_json("李心"), PlanType.STANDARD)
        assert result.ok
        assert result.record.chinese == "李心"
        assert result.record.cultural_notes == "Classic"
        assert result.error is None

    def test_embedded_in_noise(self):
        text = f"Here you go:\n```json\n{name_json('王悦')}\n```\nHope you like it!"
        result = decode_name_record(text, PlanType.STANDARD)
        assert result.ok
        assert result.record.chinese == "王悦"

    def test_style_forced_from_plan(self):
        standard = decode_name_record(name_json("李心", style="Premium"), PlanType.STANDARD)
        premium = decode_name_record(name_json("李心", style="Standard"), PlanType.PREMIUM)
        assert standard.record.style == "Standard"
        assert premium.record.style == "Premium"

    def test_no_braces_is_parse_error(self):
        result = decode_name_record("I cannot help with that.", PlanType.STANDARD)
        assert not result.ok
        assert isinstance(result.error, ParseError)

    def test_empty_text_is_parse_error(self):
        assert isinstance(decode_name_record("", PlanType.STANDARD).error, ParseError)

    def test_invalid_json_is_parse_error(self):
        result = decode_name_record('{"chinese": "李心", oops}', PlanType.STANDARD)
        assert isinstance(result.error, ParseError)

    @pytest.mark.parametrize("missing", ["chinese", "pinyin", "characters"])
    def test_missing_required_field_is_schema_error(self, missing):
        data = json.loads(name_json("李心"))
        del data[missing]
        result = decode_name_record(json.dumps(data), PlanType.STANDARD)
        assert isinstance(result.error, SchemaError)
        assert missing in result.error.message

    def test_too_few_characters_is_schema_error(self):
        data = json.loads(name_json("李心"))
        data["characters"] = data["characters"][:1]
        result = decode_name_record(json.dumps(data), PlanType.STANDARD)
        assert isinstance(result.error, SchemaError)

    def test_unwrap_raises_error(self):
        result = decode_name_record("nothing", PlanType.STANDARD)
        with pytest.raises(ParseError):
            result.unwrap()
