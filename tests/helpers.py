"""Test helpers: scripted provider and request/orchestrator builders."""

import json
import random

from mingzi.core.llm import GenerationClient
from mingzi.core.models import GenerationRequest
from mingzi.core.providers.base import LLMProvider, TokenUsage
from mingzi.errors import ProviderError
from mingzi.naming import BatchOrchestrator


class ScriptedProvider(LLMProvider):
    """Provider that replays canned responses (str) or raises (Exception).

    Once the script runs out it keeps failing with ProviderError. Every
    successful reply reports 100 input and 50 output tokens.
    """

    provider_name = "scripted"

    def __init__(self, script=None):
        super().__init__(api_key="test-key")
        self.script = list(script or [])
        self.calls = []

    @property
    def default_model(self) -> str:
        return "scripted-model"

    def complete(self, system_prompt, prompt, sampling, model=None, log=False):
        self.calls.append(
            {"system": system_prompt, "prompt": prompt, "sampling": sampling, "model": model}
        )
        if not self.script:
            raise ProviderError("script exhausted")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        self.last_usage = TokenUsage(input_tokens=100, output_tokens=50)
        return item


def name_json(chinese: str, pinyin: str = "Lǐ Xīn Yuè", style: str | None = None) -> str:
    """Provider-style JSON for one name."""
    data = {
        "chinese": chinese,
        "pinyin": pinyin,
        "characters": [
            {"character": chinese[0], "pinyin": "Lǐ", "meaning": "Plum", "explanation": "Surname"},
            {"character": chinese[1], "pinyin": "Xīn", "meaning": "Heart", "explanation": "Kind"},
        ],
        "meaning": "A kind heart",
        "culturalNotes": "Classic",
        "personalityMatch": "Warm",
    }
    if style:
        data["style"] = style
    return json.dumps(data, ensure_ascii=False)


def make_request(**overrides) -> GenerationRequest:
    payload = {"englishName": "Emily", "gender": "female", "planType": "1"}
    payload.update(overrides)
    return GenerationRequest.from_payload(payload)


def make_orchestrator(script=None, seed: int = 7):
    provider = ScriptedProvider(script)
    client = GenerationClient(provider, model="scripted-model")
    return BatchOrchestrator(client, rng=random.Random(seed)), provider
