"""Tests for prompt construction (mingzi/naming/prompts.py)."""

import random

from mingzi.naming import build_prompt
from mingzi.naming.lexicon import OVERUSED_NAMES, SURNAME_LIST

from .helpers import make_request


def _build(request=None, existing=(), seed=1, personalize=True, position=1, total=6):
    return build_prompt(
        request or make_request(),
        position=position,
        total=total,
        existing=list(existing),
        rng=random.Random(seed),
        personalize=personalize,
    )


class TestBuildPrompt:
    """Contents of a single-name prompt."""

    def test_same_rng_seed_same_prompt(self):
        assert _build(seed=3) == _build(seed=3)

    def test_different_rng_seed_changes_nonce(self):
        assert _build(seed=3).nonce != _build(seed=4).nonce

    def test_surname_hint_from_list_and_embedded(self):
        prompt = _build()
        assert prompt.surname in SURNAME_LIST
        assert f'Use "{prompt.surname}" as the surname' in prompt.text

    def test_seed_and_nonce_embedded(self):
        prompt = _build()
        assert f"Seed: {prompt.seed}" in prompt.text
        assert f"UniqueID: {prompt.nonce}" in prompt.text
        assert len(prompt.nonce) == 13

    def test_position_embedded(self):
        prompt = _build(position=2, total=3)
        assert "Position: 2 of 3" in prompt.text

    def test_existing_names_excluded(self):
        prompt = _build(existing=["李心悦", "王文轩"])
        assert "EXISTING NAMES TO AVOID:" in prompt.text
        assert "李心悦, 王文轩" in prompt.text

    def test_no_exclusion_block_for_first_name(self):
        assert "EXISTING NAMES TO AVOID" not in _build().text

    def test_overused_names_listed(self):
        text = _build().text
        for name in OVERUSED_NAMES:
            assert name in text

    def test_demands_json_shape(self):
        text = _build().text
        assert '"chinese"' in text
        assert '"characters"' in text
        assert '"culturalNotes"' in text
        assert "JSON only" in text

    def test_premium_requirements_only_when_personalized(self):
        premium = make_request(planType="4", personalityTraits="curious")
        assert "PREMIUM REQUIREMENTS" in _build(premium, personalize=True).text
        assert "STANDARD REQUIREMENTS" in _build(premium, personalize=False).text

    def test_standard_requirements(self):
        assert "STANDARD REQUIREMENTS" in _build().text

    def test_traits_only_when_personalized(self):
        request = make_request(
            personalityTraits="curious and calm", namePreferences="nature"
        )
        assert "Personality Traits: curious and calm" in _build(request).text
        assert "Name Preferences: nature" in _build(request).text
        anonymous = _build(request, personalize=False).text
        assert "curious and calm" not in anonymous
        assert "Name Preferences" not in anonymous

    def test_birth_year_included_when_present(self):
        assert "Birth Year: 1990" in _build(make_request(birthYear=1990)).text
        assert "Birth Year" not in _build().text
