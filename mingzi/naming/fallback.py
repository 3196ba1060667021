"""Deterministic fallback synthesis from the lexicon tables.

Used whenever a provider result is unusable. Makes no external calls and
cannot fail: unknown characters get a placeholder reading and gloss.
"""

from ..core.models import CharacterEntry, Gender, NameRecord, PlanType
from .lexicon import (
    given_names_for,
    meaning_for_char,
    pinyin_for_char,
    surname_pinyin,
)


def synthesize_fallback(
    index: int,
    surname: str,
    gender: Gender,
    plan: PlanType,
) -> NameRecord:
    """Build a complete NameRecord for batch position `index`.

    The given-name template is `templates[index % len(templates)]` for the
    gender, so the same inputs always yield the same record.
    """
    templates = given_names_for(gender)
    given = templates[index % len(templates)]

    family_reading = surname_pinyin(surname)
    characters = [
        CharacterEntry(
            character=surname,
            pinyin=family_reading,
            meaning="Family surname",
            explanation="A traditional Chinese family name with historical significance.",
        )
    ]
    explanation_verbs = ("Represents", "Symbolizes")
    for position, ch in enumerate(given):
        gloss = meaning_for_char(ch)
        verb = explanation_verbs[min(position, len(explanation_verbs) - 1)]
        characters.append(
            CharacterEntry(
                character=ch,
                pinyin=pinyin_for_char(ch),
                meaning=gloss,
                explanation=f"{verb} {gloss.lower()} qualities",
            )
        )

    given_reading = "".join(pinyin_for_char(ch) for ch in given)
    return NameRecord(
        chinese=f"{surname}{given}",
        pinyin=f"{family_reading} {given_reading}",
        characters=characters,
        meaning=(
            f"A {plan.label.lower()} Chinese name with positive meanings "
            "and cultural significance"
        ),
        cultural_notes=(
            f"Traditional Chinese name reflecting {gender.value} characteristics "
            "with auspicious meanings"
        ),
        personality_match=(
            "This fallback name maintains cultural appropriateness and positive "
            "connotations suitable for the specified preferences"
        ),
        style=plan.label,
    )
