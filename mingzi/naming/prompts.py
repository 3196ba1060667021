"""Prompt construction for single-name generation calls.

Each prompt pins a surname, carries a random seed and nonce so providers do
not serve cached completions, lists every name already accepted in this
batch, and asks for exactly one JSON object.
"""

import random
import string
from dataclasses import dataclass
from typing import Iterable

from ..core.models import GenerationRequest, PlanType
from .lexicon import OVERUSED_NAMES, SURNAME_LIST

_NONCE_ALPHABET = string.ascii_lowercase + string.digits
_NONCE_LENGTH = 13


@dataclass(frozen=True)
class NamingPrompt:
    """A built prompt plus the random choices embedded in it."""

    text: str
    surname: str
    seed: int
    nonce: str


_OUTPUT_SHAPE = """{
  "chinese": "姓名",
  "pinyin": "Xìng Míng",
  "characters": [
    {
      "character": "姓",
      "pinyin": "Xìng",
      "meaning": "Surname meaning",
      "explanation": "Brief explanation"
    },
    {
      "character": "名",
      "pinyin": "Míng",
      "meaning": "Given name meaning",
      "explanation": "Brief explanation"
    }
  ],
  "meaning": "Overall name meaning",
  "culturalNotes": "Cultural significance",
  "personalityMatch": "Why this name suits the person's traits and preferences"
}"""

_PREMIUM_REQUIREMENTS = """PREMIUM REQUIREMENTS:
- Deep analysis of personality traits and preferences
- Highly personalized character selection
- Advanced cultural matching
- Sophisticated meaning alignment"""

_STANDARD_REQUIREMENTS = """STANDARD REQUIREMENTS:
- Basic personality matching
- Good cultural appropriateness
- Meaningful character selection"""


def _personal_info(request: GenerationRequest, personalize: bool) -> str:
    lines = [f"English Name: {request.english_name}"]
    if request.birth_year:
        lines.append(f"Birth Year: {request.birth_year}")
    if personalize and request.personality_traits:
        lines.append(f"Personality Traits: {request.personality_traits}")
    if personalize and request.name_preferences:
        lines.append(f"Name Preferences: {request.name_preferences}")
    return "\n".join(lines)


def _exclusion_block(existing: Iterable[str]) -> str:
    names = list(existing)
    if not names:
        return ""
    return (
        "\n\nEXISTING NAMES TO AVOID:\n"
        f"{', '.join(names)}\n"
        "- DO NOT generate any of these names\n"
        "- Ensure complete uniqueness from existing names"
    )


def build_prompt(
    request: GenerationRequest,
    position: int,
    total: int,
    existing: Iterable[str],
    rng: random.Random,
    personalize: bool = False,
) -> NamingPrompt:
    """Build the user prompt for batch slot `position` (1-based) of `total`.

    `existing` is iterated in order; pass the accepted names in acceptance
    order to keep prompts reproducible. Draws from `rng` in a fixed order:
    surname, seed, nonce.
    """
    surname = rng.choice(SURNAME_LIST)
    seed = rng.randrange(10**12, 10**13)
    nonce = "".join(rng.choice(_NONCE_ALPHABET) for _ in range(_NONCE_LENGTH))

    premium = request.plan_type is PlanType.PREMIUM and personalize
    tier_block = _PREMIUM_REQUIREMENTS if premium else _STANDARD_REQUIREMENTS
    gender = request.gender.value
    avoid = ", ".join(OVERUSED_NAMES)

    text = f"""Generate a Chinese name as JSON only. No text before or after the JSON.

Input Requirements:
- {_personal_info(request, personalize)}
- Gender: {gender}
- Generation Type: {request.plan_type.label}
- Surname: Use "{surname}" as the surname
- Seed: {seed}
- UniqueID: {nonce}
- Position: {position} of {total}{_exclusion_block(existing)}

UNIQUENESS REQUIREMENTS (CRITICAL):
- This name must be 100% unique and different from any existing names
- No duplicate names allowed in this generation batch
- Each name must have distinct character combinations
- Generate completely different names even if same gender

{tier_block}

CREATIVITY REQUIREMENTS:
- Use uncommon but beautiful Chinese characters
- Avoid typical combinations like {avoid} etc.
- Be innovative with character selection
- Consider rare but meaningful characters from different radical families
- Create unique phonetic combinations
- Use characters from different categories (nature, virtues, colors, elements, etc.)

Output only this JSON structure:
{_OUTPUT_SHAPE}

Requirements:
- Generate ABSOLUTELY UNIQUE personalized name
- {gender} appropriate
- Must be creative, original, and distinct
- Zero tolerance for duplicates
- JSON only, no other text"""

    return NamingPrompt(text=text, surname=surname, seed=seed, nonce=nonce)
