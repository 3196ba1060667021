"""Batch orchestration for name generation.

Produces N names for one request, strictly sequentially so every prompt can
list the names already accepted. Each slot ends in exactly one record: the
provider's, or a deterministic fallback when the call fails, the output does
not decode, or the name duplicates an accepted one. Duplicates always fall
back rather than retry, which bounds latency to N provider calls.

Usage:
    orchestrator = BatchOrchestrator(create_generation_client(config))
    batch = orchestrator.generate(request, authenticated=True)
    batch.names  # 6 NameRecords, pairwise-distinct `chinese`
"""

import logging
import random
import threading
from dataclasses import dataclass, field

from ..core.llm import GenerationClient
from ..core.providers import TokenUsage
from ..core.models import GenerationRequest, NameRecord
from ..errors import ProviderError
from .fallback import synthesize_fallback
from .lexicon import SURNAME_LIST, given_names_for
from .parser import decode_name_record
from .prompts import build_prompt

logger = logging.getLogger(__name__)

AUTHENTICATED_COUNT = 6
ANONYMOUS_COUNT = 3


@dataclass
class GeneratedBatch:
    """Ordered names from one invocation plus how each slot was filled."""

    names: list[NameRecord] = field(default_factory=list)
    fallback_positions: list[int] = field(default_factory=list)
    cancelled: bool = False
    usage: TokenUsage = field(default_factory=TokenUsage)

    @property
    def provider_count(self) -> int:
        return len(self.names) - len(self.fallback_positions)


class BatchOrchestrator:
    """Drives prompt → provider → parse → accept for each batch slot.

    Args:
        client: Generation client wrapping the provider.
        rng: Randomness for surname hints, seeds and nonces. Seed it to
            reproduce exact prompts and fallbacks.
        authenticated_count: Names per batch for signed-in callers.
        anonymous_count: Names per batch for anonymous callers.
    """

    def __init__(
        self,
        client: GenerationClient,
        rng: random.Random | None = None,
        authenticated_count: int = AUTHENTICATED_COUNT,
        anonymous_count: int = ANONYMOUS_COUNT,
    ) -> None:
        self.client = client
        self.rng = rng or random.Random()
        self.authenticated_count = authenticated_count
        self.anonymous_count = anonymous_count

    def target_count(self, authenticated: bool) -> int:
        return self.authenticated_count if authenticated else self.anonymous_count

    def generate(
        self,
        request: GenerationRequest,
        authenticated: bool,
        cancel_event: threading.Event | None = None,
    ) -> GeneratedBatch:
        """Generate a full batch for `request`.

        Anonymous callers get the smaller batch and never have their
        personality traits or name preferences sent to the provider.
        If `cancel_event` is set mid-batch, no further slots are started and
        only the names accepted so far are returned.
        """
        total = self.target_count(authenticated)
        batch = GeneratedBatch()
        accepted: set[str] = set()

        for i in range(total):
            if cancel_event is not None and cancel_event.is_set():
                batch.cancelled = True
                break

            prompt = build_prompt(
                request,
                position=i + 1,
                total=total,
                existing=[r.chinese for r in batch.names],
                rng=self.rng,
                personalize=authenticated,
            )

            record: NameRecord | None = None
            fallback_surname = prompt.surname
            try:
                raw = self.client.generate(prompt.text, request.plan_type)
            except ProviderError as e:
                logger.warning(f"[naming] name {i + 1}/{total} provider failed: {e}")
                fallback_surname = SURNAME_LIST[i % len(SURNAME_LIST)]
            else:
                batch.usage.add(self.client.last_usage)
                result = decode_name_record(raw, request.plan_type)
                if not result.ok:
                    logger.warning(
                        f"[naming] name {i + 1}/{total} unusable output: {result.error}"
                    )
                elif result.record.chinese in accepted:
                    logger.info(
                        f"[naming] name {i + 1}/{total} duplicate "
                        f"{result.record.chinese}, using fallback"
                    )
                else:
                    record = result.record

            if cancel_event is not None and cancel_event.is_set():
                batch.cancelled = True
                break

            if record is None:
                record = self._unique_fallback(
                    i, fallback_surname, request, accepted
                )
                batch.fallback_positions.append(i)

            accepted.add(record.chinese)
            batch.names.append(record)

        logger.info(
            f"[naming] batch done: {len(batch.names)}/{total} names, "
            f"{len(batch.fallback_positions)} fallback, "
            f"{batch.usage.input_tokens}+{batch.usage.output_tokens} tokens"
        )
        return batch

    def _unique_fallback(
        self,
        index: int,
        surname: str,
        request: GenerationRequest,
        accepted: set[str],
    ) -> NameRecord:
        """Fallback for slot `index` that does not collide with `accepted`.

        Tries the slot's own template first, then the following templates,
        then the same walk under each later surname in SURNAME_LIST.
        """
        templates = len(given_names_for(request.gender))
        start = SURNAME_LIST.index(surname) if surname in SURNAME_LIST else 0
        surnames = [surname] + [
            SURNAME_LIST[(start + k) % len(SURNAME_LIST)]
            for k in range(1, len(SURNAME_LIST))
        ]
        first = None
        for candidate_surname in surnames:
            for offset in range(templates):
                record = synthesize_fallback(
                    index + offset, candidate_surname, request.gender, request.plan_type
                )
                if record.chinese not in accepted:
                    return record
                first = first or record
        return first
