"""Request-level naming workflow.

Order of work for one request:
1. Resolve the continuation batch (authenticated callers only). An unknown
   batch is a client error raised before anything is charged or generated.
2. Admit through the quota gate (free daily use or credit deduction).
3. Generate the batch.
4. Persist for authenticated callers. Storage failures are logged and never
   affect the returned names.
"""

import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime

from .billing import QuotaGate
from .config import MingziConfig
from .core.llm import create_generation_client
from .core.providers import TokenUsage
from .core.models import (
    BatchSummary,
    Caller,
    GenerationBatch,
    GenerationRequest,
    GenerationResponse,
    NameRecord,
)
from .errors import BatchNotFound, PersistenceError
from .naming import BatchOrchestrator
from .storage import NamingDB, open_naming_db

logger = logging.getLogger(__name__)


@dataclass
class _Persisted:
    batch_id: str | None = None
    generation_round: int = 1
    batch: GenerationBatch | None = None


class NamingService:
    """Runs validated generation requests end to end.

    Args:
        db: Naming database.
        orchestrator: Batch orchestrator wrapping the generation client.
        gate: Quota gate; defaults to one over `db` with default limits.
    """

    def __init__(
        self,
        db: NamingDB,
        orchestrator: BatchOrchestrator,
        gate: QuotaGate | None = None,
    ) -> None:
        self.db = db
        self.orchestrator = orchestrator
        self.gate = gate or QuotaGate(db)

    def generate(
        self,
        request: GenerationRequest,
        caller: Caller,
        cancel_event: threading.Event | None = None,
    ) -> GenerationResponse:
        """Generate names for `request` on behalf of `caller`.

        Raises:
            BatchNotFound: Continuation of a batch the caller does not own.
            QuotaExceeded: Anonymous daily limit reached.
            InsufficientCredits: Balance below the plan cost.
            QuotaUnavailable: Quota state could not be read.
        """
        existing = self._resolve_continuation(request, caller)
        admission = self.gate.admit(caller, request.plan_type)

        generated = self.orchestrator.generate(
            request, authenticated=caller.authenticated, cancel_event=cancel_event
        )
        names = generated.names

        persisted = _Persisted()
        if caller.authenticated:
            persisted = self._persist(request, caller, names, existing, generated.usage)

        is_continuation = existing is not None
        if is_continuation:
            message = (
                f"Generated {len(names)} more names for your batch "
                f"(Round {persisted.generation_round})!"
            )
        else:
            message = f"Generated {len(names)} unique Chinese names successfully!"

        return GenerationResponse(
            names=names,
            total=len(names),
            plan_type=request.plan_type.value,
            credits_used=admission.credits_charged,
            batch_id=persisted.batch_id,
            generation_round=persisted.generation_round,
            is_continuation=is_continuation,
            batch=BatchSummary.from_batch(persisted.batch) if persisted.batch else None,
            message=message,
        )

    def _resolve_continuation(
        self, request: GenerationRequest, caller: Caller
    ) -> GenerationBatch | None:
        if not (caller.authenticated and request.continue_batch and request.batch_id):
            return None
        batch = self.db.get_batch(request.batch_id, caller.user_id)
        if batch is None:
            raise BatchNotFound("Invalid batch ID or batch not found")
        return batch

    def _persist(
        self,
        request: GenerationRequest,
        caller: Caller,
        names: list[NameRecord],
        existing: GenerationBatch | None,
        usage: TokenUsage,
    ) -> _Persisted:
        plan = request.plan_type
        result = _Persisted()
        round_resolved = True

        if existing is not None:
            result.batch_id = existing.id
            result.batch = existing
            try:
                result.generation_round = self.db.next_generation_round(existing.id)
            except PersistenceError as e:
                logger.error("Failed to resolve round for batch %s: %s", existing.id, e)
                round_resolved = False
            else:
                try:
                    result.batch = self.db.add_to_batch(
                        existing.id, len(names), plan.credits
                    )
                except PersistenceError as e:
                    logger.error("Failed to update batch %s: %s", existing.id, e)
        else:
            client = self.orchestrator.client
            try:
                result.batch = self.db.create_batch(
                    user_id=caller.user_id,
                    english_name=request.english_name,
                    gender=request.gender.value,
                    plan_type=plan.value,
                    credits_used=plan.credits,
                    names_count=len(names),
                    birth_year=request.birth_year,
                    personality_traits=request.personality_traits,
                    name_preferences=request.name_preferences,
                    metadata={
                        "generation_timestamp": datetime.now().isoformat(),
                        "ai_model": client.model_label,
                        "temperature": client.sampling_for(plan).temperature,
                        "input_tokens": usage.input_tokens,
                        "output_tokens": usage.output_tokens,
                    },
                )
                result.batch_id = result.batch.id
            except PersistenceError as e:
                logger.error("Failed to create batch for %s: %s", caller.user_id, e)

        if result.batch_id and round_resolved:
            try:
                self.db.save_generated_names(result.batch_id, names, result.generation_round)
            except PersistenceError as e:
                logger.error("Failed to save generated names: %s", e)

        try:
            self.db.log_generation(
                user_id=caller.user_id,
                plan_type=plan.value,
                credits_used=plan.credits,
                names_generated=len(names),
                english_name=request.english_name,
                gender=request.gender.value,
                birth_year=request.birth_year,
                has_personality_traits=bool(request.personality_traits),
                has_name_preferences=bool(request.name_preferences),
                metadata={
                    "batch_id": result.batch_id,
                    "generation_round": result.generation_round,
                    "is_continuation": existing is not None,
                    "input_tokens": usage.input_tokens,
                    "output_tokens": usage.output_tokens,
                },
            )
        except PersistenceError as e:
            logger.error("Failed to write generation log: %s", e)

        return result


def create_naming_service(
    config: MingziConfig,
    rng: random.Random | None = None,
    db: NamingDB | None = None,
) -> NamingService:
    """Wire a NamingService from configuration, reusing `db` when given."""
    if db is None:
        db = open_naming_db(config.db_path_resolved)
    orchestrator = BatchOrchestrator(
        create_generation_client(config),
        rng=rng,
        authenticated_count=config.quota.authenticated_count,
        anonymous_count=config.quota.anonymous_count,
    )
    return NamingService(db, orchestrator, QuotaGate(db, config.quota))
