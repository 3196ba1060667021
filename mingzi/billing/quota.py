"""Admission control: free daily quota for anonymous callers, credits for users.

Anonymous callers are keyed by network origin and may run a fixed number of
generations per calendar day. Authenticated callers pay the plan's credit
cost up front; the deduction and its ledger row are one transaction.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Mapping

from ..config import QuotaConfig
from ..core.models import Caller, PlanType
from ..errors import InsufficientCredits, PersistenceError, QuotaExceeded, QuotaUnavailable
from ..storage import NamingDB

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_IP = "127.0.0.1"


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """First X-Forwarded-For hop, else X-Real-IP, else loopback."""
    lowered = {k.lower(): v for k, v in headers.items()}
    forwarded = lowered.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = lowered.get("x-real-ip", "").strip()
    return real_ip or DEFAULT_CLIENT_IP


@dataclass(frozen=True)
class Admission:
    """Outcome of a successful admission."""

    credits_charged: int = 0
    balance_after: int | None = None


class QuotaGate:
    """Allow or deny a generation before any provider work starts.

    Args:
        db: Naming database holding usage counters and balances.
        config: Free-usage limits.
        today: Clock for the anonymous daily window (injectable for tests).
    """

    def __init__(
        self,
        db: NamingDB,
        config: QuotaConfig | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.db = db
        self.config = config or QuotaConfig()
        self._today = today

    def admit(self, caller: Caller, plan: PlanType) -> Admission:
        """Charge the caller for one generation.

        Raises:
            QuotaExceeded: Anonymous daily limit reached for this origin.
            InsufficientCredits: Authenticated balance below the plan cost.
            QuotaUnavailable: Usage or balance could not be read.
        """
        if caller.authenticated:
            return self._charge_credits(caller, plan)
        return self._consume_free_use(caller)

    def _consume_free_use(self, caller: Caller) -> Admission:
        try:
            allowed = self.db.consume_ip_quota(
                caller.client_ip,
                self._today().isoformat(),
                self.config.anonymous_daily_generations,
            )
        except PersistenceError as e:
            logger.error("Rate limit check failed for %s: %s", caller.client_ip, e)
            raise QuotaUnavailable("Unable to verify rate limit. Please try again.") from e
        if not allowed:
            logger.info("Free quota exhausted for %s", caller.client_ip)
            raise QuotaExceeded(
                "Free generation limit reached. You can generate "
                f"{self.config.anonymous_count} free names per day. "
                "Please sign in for unlimited access!"
            )
        return Admission()

    def _charge_credits(self, caller: Caller, plan: PlanType) -> Admission:
        try:
            balance = self.db.deduct_credits(
                caller.user_id,
                plan.credits,
                description="chinese_name_generation",
                metadata={
                    "operation": "chinese_name_generation",
                    "plan_type": plan.value,
                },
            )
        except PersistenceError as e:
            logger.error("Credit deduction failed for %s: %s", caller.user_id, e)
            raise QuotaUnavailable("Unable to verify credits. Please try again.") from e
        if balance is None:
            raise InsufficientCredits("Insufficient credits. Please purchase more credits.")
        logger.info(
            "Charged %d credits to %s (balance %d)", plan.credits, caller.user_id, balance
        )
        return Admission(credits_charged=plan.credits, balance_after=balance)
