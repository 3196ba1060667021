"""Tests for admission control (mingzi/billing/quota.py)."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from mingzi.billing import QuotaGate, resolve_client_ip
from mingzi.config import QuotaConfig
from mingzi.core.models import Caller, PlanType
from mingzi.errors import (
    InsufficientCredits,
    PersistenceError,
    QuotaExceeded,
    QuotaUnavailable,
)

ANON = Caller(client_ip="9.9.9.9")
USER = Caller(user_id="u1", email="u1@example.com")


class TestResolveClientIp:
    def test_first_forwarded_hop(self):
        headers = {"X-Forwarded-For": "1.1.1.1, 10.0.0.1"}
        assert resolve_client_ip(headers) == "1.1.1.1"

    def test_real_ip(self):
        assert resolve_client_ip({"x-real-ip": "2.2.2.2"}) == "2.2.2.2"

    def test_default(self):
        assert resolve_client_ip({}) == "127.0.0.1"


class TestAnonymous:
    """Daily free usage per network origin."""

    def test_first_generation_allowed(self, db):
        admission = QuotaGate(db).admit(ANON, PlanType.STANDARD)
        assert admission.credits_charged == 0

    def test_second_generation_same_day_denied(self, db):
        gate = QuotaGate(db, today=lambda: date(2026, 3, 1))
        gate.admit(ANON, PlanType.STANDARD)
        with pytest.raises(QuotaExceeded) as excinfo:
            gate.admit(ANON, PlanType.STANDARD)
        assert excinfo.value.status_code == 429
        assert "3 free names per day" in excinfo.value.message

    def test_next_day_allowed_again(self, db):
        day = {"value": date(2026, 3, 1)}
        gate = QuotaGate(db, today=lambda: day["value"])
        gate.admit(ANON, PlanType.STANDARD)
        day["value"] = date(2026, 3, 2)
        gate.admit(ANON, PlanType.STANDARD)

    def test_configurable_limit(self, db):
        gate = QuotaGate(db, QuotaConfig(anonymous_daily_generations=2))
        gate.admit(ANON, PlanType.STANDARD)
        gate.admit(ANON, PlanType.STANDARD)
        with pytest.raises(QuotaExceeded):
            gate.admit(ANON, PlanType.STANDARD)

    def test_storage_failure_fails_closed(self):
        db = MagicMock()
        db.consume_ip_quota.side_effect = PersistenceError("disk gone")
        with pytest.raises(QuotaUnavailable) as excinfo:
            QuotaGate(db).admit(ANON, PlanType.STANDARD)
        assert excinfo.value.status_code == 500


class TestAuthenticated:
    """Credits are charged up front."""

    def test_charges_plan_cost(self, db):
        db.grant_credits("u1", 5, description="purchase")
        admission = QuotaGate(db).admit(USER, PlanType.PREMIUM)
        assert admission.credits_charged == 4
        assert admission.balance_after == 1

    def test_insufficient_balance(self, db):
        db.grant_credits("u1", 3, description="purchase")
        with pytest.raises(InsufficientCredits) as excinfo:
            QuotaGate(db).admit(USER, PlanType.PREMIUM)
        assert excinfo.value.status_code == 403
        assert db.get_customer("u1").credits == 3

    def test_unknown_customer(self, db):
        with pytest.raises(InsufficientCredits):
            QuotaGate(db).admit(USER, PlanType.STANDARD)

    def test_authenticated_skips_ip_counter(self, db):
        db.grant_credits("u1", 2, description="purchase")
        QuotaGate(db).admit(USER, PlanType.STANDARD)
        assert db.get_ip_usage(USER.client_ip, date.today().isoformat()) == 0

    def test_deduction_failure_fails_closed(self):
        db = MagicMock()
        db.deduct_credits.side_effect = PersistenceError("locked")
        with pytest.raises(QuotaUnavailable):
            QuotaGate(db).admit(USER, PlanType.STANDARD)
