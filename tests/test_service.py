"""End-to-end tests for the naming workflow (mingzi/service.py).

Real SQLite store and quota gate, scripted provider.
"""

import json
from unittest.mock import Mock

import pytest

from mingzi.billing import QuotaGate
from mingzi.core.models import Caller
from mingzi.errors import (
    BatchNotFound,
    InsufficientCredits,
    PersistenceError,
    QuotaExceeded,
)
from mingzi.service import NamingService

from .helpers import make_orchestrator, make_request, name_json

ANON = Caller(client_ip="203.0.113.5")
USER = Caller(user_id="u1", email="u1@example.com")


def _service(db, script=None):
    orchestrator, provider = make_orchestrator(script)
    return NamingService(db, orchestrator, QuotaGate(db)), provider


class TestAnonymous:
    def test_standard_request_without_birth_year(self, db):
        service, provider = _service(db, [name_json("李心"), name_json("王悦")])
        response = service.generate(make_request(planType="1"), ANON)

        assert response.total == 3
        assert len({n.chinese for n in response.names}) == 3
        assert response.credits_used == 0
        assert response.batch_id is None
        assert response.batch is None
        assert response.is_continuation is False
        assert response.message == "Generated 3 unique Chinese names successfully!"
        assert len(provider.calls) == 3
        assert db.run_select("SELECT COUNT(*) AS n FROM generation_batches")[0]["n"] == 0

    def test_second_request_rate_limited(self, db):
        service, provider = _service(db)
        service.generate(make_request(), ANON)
        calls_before = len(provider.calls)
        with pytest.raises(QuotaExceeded):
            service.generate(make_request(), ANON)
        assert len(provider.calls) == calls_before

    def test_continuation_flag_ignored(self, db):
        service, _ = _service(db)
        response = service.generate(
            make_request(continueBatch=True, batchId="whatever"), ANON
        )
        assert response.is_continuation is False
        assert response.total == 3


class TestAuthenticated:
    def test_new_batch_persisted(self, db):
        db.grant_credits("u1", 10, description="purchase")
        service, _ = _service(db, [name_json("李心")])
        response = service.generate(make_request(planType="4"), USER)

        assert response.total == 6
        assert response.credits_used == 4
        assert response.plan_type == "4"
        assert response.generation_round == 1
        assert response.batch_id is not None
        assert response.batch.total_names_generated == 6
        assert all(n.style == "Premium" for n in response.names)
        assert db.get_customer("u1").credits == 6

        stored = db.get_batch(response.batch_id, "u1")
        assert stored.metadata["ai_model"] == "scripted/scripted-model"
        assert stored.metadata["temperature"] == 0.9
        assert [r.chinese_name for r in db.get_batch_names(response.batch_id)] == [
            n.chinese for n in response.names
        ]
        logs = db.run_select("SELECT * FROM name_generation_logs")
        assert len(logs) == 1
        assert logs[0]["names_generated"] == 6

    def test_token_usage_recorded(self, db):
        db.grant_credits("u1", 10, description="purchase")
        service, _ = _service(db, [name_json("李心"), name_json("王悦")])
        response = service.generate(make_request(), USER)

        stored = db.get_batch(response.batch_id, "u1")
        assert stored.metadata["input_tokens"] == 200
        assert stored.metadata["output_tokens"] == 100
        log = json.loads(db.run_select("SELECT * FROM name_generation_logs")[0]["metadata_json"])
        assert log["input_tokens"] == 200
        assert log["output_tokens"] == 100

    def test_continuation_appends_round(self, db):
        db.grant_credits("u1", 10, description="purchase")
        service, _ = _service(db)
        first = service.generate(make_request(), USER)
        second = service.generate(
            make_request(continueBatch=True, batchId=first.batch_id), USER
        )

        assert second.batch_id == first.batch_id
        assert second.generation_round == 2
        assert second.is_continuation is True
        assert second.message == "Generated 6 more names for your batch (Round 2)!"
        assert second.batch.total_names_generated == 12
        assert second.batch.total_credits_used == 2
        assert len(db.get_batch_names(first.batch_id)) == 12

    def test_round_lookup_failure_does_not_mislabel_names(self, db, monkeypatch):
        db.grant_credits("u1", 10, description="purchase")
        service, _ = _service(db)
        first = service.generate(make_request(), USER)
        monkeypatch.setattr(
            db, "next_generation_round", Mock(side_effect=PersistenceError("locked"))
        )
        second = service.generate(
            make_request(continueBatch=True, batchId=first.batch_id), USER
        )

        assert second.total == 6
        assert second.batch_id == first.batch_id
        stored = db.get_batch_names(first.batch_id)
        assert len(stored) == 6
        assert {r.generation_round for r in stored} == {1}
        assert db.get_batch(first.batch_id, "u1").names_count == 6

    def test_premium_continuation_with_unknown_batch(self, db):
        db.grant_credits("u1", 10, description="purchase")
        service, provider = _service(db)
        request = make_request(planType="4", continueBatch=True, batchId="no-such-batch")

        with pytest.raises(BatchNotFound) as excinfo:
            service.generate(request, USER)

        assert excinfo.value.status_code == 400
        assert provider.calls == []
        assert db.get_customer("u1").credits == 10
        assert db.run_select("SELECT COUNT(*) AS n FROM generation_batches")[0]["n"] == 0
        assert db.run_select("SELECT COUNT(*) AS n FROM name_generation_logs")[0]["n"] == 0

    def test_other_users_batch_not_found(self, db):
        db.grant_credits("u1", 10, description="purchase")
        db.grant_credits("u2", 10, description="purchase")
        service, _ = _service(db)
        theirs = service.generate(make_request(), Caller(user_id="u2"))
        with pytest.raises(BatchNotFound):
            service.generate(
                make_request(continueBatch=True, batchId=theirs.batch_id), USER
            )

    def test_insufficient_credits_before_generation(self, db):
        service, provider = _service(db)
        with pytest.raises(InsufficientCredits):
            service.generate(make_request(planType="4"), USER)
        assert provider.calls == []

    def test_persistence_failure_still_returns_names(self, db, monkeypatch):
        db.grant_credits("u1", 10, description="purchase")
        monkeypatch.setattr(
            db, "create_batch", Mock(side_effect=PersistenceError("disk full"))
        )
        monkeypatch.setattr(
            db, "log_generation", Mock(side_effect=PersistenceError("disk full"))
        )
        service, _ = _service(db)
        response = service.generate(make_request(), USER)

        assert response.total == 6
        assert response.batch_id is None
        assert response.batch is None
        assert response.credits_used == 1

    def test_response_serializes_camel_case(self, db):
        db.grant_credits("u1", 1, description="purchase")
        service, _ = _service(db)
        body = service.generate(make_request(), USER).model_dump(by_alias=True)
        assert {
            "names",
            "total",
            "planType",
            "creditsUsed",
            "batchId",
            "generationRound",
            "isContinuation",
            "message",
        } <= set(body)
        assert "culturalNotes" in body["names"][0]
