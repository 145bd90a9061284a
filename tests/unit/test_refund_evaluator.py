"""Unit tests for refund evaluation orchestration"""

import pytest
from decimal import Decimal
from typing import List
from unittest.mock import AsyncMock
from delivery_shield.domain.exceptions import RetrievalFailure, ValidationError
from delivery_shield.domain.models import EventType, RefundPolicy, SystemEvent
from delivery_shield.infrastructure.database.models import RefundPolicyRecord
from delivery_shield.infrastructure.database.repositories import PolicyRepository
from delivery_shield.infrastructure.embeddings import HashingEmbedder
from delivery_shield.services.policy_retriever import PolicyRetriever
from delivery_shield.services.refund_evaluator import RefundEvaluator, refund_amount


class StubPolicySource:
    """In-memory policy corpus whose similarity search can be made to fail"""

    def __init__(self, policies: List[RefundPolicy], search_error: Exception | None = None):
        self.policies = policies
        self.search_error = search_error
        self.list_all_limits = []

    def search(self, query_vector, limit=5):
        if self.search_error:
            raise self.search_error
        return self.policies[:limit]

    def list_all(self, limit=10):
        self.list_all_limits.append(limit)
        return self.policies[:limit]


def _evaluator(source, reasoner, limit=5) -> RefundEvaluator:
    return RefundEvaluator(
        retriever=PolicyRetriever(source),
        embedder=HashingEmbedder(dimensions=64),
        reasoning_provider=reasoner,
        policy_limit=limit,
    )


async def test_late_delivery_gets_full_refund(sample_policies, sample_order, late_delivery_events):
    reasoner = AsyncMock()
    reasoner.explain.return_value = "Your order was over 30 minutes late."
    evaluator = _evaluator(StubPolicySource(sample_policies), reasoner)

    decision = await evaluator.evaluate("order-123", late_delivery_events, sample_order)

    assert decision.should_refund is True
    assert decision.refund_percentage == 100
    assert [p.id for p in decision.matched_policies] == ["policy-1"]
    assert decision.confidence == 0.85
    assert decision.reasoning == "Your order was over 30 minutes late."
    assert decision.metrics.delivery_latency == 2_000_000
    assert decision.retrieval_fallback is False
    assert decision.reasoning_fallback is False


async def test_no_issue_means_no_refund(sample_policies, sample_order, uneventful_events, failing_reasoner):
    evaluator = _evaluator(StubPolicySource(sample_policies), failing_reasoner)

    decision = await evaluator.evaluate("order-123", uneventful_events, sample_order)

    assert decision.should_refund is False
    assert decision.refund_percentage == 0
    assert decision.matched_policies == []
    assert decision.confidence == 0.15
    assert "does not meet the criteria" in decision.reasoning


async def test_retrieval_failure_falls_back_to_corpus(sample_policies, sample_order, late_delivery_events, failing_reasoner):
    """A failing search still yields a decision from the bounded full-corpus scan"""
    source = StubPolicySource(sample_policies, search_error=RetrievalFailure("Vector index missing"))
    evaluator = _evaluator(source, failing_reasoner, limit=5)

    decision = await evaluator.evaluate("order-123", late_delivery_events, sample_order)

    assert decision.retrieval_fallback is True
    assert decision.should_refund is True
    assert decision.refund_percentage == 100
    assert source.list_all_limits == [5]


async def test_unexpected_search_error_also_falls_back(sample_policies, sample_order, late_delivery_events, failing_reasoner):
    source = StubPolicySource(sample_policies, search_error=ConnectionError("cluster unreachable"))
    decision = await _evaluator(source, failing_reasoner).evaluate("order-123", late_delivery_events, sample_order)

    assert decision.retrieval_fallback is True
    assert decision.should_refund is True


async def test_reasoning_failure_uses_template(sample_policies, sample_order, failing_reasoner):
    """Provider failure never blocks the numeric decision"""
    events = [
        SystemEvent("order-123", 1, EventType.TEMPERATURE_VIOLATION, metadata={"temperature": 40}),
        SystemEvent("order-123", 2, EventType.ERROR_OCCURRED),
        SystemEvent("order-123", 3, EventType.ERROR_OCCURRED),
        SystemEvent("order-123", 4, EventType.ERROR_OCCURRED),
    ]
    evaluator = _evaluator(StubPolicySource(sample_policies), failing_reasoner)

    decision = await evaluator.evaluate("order-123", events, sample_order)

    assert decision.reasoning_fallback is True
    assert decision.refund_percentage == 50
    assert decision.reasoning == (
        "Based on our refund policies, your order qualifies for a 50% refund due to: "
        "Cold Food Partial Refund, System Error Refund. We apologize for the inconvenience."
    )


async def test_arbitrary_reasoning_exception_is_contained(sample_policies, sample_order, late_delivery_events):
    reasoner = AsyncMock()
    reasoner.explain.side_effect = RuntimeError("quota exceeded")

    decision = await _evaluator(StubPolicySource(sample_policies), reasoner).evaluate(
        "order-123", late_delivery_events, sample_order
    )

    assert decision.reasoning_fallback is True
    assert decision.should_refund is True


async def test_empty_events_rejected(sample_policies, sample_order, failing_reasoner):
    with pytest.raises(ValidationError):
        await _evaluator(StubPolicySource(sample_policies), failing_reasoner).evaluate("order-123", [], sample_order)


async def test_evaluation_is_idempotent(seeded_db, sample_order, late_delivery_events):
    """Same inputs, unchanged corpus -> same numeric outcome (reasoning may vary)"""
    reasoner = AsyncMock()
    reasoner.explain.side_effect = ["first wording", "second wording"]
    evaluator = RefundEvaluator(
        retriever=PolicyRetriever(PolicyRepository(seeded_db)),
        embedder=HashingEmbedder(),
        reasoning_provider=reasoner,
    )

    first = await evaluator.evaluate("order-123", late_delivery_events, sample_order)
    second = await evaluator.evaluate("order-123", late_delivery_events, sample_order)

    assert (first.should_refund, first.refund_percentage) == (second.should_refund, second.refund_percentage)
    assert [p.id for p in first.matched_policies] == [p.id for p in second.matched_policies]
    assert first.retrieval_fallback is False


async def test_candidate_count_is_bounded(sample_policies, sample_order, late_delivery_events, failing_reasoner):
    """Only the top `policy_limit` candidates are considered"""
    late_policy_last = list(reversed(sample_policies))
    evaluator = _evaluator(StubPolicySource(late_policy_last), failing_reasoner, limit=2)

    decision = await evaluator.evaluate("order-123", late_delivery_events, sample_order)

    assert decision.should_refund is False


def test_refund_amount_rounds_once(sample_order):
    class Decision:
        should_refund = True
        refund_percentage = 33.333

    sample_order.total_amount = Decimal("19.99")
    # 19.99 * 33.333 / 100 = 6.66326...
    assert refund_amount(sample_order, Decision()) == Decimal("6.66")


def test_refund_amount_zero_when_rejected(sample_order):
    class Decision:
        should_refund = False
        refund_percentage = 0

    assert refund_amount(sample_order, Decision()) == Decimal("0.00")


async def test_malformed_stored_threshold_does_not_break_evaluation(seeded_db, sample_order, late_delivery_events, failing_reasoner):
    embedder = HashingEmbedder()
    seeded_db.add(
        RefundPolicyRecord(
            id="policy-bad",
            title="Late Delivery Goodwill",
            description="Delivery delayed refund with a missing threshold",
            conditions=[{"type": "DELIVERY_LATENCY", "threshold": None, "operator": "GREATER_THAN"}],
            refund_percentage=100,
            embedding=embedder.embed("Late Delivery Goodwill Delivery delayed refund with a missing threshold"),
        )
    )
    seeded_db.flush()
    evaluator = RefundEvaluator(
        retriever=PolicyRetriever(PolicyRepository(seeded_db)),
        embedder=embedder,
        reasoning_provider=failing_reasoner,
    )

    decision = await evaluator.evaluate("order-123", late_delivery_events, sample_order)

    assert decision.should_refund is True
    assert decision.refund_percentage == 100
    assert "policy-bad" not in [p.id for p in decision.matched_policies]
