"""Refund evaluation - metrics, policy retrieval, matching and explanation"""

import logging
import time
from decimal import Decimal
from typing import List, Protocol, Sequence

from delivery_shield.config import settings
from delivery_shield.domain.delivery_metrics import extract_metrics
from delivery_shield.domain.exceptions import ValidationError
from delivery_shield.domain.models import DeliveryOrder, RefundDecision, RefundPolicy, SystemEvent
from delivery_shield.domain.policy_matching import match_policies
from delivery_shield.domain.reasoning import build_query_text, templated_reasoning
from delivery_shield.infrastructure.observability.logging import log_decision
from delivery_shield.infrastructure.observability.metrics import reasoning_fallback_counter, record_decision
from delivery_shield.services.policy_retriever import PolicyRetriever
from delivery_shield.utils.money import percentage_of

logger = logging.getLogger(__name__)

MATCHED_CONFIDENCE = 0.85
UNMATCHED_CONFIDENCE = 0.15


class Embedder(Protocol):
    def embed(self, text: str) -> List[float]: ...


class ReasoningProvider(Protocol):
    async def explain(
        self,
        order: DeliveryOrder,
        matched_policies: Sequence[RefundPolicy],
        events: Sequence[SystemEvent] = (),
    ) -> str: ...


class RefundEvaluator:
    """
    Turns an order's event history into a refund decision.

    The numeric outcome (should_refund, refund_percentage) depends only on
    the events and the policy corpus; the reasoning text is best-effort and
    replaced by a template whenever the provider fails.
    """

    def __init__(
        self,
        retriever: PolicyRetriever,
        embedder: Embedder,
        reasoning_provider: ReasoningProvider,
        policy_limit: int | None = None,
    ):
        self.retriever = retriever
        self.embedder = embedder
        self.reasoning_provider = reasoning_provider
        self.policy_limit = policy_limit or settings.policy_search_limit

    async def evaluate(
        self,
        order_id: str,
        events: Sequence[SystemEvent],
        order: DeliveryOrder,
    ) -> RefundDecision:
        """
        Flow:
        1. Reject empty event histories
        2. Extract delivery metrics
        3. Retrieve candidate policies (full-corpus fallback on search failure)
        4. Match policies and take the maximum refund percentage
        5. Explain the decision (templated fallback on provider failure)

        Raises:
            ValidationError: Empty event history
        """
        if not events:
            raise ValidationError("At least one system event is required")

        start_time = time.time()

        metrics = extract_metrics(events)
        query_vector = self.embedder.embed(build_query_text(order_id, events))
        retrieval = self.retriever.retrieve(query_vector, self.policy_limit)
        match = match_policies(metrics, retrieval.policies)

        reasoning, reasoning_fallback = await self._explain(order, match.matched_policies, match.refund_percentage, events)

        decision = RefundDecision(
            should_refund=bool(match.matched_policies),
            refund_percentage=match.refund_percentage,
            matched_policies=match.matched_policies,
            confidence=MATCHED_CONFIDENCE if match.matched_policies else UNMATCHED_CONFIDENCE,
            reasoning=reasoning,
            metrics=metrics,
            retrieval_fallback=retrieval.fell_back,
            reasoning_fallback=reasoning_fallback,
        )

        record_decision(decision.should_refund, decision.refund_percentage)
        log_decision(
            order_id,
            decision.should_refund,
            decision.refund_percentage,
            [p.id for p in decision.matched_policies],
            decision.retrieval_fallback,
            decision.reasoning_fallback,
            (time.time() - start_time) * 1000,
        )
        return decision

    async def _explain(
        self,
        order: DeliveryOrder,
        matched_policies: List[RefundPolicy],
        refund_percentage: float,
        events: Sequence[SystemEvent],
    ) -> tuple[str, bool]:
        try:
            return await self.reasoning_provider.explain(order, matched_policies, events), False
        except Exception as e:
            reasoning_fallback_counter.inc()
            logger.warning("Reasoning generation failed, using template", extra={"order_id": order.order_id, "error": str(e)})
            return templated_reasoning(refund_percentage, matched_policies), True


def refund_amount(order: DeliveryOrder, decision: RefundDecision) -> Decimal:
    """Payable refund: order total times the decided percentage, rounded once to cents"""
    if not decision.should_refund:
        return Decimal("0.00")
    return percentage_of(order.total_amount, decision.refund_percentage)
