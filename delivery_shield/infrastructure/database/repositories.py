"""Data access layer for the refund policy corpus"""

import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from delivery_shield.config import settings
from delivery_shield.domain.exceptions import RetrievalFailure
from delivery_shield.domain.models import ComparisonOperator, MetricType, PolicyCondition, RefundPolicy
from delivery_shield.infrastructure.database.models import RefundPolicyRecord
from delivery_shield.infrastructure.embeddings import HashingEmbedder, cosine_similarity

logger = logging.getLogger(__name__)

SAMPLE_POLICIES = [
    RefundPolicy(
        id="policy-1",
        title="Late Delivery Refund",
        description="Full refund for deliveries delayed by more than 30 minutes",
        conditions=[PolicyCondition(MetricType.DELIVERY_LATENCY, 1_800_000, ComparisonOperator.GREATER_THAN)],
        refund_percentage=100,
    ),
    RefundPolicy(
        id="policy-2",
        title="Cold Food Partial Refund",
        description="Partial refund for cold food delivery",
        conditions=[PolicyCondition(MetricType.TEMPERATURE, 50, ComparisonOperator.LESS_THAN)],
        refund_percentage=50,
    ),
    RefundPolicy(
        id="policy-3",
        title="System Error Refund",
        description="Partial refund for orders with system errors",
        conditions=[PolicyCondition(MetricType.ERROR_COUNT, 2, ComparisonOperator.GREATER_THAN)],
        refund_percentage=30,
    ),
]


def _parse_enum(enum_cls, raw: Any):
    """Known values become enum members; anything else stays a raw string"""
    try:
        return enum_cls(raw)
    except ValueError:
        return str(raw)


def _parse_threshold(raw: Any) -> float:
    """Unusable thresholds become NaN, which no comparison satisfies"""
    if not isinstance(raw, bool):
        try:
            return float(raw)
        except (TypeError, ValueError):
            pass
    logger.warning(f"Unusable policy threshold {raw!r}, condition will never match")
    return float("nan")


def condition_from_document(doc: Dict[str, Any]) -> PolicyCondition:
    return PolicyCondition(
        metric_type=_parse_enum(MetricType, doc.get("type")),
        threshold=_parse_threshold(doc.get("threshold", 0)),
        operator=_parse_enum(ComparisonOperator, doc.get("operator")),
    )


def condition_to_document(condition: PolicyCondition) -> Dict[str, Any]:
    return {
        "type": getattr(condition.metric_type, "value", condition.metric_type),
        "threshold": condition.threshold,
        "operator": getattr(condition.operator, "value", condition.operator),
    }


def policy_from_record(record: RefundPolicyRecord) -> RefundPolicy:
    return RefundPolicy(
        id=record.id,
        title=record.title,
        description=record.description,
        conditions=[condition_from_document(doc) for doc in (record.conditions or [])],
        refund_percentage=record.refund_percentage,
        embedding=record.embedding,
    )


class PolicyRepository:
    """Repository for refund policies, with embedding similarity search"""

    def __init__(self, db: Session, num_candidates: int | None = None):
        self.db = db
        self.num_candidates = num_candidates or settings.policy_search_candidates

    def search(self, query_vector: Sequence[float], limit: int = 5) -> List[RefundPolicy]:
        """
        Rank embedded policies by cosine similarity to the query vector.

        Raises:
            RetrievalFailure: No embedded policies (index missing), dimension
                mismatch, or a database error
        """
        try:
            records = (
                self.db.query(RefundPolicyRecord)
                .filter(RefundPolicyRecord.embedding.is_not(None))
                .order_by(RefundPolicyRecord.pk)
                .limit(self.num_candidates)
                .all()
            )
        except SQLAlchemyError as e:
            raise RetrievalFailure(f"Policy search query failed: {e}") from e

        records = [r for r in records if r.embedding]
        if not records:
            raise RetrievalFailure("Vector index missing: no embedded policies")

        try:
            scored = [(cosine_similarity(query_vector, r.embedding), r) for r in records]
        except (ValueError, TypeError) as e:
            raise RetrievalFailure(f"Policy search failed: {e}") from e

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [policy_from_record(record) for _, record in scored[:limit]]

    def list_all(self, limit: int = 10) -> List[RefundPolicy]:
        """Fetch policies in insertion order"""
        records = (
            self.db.query(RefundPolicyRecord)
            .order_by(RefundPolicyRecord.pk)
            .limit(limit)
            .all()
        )
        return [policy_from_record(record) for record in records]

    def count(self) -> int:
        return self.db.query(RefundPolicyRecord).count()

    def insert_policy(self, policy: RefundPolicy) -> RefundPolicyRecord:
        """Persist a policy document"""
        record = RefundPolicyRecord(
            id=policy.id,
            title=policy.title,
            description=policy.description,
            conditions=[condition_to_document(c) for c in policy.conditions],
            refund_percentage=policy.refund_percentage,
            embedding=policy.embedding,
        )
        self.db.add(record)
        self.db.flush()
        return record


def seed_sample_policies(db: Session, embedder: HashingEmbedder) -> int:
    """Insert the default policies when the corpus is empty; returns rows inserted"""
    repo = PolicyRepository(db)
    if repo.count() > 0:
        return 0

    for policy in SAMPLE_POLICIES:
        embedded = RefundPolicy(
            id=policy.id,
            title=policy.title,
            description=policy.description,
            conditions=list(policy.conditions),
            refund_percentage=policy.refund_percentage,
            embedding=embedder.embed(f"{policy.title} {policy.description}"),
        )
        repo.insert_policy(embedded)

    db.commit()
    logger.info("Sample policies inserted", extra={"count": len(SAMPLE_POLICIES)})
    return len(SAMPLE_POLICIES)
