"""Candidate policy retrieval with fail-open fallback to the full corpus"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from delivery_shield.domain.models import RefundPolicy
from delivery_shield.infrastructure.observability.metrics import retrieval_fallback_counter

logger = logging.getLogger(__name__)


class PolicySource(Protocol):
    """Queryable policy corpus (PolicyRepository in production)"""

    def search(self, query_vector: Sequence[float], limit: int = 5) -> List[RefundPolicy]: ...

    def list_all(self, limit: int = 10) -> List[RefundPolicy]: ...


@dataclass
class RetrievalOutcome:
    """Candidate policies plus whether the fallback recovery step ran"""

    policies: List[RefundPolicy] = field(default_factory=list)
    fell_back: bool = False
    error: Optional[str] = None


class PolicyRetriever:
    def __init__(self, source: PolicySource):
        self.source = source

    def retrieve(self, query_vector: Sequence[float], limit: int = 5) -> RetrievalOutcome:
        """
        Similarity search, falling back to the first `limit` policies of the
        corpus on any search failure. A failing fallback propagates.
        """
        try:
            return RetrievalOutcome(policies=self.source.search(query_vector, limit))
        except Exception as e:
            retrieval_fallback_counter.inc()
            logger.warning(
                "Policy search failed, falling back to full corpus",
                extra={"error": str(e), "limit": limit},
            )
            return RetrievalOutcome(
                policies=self.source.list_all(limit),
                fell_back=True,
                error=str(e),
            )
