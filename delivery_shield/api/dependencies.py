"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from delivery_shield.config import settings
from delivery_shield.infrastructure.clients.reasoning import ReasoningClient
from delivery_shield.infrastructure.clients.transfer import TransferClient
from delivery_shield.infrastructure.database.repositories import PolicyRepository
from delivery_shield.infrastructure.database.session import get_db
from delivery_shield.infrastructure.embeddings import HashingEmbedder
from delivery_shield.services.ledger import InMemoryLedger
from delivery_shield.services.policy_retriever import PolicyRetriever
from delivery_shield.services.refund_evaluator import RefundEvaluator
from delivery_shield.services.settlement import SettlementResolver, UserLocks


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache
def get_ledger() -> InMemoryLedger:
    """Process-wide ledger, seeded with the demo account when enabled"""
    ledger = InMemoryLedger()
    if settings.seed_demo_ledger:
        ledger.open_account(
            settings.demo_user_id,
            settings.demo_wallet_address,
            settings.demo_credit_balance,
        )
    return ledger


@lru_cache
def get_embedder() -> HashingEmbedder:
    return HashingEmbedder()


def get_transfer_client() -> TransferClient:
    """Provide transfer gateway client instance"""
    return TransferClient()


def get_reasoning_client() -> ReasoningClient:
    """Provide reasoning provider client instance"""
    return ReasoningClient()


def get_refund_evaluator(
    db: Session = Depends(get_db),
    embedder: HashingEmbedder = Depends(get_embedder),
    reasoning_client: ReasoningClient = Depends(get_reasoning_client),
) -> RefundEvaluator:
    return RefundEvaluator(
        retriever=PolicyRetriever(PolicyRepository(db)),
        embedder=embedder,
        reasoning_provider=reasoning_client,
    )


# Shared across requests so settlements for one user never interleave
_settlement_locks = UserLocks()


def get_settlement_resolver(
    ledger: InMemoryLedger = Depends(get_ledger),
    transfer_client: TransferClient = Depends(get_transfer_client),
) -> SettlementResolver:
    return SettlementResolver(ledger=ledger, gateway=transfer_client, user_locks=_settlement_locks)
