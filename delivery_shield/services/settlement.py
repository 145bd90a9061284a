"""Refund settlement - store credit, on-chain cash, or a hybrid of both"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Dict, Optional, Protocol

from delivery_shield.config import settings
from delivery_shield.domain.exceptions import SettlementFailed, ValidationError
from delivery_shield.domain.models import (
    PaymentPreference,
    SettlementMethod,
    SettlementResult,
    TransferRequest,
    TransferResult,
)
from delivery_shield.domain.validation import require_positive_amount, require_user_id, require_wallet_address
from delivery_shield.infrastructure.observability.logging import log_settlement
from delivery_shield.infrastructure.observability.metrics import settlement_counter, settlement_failure_counter
from delivery_shield.services.ledger import LedgerStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class TransferGateway(Protocol):
    async def transfer(self, request: TransferRequest) -> TransferResult: ...


class UserLocks:
    """Per-user asyncio locks, discarded once no settlement holds or awaits them"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, user_id: str):
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._pending[user_id] = self._pending.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._pending[user_id] -= 1
            if not self._pending[user_id]:
                del self._pending[user_id]
                del self._locks[user_id]


def _parse_preference(preferred_method) -> PaymentPreference:
    try:
        return PaymentPreference(preferred_method)
    except ValueError as e:
        raise ValidationError('Invalid preferred_method: must be "cash" or "credit"') from e


def _generate_order_id() -> str:
    return f"refund-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class SettlementResolver:
    """
    Pays out approved refunds.

    Decision tree:
    - credit preference: ledger += amount * bonus multiplier, no transfer
    - cash, credit == 0 or credit >= amount: transfer the full amount
    - cash, 0 < credit < amount (hybrid): transfer the remainder FIRST and
      deduct the credit only once the transfer succeeded

    A failed transfer never touches the ledger. No idempotency: each call
    issues a new transfer.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        gateway: TransferGateway,
        credit_bonus_multiplier: Decimal | None = None,
        transfer_timeout_seconds: float | None = None,
        currency: str | None = None,
        user_locks: UserLocks | None = None,
    ):
        self.ledger = ledger
        self.gateway = gateway
        self.credit_bonus_multiplier = Decimal(
            str(settings.credit_bonus_multiplier if credit_bonus_multiplier is None else credit_bonus_multiplier)
        )
        self.transfer_timeout_seconds = (
            settings.transfer_timeout_seconds if transfer_timeout_seconds is None else transfer_timeout_seconds
        )
        self.currency = settings.stablecoin_currency if currency is None else currency
        self._user_locks = user_locks if user_locks is not None else UserLocks()

    async def settle(
        self,
        user_id: str,
        refund_amount: Decimal,
        wallet_address: str,
        preferred_method: PaymentPreference | str,
        order_id: Optional[str] = None,
    ) -> SettlementResult:
        """
        Settle an approved refund for a user.

        Raises:
            ValidationError: Malformed input (checked before any side effect)
            SettlementFailed: Transfer gateway reported failure or timed out
        """
        require_user_id(user_id)
        amount = require_positive_amount(refund_amount, "refund_amount")
        require_wallet_address(wallet_address)
        preference = _parse_preference(preferred_method)

        logger.info(
            "Processing refund",
            extra={"user_id": user_id, "refund_amount": str(amount), "preferred_method": preference.value},
        )

        async with self._user_locks.hold(user_id):
            if preference == PaymentPreference.CREDIT:
                result = self._settle_credit(user_id, amount)
            else:
                current_credit = self.ledger.get_balance(user_id)
                transfer_order_id = order_id or _generate_order_id()
                if ZERO < current_credit < amount:
                    result = await self._settle_hybrid(user_id, amount, current_credit, wallet_address, transfer_order_id)
                else:
                    # credit >= amount is not auto-applied; cash is paid in full
                    result = await self._settle_cash(user_id, amount, wallet_address, transfer_order_id)

        settlement_counter.labels(method=result.method.value).inc()
        log_settlement(
            user_id,
            result.method.value,
            result.credit_used,
            result.cash_paid,
            result.new_credit_balance,
            result.transaction_ref,
        )
        return result

    def _settle_credit(self, user_id: str, amount: Decimal) -> SettlementResult:
        bonus_amount = amount * self.credit_bonus_multiplier
        new_balance = self.ledger.add_credit(user_id, bonus_amount)

        logger.info(
            "Credit refund processed with bonus",
            extra={"user_id": user_id, "base_amount": str(amount), "bonus_amount": str(bonus_amount)},
        )
        return SettlementResult(
            method=SettlementMethod.CREDIT,
            credit_used=ZERO,
            cash_paid=ZERO,
            new_credit_balance=new_balance,
        )

    async def _settle_hybrid(
        self,
        user_id: str,
        amount: Decimal,
        current_credit: Decimal,
        wallet_address: str,
        order_id: str,
    ) -> SettlementResult:
        remainder = amount - current_credit

        # Transfer first; the deduction is gated on its success
        transfer = await self._transfer(wallet_address, remainder, order_id)
        if not transfer.success:
            settlement_failure_counter.labels(method=SettlementMethod.HYBRID.value).inc()
            logger.error(
                "Hybrid payment transfer failed, credit preserved",
                extra={"user_id": user_id, "error": transfer.error},
            )
            raise SettlementFailed(
                "On-chain transfer failed. Your credit balance is safe.",
                ledger_untouched=True,
                error=transfer.error,
            )

        new_balance = self.ledger.deduct_credit(user_id, current_credit)
        return SettlementResult(
            method=SettlementMethod.HYBRID,
            credit_used=current_credit,
            cash_paid=remainder,
            new_credit_balance=new_balance,
            transaction_ref=transfer.transaction_ref,
        )

    async def _settle_cash(self, user_id: str, amount: Decimal, wallet_address: str, order_id: str) -> SettlementResult:
        transfer = await self._transfer(wallet_address, amount, order_id)
        if not transfer.success:
            settlement_failure_counter.labels(method=SettlementMethod.CASH.value).inc()
            logger.error("Cash refund transfer failed", extra={"user_id": user_id, "error": transfer.error})
            raise SettlementFailed(
                "On-chain transfer failed. Your store credit was not touched.",
                ledger_untouched=True,
                error=transfer.error,
            )

        return SettlementResult(
            method=SettlementMethod.CASH,
            credit_used=ZERO,
            cash_paid=amount,
            new_credit_balance=self.ledger.get_balance(user_id),
            transaction_ref=transfer.transaction_ref,
        )

    async def _transfer(self, wallet_address: str, amount: Decimal, order_id: str) -> TransferResult:
        """Bounded gateway call; timeouts and unexpected errors count as failures"""
        request = TransferRequest(
            recipient_address=wallet_address,
            amount=amount,
            currency=self.currency,
            order_id=order_id,
        )
        try:
            return await asyncio.wait_for(self.gateway.transfer(request), timeout=self.transfer_timeout_seconds)
        except asyncio.TimeoutError:
            return TransferResult(success=False, error=f"Transfer timed out after {self.transfer_timeout_seconds}s")
        except Exception as e:
            logger.exception("Transfer gateway raised unexpectedly", extra={"order_id": order_id})
            return TransferResult(success=False, error=str(e))
