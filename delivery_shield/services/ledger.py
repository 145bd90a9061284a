"""Store-credit ledger - authoritative per-user credit balances and payout wallets"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, Optional

from delivery_shield.domain.exceptions import InsufficientCredit, ValidationError
from delivery_shield.domain.models import LedgerAccount
from delivery_shield.domain.validation import require_positive_amount, require_user_id

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class LedgerStore(ABC):
    """
    Balance store injected into the settlement resolver.

    Account policy:
    - Reads never create accounts; unknown users have a zero balance
    - add_credit creates the account on first write
    - deduct_credit is all-or-nothing
    """

    @abstractmethod
    def get_balance(self, user_id: str) -> Decimal: ...

    @abstractmethod
    def add_credit(self, user_id: str, amount: Decimal) -> Decimal: ...

    @abstractmethod
    def deduct_credit(self, user_id: str, amount: Decimal) -> Decimal: ...

    @abstractmethod
    def get_wallet_address(self, user_id: str) -> Optional[str]: ...

    @abstractmethod
    def get_account(self, user_id: str) -> Optional[LedgerAccount]: ...


class InMemoryLedger(LedgerStore):
    """Process-local ledger with per-account locks"""

    def __init__(self, accounts: Iterable[LedgerAccount] = ()):
        self._accounts: Dict[str, LedgerAccount] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        for account in accounts:
            self.open_account(account.user_id, account.wallet_address, account.balance)

    def _lock_for(self, user_id: str) -> threading.Lock:
        """Lock for a write; registers one if the user has none yet"""
        with self._registry_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    def _existing_lock(self, user_id: str) -> Optional[threading.Lock]:
        # A lock is registered before its account is created, so no lock means no account
        with self._registry_lock:
            return self._locks.get(user_id)

    def open_account(self, user_id: str, wallet_address: str = "", balance: Decimal = ZERO) -> LedgerAccount:
        """Explicitly create (or replace) an account"""
        require_user_id(user_id)
        balance = Decimal(str(balance))
        if balance < 0:
            raise ValidationError("Opening balance cannot be negative")

        with self._lock_for(user_id):
            account = LedgerAccount(user_id=user_id, balance=balance, wallet_address=wallet_address)
            self._accounts[user_id] = account

        logger.info("Ledger account opened", extra={"user_id": user_id, "balance": str(balance)})
        return replace(account)

    def get_account(self, user_id: str) -> Optional[LedgerAccount]:
        lock = self._existing_lock(user_id)
        if lock is None:
            return None
        with lock:
            account = self._accounts.get(user_id)
            return replace(account) if account else None

    def get_balance(self, user_id: str) -> Decimal:
        lock = self._existing_lock(user_id)
        if lock is not None:
            with lock:
                account = self._accounts.get(user_id)
                if account is not None:
                    return account.balance
        logger.debug("User ledger not found, returning 0", extra={"user_id": user_id})
        return ZERO

    def add_credit(self, user_id: str, amount: Decimal) -> Decimal:
        require_user_id(user_id)
        amount = require_positive_amount(amount)

        with self._lock_for(user_id):
            account = self._accounts.get(user_id)
            if account is None:
                account = self._accounts[user_id] = LedgerAccount(user_id=user_id, balance=ZERO)
            account.balance += amount
            new_balance = account.balance

        logger.info(
            "Credit added to user ledger",
            extra={"user_id": user_id, "amount": str(amount), "new_balance": str(new_balance)},
        )
        return new_balance

    def deduct_credit(self, user_id: str, amount: Decimal) -> Decimal:
        """
        Remove credit from a user's balance.

        Raises:
            InsufficientCredit: amount exceeds the balance (nothing is deducted)
        """
        require_user_id(user_id)
        amount = require_positive_amount(amount)

        lock = self._existing_lock(user_id)
        if lock is None:
            raise InsufficientCredit(user_id, available=ZERO, required=amount)

        with lock:
            account = self._accounts.get(user_id)
            available = account.balance if account else ZERO
            if amount > available:
                raise InsufficientCredit(user_id, available=available, required=amount)
            account.balance -= amount
            new_balance = account.balance

        logger.info(
            "Credit deducted from user ledger",
            extra={"user_id": user_id, "amount": str(amount), "new_balance": str(new_balance)},
        )
        return new_balance

    def get_wallet_address(self, user_id: str) -> Optional[str]:
        lock = self._existing_lock(user_id)
        if lock is None:
            return None
        with lock:
            account = self._accounts.get(user_id)
            return account.wallet_address if account else None
