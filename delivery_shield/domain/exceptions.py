"""Domain-specific exceptions"""

from decimal import Decimal


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Malformed input rejected before any side effect"""

    pass


class InsufficientCredit(DomainException):
    """Ledger deduction larger than the available store credit"""

    def __init__(self, user_id: str, available: Decimal, required: Decimal):
        self.user_id = user_id
        self.available = available
        self.required = required
        super().__init__(f"Insufficient credit. Available: {available}, Required: {required}")


class RetrievalFailure(DomainException):
    """Similarity search over the policy corpus failed"""

    pass


class ExplanationFailure(DomainException):
    """Reasoning provider could not produce an explanation"""

    pass


class SettlementFailed(DomainException):
    """Transfer gateway reported failure while paying out a refund"""

    def __init__(self, message: str, ledger_untouched: bool = True, error: str | None = None):
        self.ledger_untouched = ledger_untouched
        self.error = error
        super().__init__(message)
