"""Input guards shared by the ledger and settlement paths"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from delivery_shield.domain.exceptions import ValidationError

WALLET_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def require_user_id(user_id: Any) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("Invalid user_id: must be a non-empty string")
    return user_id


def require_positive_amount(amount: Any, name: str = "amount") -> Decimal:
    """Coerce to Decimal and reject non-finite, zero or negative amounts"""
    if isinstance(amount, bool):
        raise ValidationError(f"Invalid {name}: must be a positive number")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(f"Invalid {name}: must be a positive number") from e

    if not value.is_finite() or value <= 0:
        raise ValidationError(f"Invalid {name}: must be a positive number")
    return value


def require_wallet_address(wallet_address: Any) -> str:
    if not isinstance(wallet_address, str) or not WALLET_ADDRESS_PATTERN.match(wallet_address):
        raise ValidationError("Invalid wallet_address: must be a valid Ethereum address")
    return wallet_address
