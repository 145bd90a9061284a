"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from delivery_shield.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_decision(
    order_id: str,
    should_refund: bool,
    refund_percentage: float,
    matched_policy_ids: list[str],
    retrieval_fallback: bool,
    reasoning_fallback: bool,
    duration_ms: float,
) -> None:
    """Log structured refund decision outcome for analysis"""
    logging.info(
        "Refund decision completed",
        extra={
            "order_id": order_id,
            "step": "decision_complete",
            "refund_outcome": "approved" if should_refund else "rejected",
            "refund_percentage": refund_percentage,
            "matched_policies": matched_policy_ids,
            "retrieval_fallback": retrieval_fallback,
            "reasoning_fallback": reasoning_fallback,
            "duration_ms": duration_ms,
        },
    )


def log_settlement(
    user_id: str,
    method: str,
    credit_used: Decimal,
    cash_paid: Decimal,
    new_credit_balance: Decimal,
    transaction_ref: Optional[str] = None,
) -> None:
    """Log structured settlement outcome"""
    logging.info(
        "Refund settled",
        extra={
            "user_id": user_id,
            "step": "settlement_complete",
            "method": method,
            "credit_used": str(credit_used),
            "cash_paid": str(cash_paid),
            "new_credit_balance": str(new_credit_balance),
            "transaction_ref": transaction_ref,
        },
    )
