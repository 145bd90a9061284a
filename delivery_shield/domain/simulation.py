"""Synthetic delivery incidents for demos and end-to-end checks"""

import time
from typing import List, Optional

from delivery_shield.domain.exceptions import ValidationError
from delivery_shield.domain.models import EventType, SystemEvent

DEFAULT_SIMULATED_LATENCY_MS = 2_000_000
COLD_FOOD_TEMPERATURE = 40

ISSUE_TYPES = ("LATE_DELIVERY", "COLD_FOOD", "SYSTEM_ERROR")


def simulate_delivery_issue(
    issue_type: str,
    latency_ms: Optional[int] = None,
    now_ms: Optional[int] = None,
) -> List[SystemEvent]:
    """
    Build the event history of a simulated incident.

    LATE_DELIVERY -> one DELIVERY_DELAYED event (default 2,000,000 ms latency)
    COLD_FOOD     -> one TEMPERATURE_VIOLATION event at 40 degrees
    SYSTEM_ERROR  -> three ERROR_OCCURRED events one second apart
    """
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    order_id = f"sim-{now}"

    if issue_type == "LATE_DELIVERY":
        return [
            SystemEvent(
                order_id=order_id,
                timestamp=now,
                event_type=EventType.DELIVERY_DELAYED,
                latency_ms=latency_ms if latency_ms is not None else DEFAULT_SIMULATED_LATENCY_MS,
                metadata={"reason": "Traffic delay"},
            )
        ]

    if issue_type == "COLD_FOOD":
        return [
            SystemEvent(
                order_id=order_id,
                timestamp=now,
                event_type=EventType.TEMPERATURE_VIOLATION,
                metadata={"temperature": COLD_FOOD_TEMPERATURE},
            )
        ]

    if issue_type == "SYSTEM_ERROR":
        messages = ["Payment processing error", "Delivery routing error", "API timeout"]
        return [
            SystemEvent(
                order_id=order_id,
                timestamp=now + i * 1000,
                event_type=EventType.ERROR_OCCURRED,
                error_message=message,
            )
            for i, message in enumerate(messages)
        ]

    raise ValidationError(f"Invalid issue type: {issue_type}")
