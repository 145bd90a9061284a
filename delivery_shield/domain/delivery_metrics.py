"""Delivery metrics extraction - reduces an event history to scalar signals"""

from numbers import Number
from typing import Sequence

from delivery_shield.domain.models import DeliveryMetrics, EventType, SystemEvent

NO_VIOLATION_TEMPERATURE = 100.0


def extract_metrics(events: Sequence[SystemEvent]) -> DeliveryMetrics:
    """
    Derive refund signals from an order's events.

    Requirements:
    - Latency is the worst (max) latency seen, so one severe delay dominates
    - Temperature is the lowest reading on TEMPERATURE_VIOLATION events
    - Error count is the number of ERROR_OCCURRED events

    Empty input yields the all-defaults record; callers reject empty
    histories before reaching this point.
    """
    delivery_latency = 0
    temperature = NO_VIOLATION_TEMPERATURE
    error_count = 0

    for event in events:
        if event.latency_ms is not None:
            delivery_latency = max(delivery_latency, event.latency_ms)

        if event.event_type == EventType.ERROR_OCCURRED:
            error_count += 1

        if event.event_type == EventType.TEMPERATURE_VIOLATION:
            reading = event.metadata.get("temperature")
            # bool is a Number subclass; a flag is not a reading
            if isinstance(reading, Number) and not isinstance(reading, bool):
                temperature = min(temperature, float(reading))

    return DeliveryMetrics(
        delivery_latency=delivery_latency,
        temperature=temperature,
        error_count=error_count,
    )
