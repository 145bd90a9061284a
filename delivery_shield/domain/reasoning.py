"""Retrieval query text and deterministic refund explanations"""

from typing import List, Sequence

from delivery_shield.domain.models import EventType, RefundPolicy, SystemEvent

EXCESSIVE_LATENCY_MS = 1_800_000  # 30 minutes


def build_query_text(order_id: str, events: Sequence[SystemEvent]) -> str:
    """Describe the order's delivery issues as a policy search query"""
    issues: List[str] = []
    for event in events:
        if event.event_type == EventType.DELIVERY_DELAYED:
            issues.append("delivery delayed")
        if event.event_type == EventType.TEMPERATURE_VIOLATION:
            issues.append("cold food")
        if event.event_type == EventType.ERROR_OCCURRED:
            issues.append("system error")
        if event.latency_ms is not None and event.latency_ms > EXCESSIVE_LATENCY_MS:
            issues.append("excessive latency")

    return (
        f"Delivery order {order_id} has issues: {', '.join(issues)}. "
        "What is the appropriate refund policy?"
    )


def templated_reasoning(refund_percentage: float, matched_policies: Sequence[RefundPolicy]) -> str:
    """Fallback explanation used when the reasoning provider is unavailable"""
    if matched_policies:
        titles = ", ".join(policy.title for policy in matched_policies)
        return (
            f"Based on our refund policies, your order qualifies for a "
            f"{refund_percentage:g}% refund due to: {titles}. "
            "We apologize for the inconvenience."
        )
    return "Your order does not meet the criteria for an automated refund based on our current policies."
