"""Policy matching engine - core business logic for refund eligibility"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from delivery_shield.domain.models import (
    ComparisonOperator,
    DeliveryMetrics,
    MetricType,
    PolicyCondition,
    RefundPolicy,
)


@dataclass
class PolicyMatch:
    """Policies fully satisfied by the metrics and the resulting percentage"""

    matched_policies: List[RefundPolicy]
    refund_percentage: float


def _metric_value(metric_type, metrics: DeliveryMetrics) -> Optional[float]:
    if metric_type == MetricType.DELIVERY_LATENCY:
        return metrics.delivery_latency
    if metric_type == MetricType.TEMPERATURE:
        return metrics.temperature
    if metric_type == MetricType.ERROR_COUNT:
        return metrics.error_count
    # CUSTOMER_COMPLAINTS and unrecognised types have no extracted metric
    return None


def evaluate_condition(condition: PolicyCondition, metrics: DeliveryMetrics) -> bool:
    """
    Compare the condition's metric against its threshold.

    Unsupported metric types or operators evaluate to False instead of
    raising, so evaluation stays total over arbitrary policy documents.
    """
    value = _metric_value(condition.metric_type, metrics)
    if value is None:
        return False

    if condition.operator == ComparisonOperator.GREATER_THAN:
        return value > condition.threshold
    if condition.operator == ComparisonOperator.LESS_THAN:
        return value < condition.threshold
    if condition.operator == ComparisonOperator.EQUAL_TO:
        return value == condition.threshold
    return False


def policy_matches(policy: RefundPolicy, metrics: DeliveryMetrics) -> bool:
    """A policy matches only when it has conditions and all of them hold"""
    if not policy.conditions:
        return False
    return all(evaluate_condition(condition, metrics) for condition in policy.conditions)


def match_policies(metrics: DeliveryMetrics, policies: Sequence[RefundPolicy]) -> PolicyMatch:
    """
    Evaluate candidate policies against metrics.

    Refund percentage is the maximum among matched policies (0 when none
    match); matched policies keep candidate order.
    """
    matched = [policy for policy in policies if policy_matches(policy, metrics)]
    refund_percentage = max((policy.refund_percentage for policy in matched), default=0)

    return PolicyMatch(matched_policies=matched, refund_percentage=refund_percentage)
