"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class EventType(str, Enum):
    """Delivery lifecycle events emitted by order systems"""

    ORDER_CREATED = "ORDER_CREATED"
    ORDER_PREPARED = "ORDER_PREPARED"
    DELIVERY_STARTED = "DELIVERY_STARTED"
    DELIVERY_DELAYED = "DELIVERY_DELAYED"
    DELIVERY_COMPLETED = "DELIVERY_COMPLETED"
    ERROR_OCCURRED = "ERROR_OCCURRED"
    TEMPERATURE_VIOLATION = "TEMPERATURE_VIOLATION"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class MetricType(str, Enum):
    """Metric a policy condition is evaluated against"""

    DELIVERY_LATENCY = "DELIVERY_LATENCY"
    TEMPERATURE = "TEMPERATURE"
    ERROR_COUNT = "ERROR_COUNT"
    CUSTOMER_COMPLAINTS = "CUSTOMER_COMPLAINTS"


class ComparisonOperator(str, Enum):
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    EQUAL_TO = "EQUAL_TO"


class SettlementMethod(str, Enum):
    CREDIT = "credit"
    CASH = "cash"
    HYBRID = "hybrid"


class PaymentPreference(str, Enum):
    """Payout method chosen by the customer"""

    CASH = "cash"
    CREDIT = "credit"


@dataclass(frozen=True)
class SystemEvent:
    """Timestamped delivery event (timestamp in epoch milliseconds)"""

    order_id: str
    timestamp: int
    event_type: EventType
    latency_ms: Optional[int] = None
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderItem:
    name: str
    quantity: int
    price: float


@dataclass
class DeliveryOrder:
    """Order being assessed; total_amount is the refund basis"""

    order_id: str
    customer_id: str
    restaurant_id: str
    items: List[OrderItem]
    total_amount: Decimal
    delivery_address: str
    order_timestamp: int
    status: OrderStatus
    delivery_timestamp: Optional[int] = None


@dataclass(frozen=True)
class PolicyCondition:
    """Threshold condition; unrecognised types/operators are kept as raw strings"""

    metric_type: Union[MetricType, str]
    threshold: float
    operator: Union[ComparisonOperator, str]


@dataclass
class RefundPolicy:
    id: str
    title: str
    description: str
    conditions: List[PolicyCondition]
    refund_percentage: float
    embedding: Optional[List[float]] = None


@dataclass(frozen=True)
class DeliveryMetrics:
    """Scalar signals derived from an order's event history"""

    delivery_latency: int = 0
    temperature: float = 100.0  # "no violation" sentinel
    error_count: int = 0


@dataclass
class RefundDecision:
    """Output of refund evaluation"""

    should_refund: bool
    refund_percentage: float
    matched_policies: List[RefundPolicy]
    confidence: float
    reasoning: str
    metrics: DeliveryMetrics = field(default_factory=DeliveryMetrics)
    retrieval_fallback: bool = False
    reasoning_fallback: bool = False


@dataclass
class LedgerAccount:
    user_id: str
    balance: Decimal
    wallet_address: str = ""


@dataclass
class SettlementResult:
    """How an approved refund was paid out"""

    method: SettlementMethod
    credit_used: Decimal
    cash_paid: Decimal
    new_credit_balance: Decimal
    transaction_ref: Optional[str] = None


@dataclass
class TransferRequest:
    recipient_address: str
    amount: Decimal
    currency: str
    order_id: str


@dataclass
class TransferResult:
    success: bool
    transaction_ref: Optional[str] = None
    error: Optional[str] = None
