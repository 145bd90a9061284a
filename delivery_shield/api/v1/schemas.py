"""Pydantic schemas for API request/response validation"""

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from delivery_shield.domain.models import (
    DeliveryOrder,
    EventType,
    OrderItem,
    OrderStatus,
    PaymentPreference,
    RefundDecision,
    RefundPolicy,
    SystemEvent,
)

WALLET_ADDRESS_REGEX = r"^0x[a-fA-F0-9]{40}$"


class SystemEventSchema(BaseModel):
    """Single delivery event"""

    order_id: str = Field(..., min_length=1)
    timestamp: int = Field(..., gt=0, description="Epoch milliseconds")
    event_type: EventType
    latency_ms: Optional[int] = Field(None, ge=0)
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> SystemEvent:
        return SystemEvent(
            order_id=self.order_id,
            timestamp=self.timestamp,
            event_type=self.event_type,
            latency_ms=self.latency_ms,
            error_message=self.error_message,
            metadata=dict(self.metadata),
        )

    @classmethod
    def from_domain(cls, event: SystemEvent) -> "SystemEventSchema":
        return cls(
            order_id=event.order_id,
            timestamp=event.timestamp,
            event_type=event.event_type,
            latency_ms=event.latency_ms,
            error_message=event.error_message,
            metadata=event.metadata,
        )


class OrderItemSchema(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)


class DeliveryOrderSchema(BaseModel):
    """Order under evaluation"""

    order_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    restaurant_id: str = Field(..., min_length=1)
    items: List[OrderItemSchema] = Field(..., min_length=1)
    total_amount: Decimal = Field(..., gt=0)
    delivery_address: str = Field(..., min_length=1)
    order_timestamp: int = Field(..., gt=0)
    delivery_timestamp: Optional[int] = Field(None, gt=0)
    status: OrderStatus

    def to_domain(self) -> DeliveryOrder:
        return DeliveryOrder(
            order_id=self.order_id,
            customer_id=self.customer_id,
            restaurant_id=self.restaurant_id,
            items=[OrderItem(name=i.name, quantity=i.quantity, price=i.price) for i in self.items],
            total_amount=self.total_amount,
            delivery_address=self.delivery_address,
            order_timestamp=self.order_timestamp,
            delivery_timestamp=self.delivery_timestamp,
            status=self.status,
        )


class EvaluationRequest(BaseModel):
    """Request body for POST /v1/refunds/evaluate"""

    order_id: str = Field(..., min_length=1)
    events: List[SystemEventSchema] = Field(..., min_length=1)
    order: DeliveryOrderSchema


class ProcessRefundRequest(EvaluationRequest):
    """Request body for POST /v1/refunds/process"""

    customer_id: str = Field(..., min_length=1)
    wallet_address: str = Field(..., pattern=WALLET_ADDRESS_REGEX)
    preferred_method: PaymentPreference = PaymentPreference.CASH


class PolicySchema(BaseModel):
    id: str
    title: str
    description: str
    refund_percentage: float

    @classmethod
    def from_domain(cls, policy: RefundPolicy) -> "PolicySchema":
        return cls(
            id=policy.id,
            title=policy.title,
            description=policy.description,
            refund_percentage=policy.refund_percentage,
        )


class DecisionSchema(BaseModel):
    should_refund: bool
    refund_percentage: float
    matched_policies: List[PolicySchema]
    confidence: float
    reasoning: str

    @classmethod
    def from_domain(cls, decision: RefundDecision) -> "DecisionSchema":
        return cls(
            should_refund=decision.should_refund,
            refund_percentage=decision.refund_percentage,
            matched_policies=[PolicySchema.from_domain(p) for p in decision.matched_policies],
            confidence=decision.confidence,
            reasoning=decision.reasoning,
        )


class EvaluationResponse(BaseModel):
    """Response for POST /v1/refunds/evaluate"""

    evaluation: DecisionSchema
    refund_amount: Decimal
    message: str


class ProcessRefundResponse(BaseModel):
    """Response for POST /v1/refunds/process"""

    refund_id: str
    order_id: str
    status: Literal["REJECTED", "COMPLETED"]
    amount: Decimal
    reasoning: str
    matched_policies: List[PolicySchema]
    method: Optional[str] = None
    credit_used: Optional[Decimal] = None
    cash_paid: Optional[Decimal] = None
    new_credit_balance: Optional[Decimal] = None
    transaction_hash: Optional[str] = None
    timestamp: int


class SimulationRequest(BaseModel):
    """Request body for POST /v1/refunds/simulate"""

    issue_type: Literal["LATE_DELIVERY", "COLD_FOOD", "SYSTEM_ERROR"]
    latency_ms: Optional[int] = Field(None, ge=0)


class SimulationResponse(BaseModel):
    events: List[SystemEventSchema]
    message: str


class LedgerResponse(BaseModel):
    """Response for GET /v1/ledger/{user_id}"""

    user_id: str
    store_credit_balance: Decimal
    wallet_address: str
