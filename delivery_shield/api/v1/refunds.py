"""Refund endpoints - evaluate, process (evaluate + settle), simulate"""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request

from delivery_shield.api.dependencies import get_refund_evaluator, get_request_id, get_settlement_resolver
from delivery_shield.api.v1.schemas import (
    DecisionSchema,
    EvaluationRequest,
    EvaluationResponse,
    PolicySchema,
    ProcessRefundRequest,
    ProcessRefundResponse,
    SimulationRequest,
    SimulationResponse,
    SystemEventSchema,
)
from delivery_shield.domain.exceptions import SettlementFailed, ValidationError
from delivery_shield.domain.simulation import simulate_delivery_issue
from delivery_shield.services.refund_evaluator import RefundEvaluator, refund_amount
from delivery_shield.services.settlement import SettlementResolver

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


@router.post("/refunds/evaluate", response_model=EvaluationResponse)
async def evaluate_refund(
    request_body: EvaluationRequest,
    request: Request,
    evaluator: RefundEvaluator = Depends(get_refund_evaluator),
):
    """Evaluate refund eligibility without paying anything out"""
    request_id = get_request_id(request)
    order = request_body.order.to_domain()

    try:
        decision = await evaluator.evaluate(
            request_body.order_id,
            [e.to_domain() for e in request_body.events],
            order,
        )
    except ValidationError as e:
        logging.warning(f"Invalid evaluation request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    return EvaluationResponse(
        evaluation=DecisionSchema.from_domain(decision),
        refund_amount=refund_amount(order, decision),
        message="Refund approved" if decision.should_refund else "Refund not approved based on current policies",
    )


@router.post("/refunds/process", response_model=ProcessRefundResponse)
async def process_refund(
    request_body: ProcessRefundRequest,
    request: Request,
    evaluator: RefundEvaluator = Depends(get_refund_evaluator),
    resolver: SettlementResolver = Depends(get_settlement_resolver),
):
    """
    Evaluate and, when approved, settle the refund.

    Flow:
    1. Evaluate the delivery events against the policy corpus
    2. Convert percentage x order total into a payable amount (rounded once)
    3. Settle via credit, cash or hybrid according to the customer's preference
    """
    request_id = get_request_id(request)
    order = request_body.order.to_domain()
    refund_id = f"ref-{request_body.order_id}-{_now_ms()}"

    try:
        decision = await evaluator.evaluate(
            request_body.order_id,
            [e.to_domain() for e in request_body.events],
            order,
        )
        matched = [PolicySchema.from_domain(p) for p in decision.matched_policies]

        if not decision.should_refund:
            return ProcessRefundResponse(
                refund_id=refund_id,
                order_id=request_body.order_id,
                status="REJECTED",
                amount=0,
                reasoning=decision.reasoning,
                matched_policies=matched,
                timestamp=_now_ms(),
            )

        amount = refund_amount(order, decision)
        if amount <= 0:
            # Approved, but nothing left to pay once rounded to cents
            logging.info(
                "Approved refund rounds to zero, skipping settlement",
                extra={"request_id": request_id, "order_id": request_body.order_id},
            )
            return ProcessRefundResponse(
                refund_id=refund_id,
                order_id=request_body.order_id,
                status="COMPLETED",
                amount=0,
                reasoning=decision.reasoning,
                matched_policies=matched,
                timestamp=_now_ms(),
            )

        result = await resolver.settle(
            request_body.customer_id,
            amount,
            request_body.wallet_address,
            request_body.preferred_method,
            order_id=request_body.order_id,
        )

    except ValidationError as e:
        logging.warning(f"Invalid refund request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except SettlementFailed as e:
        logging.error(f"Settlement failed: {e.error}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail=str(e))

    return ProcessRefundResponse(
        refund_id=refund_id,
        order_id=request_body.order_id,
        status="COMPLETED",
        amount=amount,
        reasoning=decision.reasoning,
        matched_policies=matched,
        method=result.method.value,
        credit_used=result.credit_used,
        cash_paid=result.cash_paid,
        new_credit_balance=result.new_credit_balance,
        transaction_hash=result.transaction_ref,
        timestamp=_now_ms(),
    )


@router.post("/refunds/simulate", response_model=SimulationResponse)
def simulate_issue(request_body: SimulationRequest):
    """Generate a synthetic event history for a delivery incident"""
    events = simulate_delivery_issue(request_body.issue_type, request_body.latency_ms)
    return SimulationResponse(
        events=[SystemEventSchema.from_domain(e) for e in events],
        message=f"Simulated {request_body.issue_type} issue",
    )
