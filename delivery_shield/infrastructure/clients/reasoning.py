"""Reasoning provider client - customer-facing refund explanations from Gemini"""

import json
from dataclasses import asdict
from typing import List, Sequence

import httpx

from delivery_shield.config import settings
from delivery_shield.domain.exceptions import ExplanationFailure
from delivery_shield.domain.models import DeliveryOrder, RefundPolicy, SystemEvent

PROMPT_TEMPLATE = """
Given the following delivery order information and matched refund policies, provide a concise explanation for why a refund should or should not be issued.

Order ID: {order_id}
System Logs: {events}
Matched Policies: {policies}

Provide a customer-friendly explanation in 2-3 sentences.
"""


def _policy_summary(policies: Sequence[RefundPolicy]) -> List[dict]:
    return [
        {
            "id": p.id,
            "title": p.title,
            "description": p.description,
            "refund_percentage": p.refund_percentage,
        }
        for p in policies
    ]


class ReasoningClient:
    """Client for the Gemini generateContent REST API"""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = base_url or settings.gemini_api_base
        self.timeout = timeout or settings.http_timeout_seconds

    def build_prompt(
        self,
        order: DeliveryOrder,
        matched_policies: Sequence[RefundPolicy],
        events: Sequence[SystemEvent] = (),
    ) -> str:
        return PROMPT_TEMPLATE.format(
            order_id=order.order_id,
            events=json.dumps([asdict(e) for e in events], indent=2, default=str),
            policies=json.dumps(_policy_summary(matched_policies), indent=2),
        )

    async def explain(
        self,
        order: DeliveryOrder,
        matched_policies: Sequence[RefundPolicy],
        events: Sequence[SystemEvent] = (),
    ) -> str:
        """
        Generate an explanation for the decision.

        Raises:
            ExplanationFailure: On missing API key, timeout, HTTP errors, or empty output
        """
        if not self.api_key:
            raise ExplanationFailure("Reasoning provider is not configured")

        body = {"contents": [{"parts": [{"text": self.build_prompt(order, matched_policies, events)}]}]}

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/models/{self.model}:generateContent",
                    params={"key": self.api_key},
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
                text = data["candidates"][0]["content"]["parts"][0]["text"].strip()

            except httpx.TimeoutException as e:
                raise ExplanationFailure(f"Reasoning provider timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise ExplanationFailure(f"Reasoning provider error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise ExplanationFailure(f"Reasoning provider unreachable: {e}") from e
            except (KeyError, IndexError, ValueError, TypeError, AttributeError) as e:
                raise ExplanationFailure(f"Invalid reasoning response: {e}") from e

        if not text:
            raise ExplanationFailure("Reasoning provider returned empty text")
        return text
