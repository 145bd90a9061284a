"""Transfer gateway HTTP client for on-chain stablecoin payouts"""

import logging

import httpx

from delivery_shield.config import settings
from delivery_shield.domain.models import TransferRequest, TransferResult
from delivery_shield.infrastructure.observability.metrics import transfer_failure_counter, transfer_latency_histogram

logger = logging.getLogger(__name__)


class TransferClient:
    """Client for the external stablecoin transfer gateway"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url or settings.transfer_gateway_url
        self.api_key = api_key or settings.transfer_api_key
        self.timeout = timeout or settings.transfer_timeout_seconds

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    async def transfer(self, request: TransferRequest) -> TransferResult:
        """
        Send a stablecoin transfer and wait for its transaction hash.

        Never raises: timeouts, HTTP errors and malformed responses are
        reported as TransferResult(success=False).
        """
        logger.info(
            "Initiating transfer",
            extra={
                "order_id": request.order_id,
                "amount": str(request.amount),
                "currency": request.currency,
                "recipient": request.recipient_address,
            },
        )
        payload = {
            "recipient_address": request.recipient_address,
            "amount": format(request.amount, "f"),
            "currency": request.currency,
            "order_id": request.order_id,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with transfer_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/transfers",
                        json=payload,
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                    data = response.json()

                if not data.get("success", False):
                    return self._failed(request, data.get("error") or "Transfer rejected by gateway")

                return TransferResult(success=True, transaction_ref=data["transaction_hash"])

            except httpx.TimeoutException:
                return self._failed(request, f"Transfer gateway timeout after {self.timeout}s")
            except httpx.HTTPStatusError as e:
                return self._failed(request, f"Transfer gateway error: {e.response.status_code}")
            except httpx.RequestError as e:
                return self._failed(request, f"Transfer gateway unreachable: {e}")
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                return self._failed(request, f"Invalid transfer response: {e}")

    def _failed(self, request: TransferRequest, error: str) -> TransferResult:
        transfer_failure_counter.inc()
        logger.error("Transfer failed", extra={"order_id": request.order_id, "error": error})
        return TransferResult(success=False, error=error)
