"""
Pakasir QRIS payment gateway.

All endpoints are scoped by project slug and authenticated with the API key in
the request itself (body for POST, query string for GET).
"""
import logging
from dataclasses import dataclass

import httpx

from orbitcloud.core.errors import UpstreamError

logger = logging.getLogger(__name__)

PENDING = "pending"


@dataclass
class PaymentRequest:
    payment_reference: str   # QRIS payload rendered as a QR code by the client
    settled_amount: int
    expired_at: str | None = None


class PakasirClient:
    def __init__(
        self,
        base_url: str,
        project_slug: str,
        api_key: str,
        timeout: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.project_slug = project_slug
        self.api_key = api_key
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def _body(self, order_id: str, amount: int) -> dict:
        return {
            "project": self.project_slug,
            "order_id": order_id,
            "amount": amount,
            "api_key": self.api_key,
        }

    async def create_payment_request(self, order_id: str, amount: int) -> PaymentRequest:
        try:
            r = await self._http.post("/transactioncreate/qris", json=self._body(order_id, amount))
            r.raise_for_status()
            payment = r.json()["payment"]
            return PaymentRequest(
                payment_reference=str(payment["payment_number"]),
                settled_amount=int(payment["total_payment"]),
                expired_at=payment.get("expired_at"),
            )
        except httpx.HTTPStatusError as e:
            logger.error("pakasir create %s: HTTP %s %s", order_id, e.response.status_code, e.response.text[:300])
            raise UpstreamError("Payment gateway rejected the request") from e
        except httpx.RequestError as e:
            logger.error("pakasir create %s: %s", order_id, e)
            raise UpstreamError("Payment gateway unreachable") from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error("pakasir create %s: malformed response: %s", order_id, e)
            raise UpstreamError("Invalid response from payment gateway") from e

    async def check_settlement(self, order_id: str, amount: int) -> str:
        """
        Return the gateway's status token for the order ('completed', 'pending',
        'expired', ...). Never raises: any failure reads as 'pending' since this
        runs on every status poll.
        """
        params = {
            "project": self.project_slug,
            "amount": amount,
            "order_id": order_id,
            "api_key": self.api_key,
        }
        try:
            r = await self._http.get("/transactiondetail", params=params)
            r.raise_for_status()
            transaction = r.json().get("transaction") or {}
            return str(transaction.get("status") or PENDING).lower()
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.error("pakasir check %s: %s", order_id, e)
            return PENDING

    async def simulate(self, order_id: str, amount: int) -> dict:
        """Mark the payment as paid on the gateway side. Sandbox projects only."""
        try:
            r = await self._http.post("/paymentsimulation", json=self._body(order_id, amount))
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                message = e.response.json().get("message")
            except (ValueError, AttributeError):
                message = None
            raise UpstreamError(message or "Simulation Failed") from e
        except httpx.RequestError as e:
            raise UpstreamError("Simulation Failed") from e
        try:
            return r.json()
        except ValueError:
            return {}
