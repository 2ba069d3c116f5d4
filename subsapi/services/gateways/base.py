"""
Payment gateway interface
Every provider adapter implements create_payment and verify_payment and nothing else
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from subsapi.utils.errors import GatewayError


class GatewayConfig(BaseModel):
    merchant_id: str
    sandbox: bool = True


class CreatePaymentResult(BaseModel):
    authority: str
    payment_url: str
    gateway_tx_id: Optional[str] = None
    message: Optional[str] = None


class VerifyPaymentResult(BaseModel):
    ref_id: str
    card_pan: Optional[str] = None
    card_hash: Optional[str] = None
    fee_type: Optional[str] = None
    fee: Optional[int] = None


class PaymentGateway(ABC):
    """Base class for payment provider adapters"""

    name: str = ""

    def __init__(self, config: GatewayConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    @abstractmethod
    async def create_payment(
        self,
        amount: int,
        description: str,
        callback_url: str,
        email: Optional[str] = None,
        mobile: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CreatePaymentResult:
        """Register a payment with the provider and return where the user pays"""

    @abstractmethod
    async def verify_payment(self, authority: str, amount: Optional[int] = None) -> VerifyPaymentResult:
        """Confirm with the provider that the payment identified by authority was paid"""

    async def _post_json(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST a JSON body and return the decoded response, whatever its HTTP status"""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            self.logger.error(f"[{self.name}] HTTP call to {url} failed: {e}")
            raise GatewayError(f"{self.name} is unreachable: {e}", status_code=502)

        try:
            data = response.json()
        except ValueError:
            self.logger.error(f"[{self.name}] Non-JSON response ({response.status_code}) from {url}")
            raise GatewayError(
                f"{self.name} returned an invalid response",
                code=response.status_code,
                status_code=502,
            )
        if not isinstance(data, dict):
            raise GatewayError(f"{self.name} returned an invalid response", status_code=502)
        return data
