"""
Zibal gateway
"""

from typing import Any, Dict, Optional

from subsapi.config import settings
from subsapi.utils.errors import GatewayError
from .base import PaymentGateway, GatewayConfig, CreatePaymentResult, VerifyPaymentResult

SUCCESS = 100
ALREADY_VERIFIED = 201


class ZibalGateway(PaymentGateway):
    name = "zibal"

    def __init__(self, config: Optional[GatewayConfig] = None, transport=None):
        config = config or GatewayConfig(
            merchant_id=settings.ZIBAL_MERCHANT_ID,
            sandbox=settings.ZIBAL_SANDBOX,
        )
        super().__init__(config, transport)
        self.request_url = settings.ZIBAL_URLS["request"]
        self.verify_url = settings.ZIBAL_URLS["verify"]
        self.gateway_url = settings.ZIBAL_URLS["gateway"]

    async def create_payment(
        self,
        amount: int,
        description: str,
        callback_url: str,
        email: Optional[str] = None,
        mobile: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CreatePaymentResult:
        self.logger.info(f"[zibal] Creating payment: amount={amount}, description={description!r}")

        body = {
            "merchant": self.config.merchant_id,
            "amount": amount,
            "callbackUrl": callback_url,
            "description": description,
            "mobile": mobile,
            "email": email,
            **{k: str(v) for k, v in (metadata or {}).items()},
        }
        data = await self._post_json(self.request_url, body)

        result = data.get("result")
        track_id = data.get("trackId")
        if result != SUCCESS or not track_id:
            self.logger.error(f"[zibal] Payment creation rejected: result={result}, message={data.get('message')}")
            raise GatewayError(data.get("message") or "Failed to create payment", code=result)

        authority = str(track_id)
        self.logger.info(f"[zibal] Payment created: trackId={authority}")
        return CreatePaymentResult(
            authority=authority,
            payment_url=f"{self.gateway_url}{authority}",
            gateway_tx_id=authority,
            message=data.get("message"),
        )

    async def verify_payment(self, authority: str, amount: Optional[int] = None) -> VerifyPaymentResult:
        self.logger.info(f"[zibal] Verifying payment: trackId={authority}")

        body = {
            "merchant": self.config.merchant_id,
            "trackId": int(authority) if authority.isdigit() else authority,
        }
        data = await self._post_json(self.verify_url, body)

        result = data.get("result")
        if result not in (SUCCESS, ALREADY_VERIFIED):
            self.logger.error(f"[zibal] Verification rejected: result={result}, message={data.get('message')}")
            raise GatewayError(data.get("message") or "Payment verification failed", code=result)

        self.logger.info(f"[zibal] Payment verified: refNumber={data.get('refNumber')}")
        return VerifyPaymentResult(
            ref_id=str(data.get("refNumber") or ""),
            card_pan=data.get("cardNumber"),
        )
