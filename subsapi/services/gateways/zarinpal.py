"""
Zarinpal gateway (v4 JSON API)
https://docs.zarinpal.com/paymentGateway/
"""

from typing import Any, Dict, Optional

from subsapi.config import settings
from subsapi.utils.errors import GatewayError
from .base import PaymentGateway, GatewayConfig, CreatePaymentResult, VerifyPaymentResult

SUCCESS = 100
ALREADY_VERIFIED = 101


class ZarinpalGateway(PaymentGateway):
    name = "zarinpal"

    def __init__(self, config: Optional[GatewayConfig] = None, transport=None):
        config = config or GatewayConfig(
            merchant_id=settings.ZARINPAL_MERCHANT_ID,
            sandbox=settings.ZARINPAL_SANDBOX,
        )
        super().__init__(config, transport)
        urls = settings.ZARINPAL_URLS[config.sandbox]
        self.request_url = urls["request"]
        self.verify_url = urls["verify"]
        self.gateway_url = urls["gateway"]

    @staticmethod
    def _unpack(body: Dict[str, Any]) -> Dict[str, Any]:
        # Failures come back as {"data": [], "errors": {"code": ..., "message": ...}}
        data = body.get("data")
        if isinstance(data, dict) and data:
            return data
        errors = body.get("errors")
        if isinstance(errors, dict):
            return errors
        return {}

    async def create_payment(
        self,
        amount: int,
        description: str,
        callback_url: str,
        email: Optional[str] = None,
        mobile: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CreatePaymentResult:
        self.logger.info(f"[zarinpal] Creating payment: amount={amount}, description={description!r}")

        body = {
            "merchant_id": self.config.merchant_id,
            "amount": amount,
            "description": description,
            "callback_url": callback_url,
            "metadata": {
                "email": email,
                "mobile": mobile,
                **{k: str(v) for k, v in (metadata or {}).items()},
            },
        }
        data = self._unpack(await self._post_json(self.request_url, body))

        code = data.get("code")
        authority = data.get("authority")
        if code != SUCCESS or not authority:
            self.logger.error(f"[zarinpal] Payment creation rejected: code={code}, message={data.get('message')}")
            raise GatewayError(data.get("message") or "Failed to create payment", code=code)

        payment_url = f"{self.gateway_url}{authority}"
        self.logger.info(f"[zarinpal] Payment created: authority={authority}")
        return CreatePaymentResult(
            authority=authority,
            payment_url=payment_url,
            message=data.get("message"),
        )

    async def verify_payment(self, authority: str, amount: Optional[int] = None) -> VerifyPaymentResult:
        self.logger.info(f"[zarinpal] Verifying payment: authority={authority}, amount={amount}")

        body = {
            "merchant_id": self.config.merchant_id,
            "amount": amount,
            "authority": authority,
        }
        data = self._unpack(await self._post_json(self.verify_url, body))

        code = data.get("code")
        if code not in (SUCCESS, ALREADY_VERIFIED):
            self.logger.error(f"[zarinpal] Verification rejected: code={code}, message={data.get('message')}")
            raise GatewayError(data.get("message") or "Payment verification failed", code=code)

        ref_id = data.get("ref_id")
        self.logger.info(f"[zarinpal] Payment verified: ref_id={ref_id}, code={code}")
        return VerifyPaymentResult(
            ref_id=str(ref_id) if ref_id is not None else "",
            card_pan=data.get("card_pan"),
            card_hash=data.get("card_hash"),
            fee_type=data.get("fee_type"),
            fee=data.get("fee"),
        )
