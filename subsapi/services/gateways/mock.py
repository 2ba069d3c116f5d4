"""
Mock gateway - deterministic sandbox used in development and tests
"""

import time
from typing import Any, Dict, Optional

from .base import PaymentGateway, GatewayConfig, CreatePaymentResult, VerifyPaymentResult

_last_stamp = 0


def _next_stamp() -> int:
    """Millisecond timestamp, bumped when two calls land in the same millisecond"""
    global _last_stamp
    _last_stamp = max(int(time.time() * 1000), _last_stamp + 1)
    return _last_stamp


class MockGateway(PaymentGateway):
    name = "mock"

    def __init__(self, config: Optional[GatewayConfig] = None, transport=None):
        super().__init__(config or GatewayConfig(merchant_id="mock", sandbox=True), transport)
        self.create_calls = 0
        self.verify_calls = 0

    async def create_payment(
        self,
        amount: int,
        description: str,
        callback_url: str,
        email: Optional[str] = None,
        mobile: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CreatePaymentResult:
        self.create_calls += 1
        authority = f"AUTH-{_next_stamp()}"
        payment_url = f"https://mock.pay/StartPay/{authority}"
        self.logger.info(f"[mock] Created payment {authority} for {amount}")
        return CreatePaymentResult(
            authority=authority,
            payment_url=payment_url,
            message="Mock payment created",
        )

    async def verify_payment(self, authority: str, amount: Optional[int] = None) -> VerifyPaymentResult:
        self.verify_calls += 1
        self.logger.info(f"[mock] Verified payment {authority}")
        return VerifyPaymentResult(
            ref_id=f"REF-{_next_stamp()}",
            card_pan="1234-5678-****-****",
            card_hash="mock-hash",
            fee_type="fixed",
            fee=0,
        )
