"""
Gateway registry
Maps a gateway name to the constructor of its adapter
"""

from typing import Callable, Dict, List, Optional

from subsapi.utils.errors import ValidationError
from .base import PaymentGateway, GatewayConfig, CreatePaymentResult, VerifyPaymentResult
from .mock import MockGateway
from .zarinpal import ZarinpalGateway
from .zibal import ZibalGateway

GatewayFactory = Callable[[Optional[GatewayConfig]], PaymentGateway]


class GatewayRegistry:
    """Name -> adapter constructor; the only place a gateway name is validated"""

    def __init__(self, factories: Dict[str, GatewayFactory]):
        self._factories = {name.lower(): factory for name, factory in factories.items()}

    def validate(self, name: str) -> str:
        """Return the registry key for name, or raise ValidationError listing what is available"""
        key = (name or "").strip().lower()
        if key not in self._factories:
            raise ValidationError(
                f"Payment gateway '{name}' is not supported. "
                f"Available gateways: {', '.join(self.names())}"
            )
        return key

    def resolve(self, name: str, config: Optional[GatewayConfig] = None) -> PaymentGateway:
        return self._factories[self.validate(name)](config)

    def names(self) -> List[str]:
        return list(self._factories)

    def __contains__(self, name: str) -> bool:
        return (name or "").strip().lower() in self._factories


gateway_registry = GatewayRegistry({
    "zarinpal": ZarinpalGateway,
    "zibal": ZibalGateway,
    "mock": MockGateway,
})


def get_payment_gateway(name: str, config: Optional[GatewayConfig] = None) -> PaymentGateway:
    return gateway_registry.resolve(name, config)


def supported_gateways() -> List[str]:
    return gateway_registry.names()


__all__ = [
    "PaymentGateway",
    "GatewayConfig",
    "CreatePaymentResult",
    "VerifyPaymentResult",
    "GatewayRegistry",
    "gateway_registry",
    "get_payment_gateway",
    "supported_gateways",
    "MockGateway",
    "ZarinpalGateway",
    "ZibalGateway",
]
