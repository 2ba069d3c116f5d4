"""
Model package initialization
"""

from .user import User, UserRole
from .plan import Plan
from .subscription import Subscription, SubscriptionStatus
from .payment import Payment, PaymentStatus
from .otp_code import OtpCode
from .api_key import ApiKey
from .webhook import Webhook, WebhookDelivery, DeliveryStatus
from .gateway_credential import GatewayCredential
from .notification import Notification, NotifyKind
from .audit_log import AuditLog

__all__ = [
    # Core models
    "User",
    "Plan",
    "Subscription",
    "Payment",
    "OtpCode",
    "ApiKey",
    "Webhook",
    "WebhookDelivery",
    "GatewayCredential",
    "Notification",
    "AuditLog",
    
    # Enums
    "UserRole",
    "SubscriptionStatus",
    "PaymentStatus",
    "DeliveryStatus",
    "NotifyKind",
]
