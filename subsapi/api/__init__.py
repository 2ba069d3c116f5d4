"""
API package initialization
"""

# Import all routers to make them available
from . import auth, users, plans, subscriptions, payments, api_keys, webhooks, gateway_credentials

__all__ = [
    "auth",
    "users",
    "plans",
    "subscriptions",
    "payments",
    "api_keys",
    "webhooks",
    "gateway_credentials",
]
