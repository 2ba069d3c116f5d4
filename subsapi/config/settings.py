"""
Application settings
Environment-driven configuration for gateways, notifications and OTP auth
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


# Core
APP_NAME = os.getenv("APP_NAME", "Subscription API")
DEBUG = _env_bool("DEBUG")
PORT = int(os.getenv("PORT", "3001"))
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+asyncpg://localhost:5432/subscription_db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3001")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
MASTER_API_KEY = os.getenv("MASTER_API_KEY")

# Payment gateways
DEFAULT_GATEWAY = os.getenv("DEFAULT_GATEWAY", "zarinpal")

ZARINPAL_MERCHANT_ID = os.getenv("ZARINPAL_MERCHANT_ID", "zarinpal-merchant-id")
ZARINPAL_SANDBOX = _env_bool("ZARINPAL_SANDBOX", "true")
ZARINPAL_URLS = {
    True: {
        "request": "https://sandbox.zarinpal.com/pg/v4/payment/request.json",
        "verify": "https://sandbox.zarinpal.com/pg/v4/payment/verify.json",
        "gateway": "https://sandbox.zarinpal.com/pg/StartPay/",
    },
    False: {
        "request": "https://payment.zarinpal.com/pg/v4/payment/request.json",
        "verify": "https://payment.zarinpal.com/pg/v4/payment/verify.json",
        "gateway": "https://payment.zarinpal.com/pg/StartPay/",
    },
}

ZIBAL_MERCHANT_ID = os.getenv("ZIBAL_MERCHANT_ID", "zibal")
ZIBAL_SANDBOX = _env_bool("ZIBAL_SANDBOX", "true")
ZIBAL_URLS = {
    "request": os.getenv("ZIBAL_REQUEST_URL", "https://gateway.zibal.ir/v1/request"),
    "verify": os.getenv("ZIBAL_VERIFY_URL", "https://gateway.zibal.ir/v1/verify"),
    "gateway": os.getenv("ZIBAL_GATEWAY_URL", "https://gateway.zibal.ir/start/"),
}

# Statuses a gateway callback uses to say the user cancelled or the payment failed
CANCELLED_PAYMENT_STATUSES = {"nok", "cancel", "canceled", "cancelled", "failed"}

# Notifications
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")
BREVO_API_KEY = os.getenv("BREVO_API_KEY")
EMAIL_FROM = os.getenv("EMAIL_FROM", "no-reply@subscription-api.local")

# OTP auth
OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
OTP_EXP_MIN = int(os.getenv("OTP_EXP_MIN", "5"))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))
OTP_RATE_LIMIT_WINDOW_SEC = int(os.getenv("OTP_RATE_LIMIT_WINDOW_SEC", "60"))
OTP_RATE_LIMIT_MAX_REQUESTS = int(os.getenv("OTP_RATE_LIMIT_MAX_REQUESTS", "3"))

# Webhooks
WEBHOOK_TIMEOUT_SEC = float(os.getenv("WEBHOOK_TIMEOUT_SEC", "5"))
WEBHOOK_RETRY_DELAYS = (0, 1, 3)
