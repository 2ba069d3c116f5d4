"""
Request and response models shared by the API routers
JSON bodies are camelCase; attributes stay snake_case
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, HttpUrl, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID

from subsapi.config import settings

# Digits with the separators people type: +98 912-123 4567, (0912) 1234567
PHONE_PATTERN = r"^\+?[0-9][0-9 ()-]*$"

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

# Requests

class CreateUserRequest(CamelModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    name: Optional[str] = None

class CreatePlanRequest(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: int = Field(ge=0)
    currency: Optional[str] = None
    duration: int = Field(ge=1)
    features: Optional[Any] = None
    is_active: bool = True

class UpdatePlanRequest(CamelModel):
    is_active: bool

class CreateSubscriptionRequest(CamelModel):
    user_id: UUID
    plan_id: UUID
    auto_renew: bool = False
    gateway: Optional[str] = None
    user_email: Optional[EmailStr] = None
    user_phone: Optional[str] = None

class RetryPaymentRequest(CamelModel):
    gateway: Optional[str] = None
    user_email: Optional[EmailStr] = None
    user_phone: Optional[str] = None

class VerifyPaymentRequest(CamelModel):
    authority: str = Field(min_length=1)
    status: Optional[str] = None

class RequestOtpRequest(CamelModel):
    phone: str = Field(min_length=10, max_length=20, pattern=PHONE_PATTERN)

class VerifyOtpRequest(CamelModel):
    phone: str = Field(min_length=10, max_length=20, pattern=PHONE_PATTERN)
    code: str

    @field_validator("code")
    @classmethod
    def code_has_configured_length(cls, value: str) -> str:
        value = value.strip()
        if not (value.isascii() and value.isdigit()) or len(value) != settings.OTP_LENGTH:
            raise ValueError(f"must be {settings.OTP_LENGTH} digits")
        return value

class CreateApiKeyRequest(CamelModel):
    label: Optional[str] = None
    user_id: Optional[UUID] = None

class DeactivateApiKeyRequest(CamelModel):
    id: UUID

class CreateWebhookRequest(CamelModel):
    url: HttpUrl
    event_types: List[str] = Field(min_length=1)
    secret: Optional[str] = None

class UpdateWebhookRequest(CamelModel):
    url: Optional[HttpUrl] = None
    is_active: Optional[bool] = None
    event_types: Optional[List[str]] = None

class GatewayCredentialRequest(CamelModel):
    gateway: str = Field(min_length=1)
    merchant_id: str
    sandbox: bool = True
    config: Optional[Dict[str, Any]] = None

# Responses

class UserResponse(CamelModel):
    id: UUID
    phone: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None

class PlanResponse(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    price: int
    currency: str
    duration: int
    features: Optional[Any] = None
    is_active: bool
    created_at: Optional[datetime] = None

class SubscriptionResponse(CamelModel):
    id: UUID
    user_id: UUID
    plan_id: UUID
    status: str
    auto_renew: bool
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

class PaymentResponse(CamelModel):
    id: UUID
    subscription_id: UUID
    amount: int
    currency: str
    gateway: str
    authority: str
    payment_url: Optional[str] = None
    status: str
    gateway_tx_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    notification_sent: bool = False
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="meta")
    created_at: Optional[datetime] = None

class CreateSubscriptionResponse(CamelModel):
    subscription: SubscriptionResponse
    payment: PaymentResponse

class PaymentSummary(CamelModel):
    id: UUID
    amount: int
    currency: str
    status: str
    paid_at: Optional[datetime] = None
    gateway_tx_id: Optional[str] = None

class VerifyPaymentResponse(CamelModel):
    success: bool
    payment: PaymentSummary
    subscription_id: UUID

class ApiKeyResponse(CamelModel):
    id: UUID
    label: Optional[str] = None
    user_id: Optional[UUID] = None
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class IssuedApiKeyResponse(CamelModel):
    id: UUID
    key: str
    label: Optional[str] = None

class LoginResponse(CamelModel):
    user: UserResponse
    api_key: str

class WebhookResponse(CamelModel):
    id: UUID
    url: str
    event_types: List[str]
    is_active: bool
    created_at: Optional[datetime] = None

class CreatedWebhookResponse(WebhookResponse):
    # The signing secret is only ever shown on creation
    secret: str

class GatewayCredentialResponse(CamelModel):
    id: UUID
    gateway: str
    merchant_id: str
    sandbox: bool
    updated_at: Optional[datetime] = None

class SuccessResponse(CamelModel):
    success: bool = True
