"""
Service-level exceptions
Each error carries the HTTP status the API layer answers with
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for errors raised by the service layer"""
    status_code = 500
    title = "Internal Server Error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Bad input, unknown gateway, inactive plan"""
    status_code = 400
    title = "Bad Request"


class NotFoundError(ServiceError):
    """Raised when an entity does not exist"""
    status_code = 404
    title = "Not Found"

    def __init__(self, entity: str, message: Optional[str] = None):
        self.entity = entity
        super().__init__(message or f"{entity} not found")


class GatewayError(ServiceError):
    """Upstream payment provider failure, carries the provider's code"""
    status_code = 400
    title = "Payment Gateway Error"

    def __init__(self, message: str, code: Any = None, status_code: Optional[int] = None):
        self.code = code
        super().__init__(message, status_code)


class RateLimitError(ServiceError):
    status_code = 429
    title = "Too Many Requests"

    def __init__(self, message: str, retry_after: int = 0):
        self.retry_after = retry_after
        super().__init__(message)


class OtpError(ServiceError):
    status_code = 400
    title = "Bad Request"


class UnauthorizedError(ServiceError):
    status_code = 401
    title = "Unauthorized"


class ForbiddenError(ServiceError):
    status_code = 403
    title = "Forbidden"
