from typing import Any, Optional


class GatewayError(Exception):
    """Base class for every error the service reports to its callers."""
    status_code = 500
    code = "gateway_error"

    def __init__(self, message: str = "", details: Any = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.code, "detail": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(GatewayError):
    status_code = 400
    code = "validation_error"


class InvalidCardNumber(ValidationError):
    code = "invalid_card_number"


class CardExpired(ValidationError):
    code = "card_expired"


class InvalidCVV(ValidationError):
    code = "invalid_cvv"


class NotFoundError(GatewayError):
    status_code = 404
    code = "not_found"


class AuthError(GatewayError):
    code = "auth_error"


class UpstreamError(GatewayError):
    code = "upstream_error"

    def __init__(self, message: str = "", status: Optional[int] = None, details: Any = None):
        super().__init__(message, details)
        self.status = status

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.status is not None:
            body["status"] = self.status
        return body


class MissingRedirectError(GatewayError):
    code = "missing_redirect"


class PaymentDeclinedError(GatewayError):
    status_code = 400
    code = "payment_declined"

    def __init__(self, message: str = "", status: Optional[str] = None,
                 decline_code: Optional[str] = None, details: Any = None):
        super().__init__(message, details)
        self.status = status
        self.decline_code = decline_code

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["status"] = self.status
        if self.decline_code:
            body["decline_code"] = self.decline_code
        return body
