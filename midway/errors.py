"""
Error taxonomy shared by the providers, the place store and the search pipeline.

Every error carries a stable machine-readable ``code`` and the HTTP status the
API layer renders it with.
"""
from typing import Any, Dict, Optional


class MidwayError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "", details: Optional[Any] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(MidwayError):
    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidCoordinates(MidwayError):
    code = "INVALID_COORDINATES"
    status_code = 400


class NoRouteFound(MidwayError):
    code = "NO_ROUTE_FOUND"
    status_code = 404


class NoAddressFound(MidwayError):
    code = "NO_ADDRESS_FOUND"
    status_code = 404


class ProviderError(MidwayError):
    """The map provider answered with something we cannot use."""
    code = "PROVIDER_ERROR"
    status_code = 502


class NetworkError(ProviderError):
    code = "NETWORK_ERROR"
    status_code = 502


class RateLimited(ProviderError):
    code = "RATE_LIMITED"
    status_code = 429


class StorageUnavailable(MidwayError):
    code = "DATABASE_ERROR"
    status_code = 503


class InternalError(MidwayError):
    code = "INTERNAL_ERROR"
    status_code = 500
