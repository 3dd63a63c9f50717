"""
Custom exception hierarchy for the skin price aggregator.

All application errors inherit from SkinSourcingError so the HTTP layer can
catch and log them in one place.

Exception Hierarchy:
    SkinSourcingError (base)
    ├── ValidationError
    ├── RateLimitError
    └── ExternalServiceError
        └── SearchProviderError

Usage:
    from exceptions import SearchProviderError

    raise SearchProviderError("Skinport returned HTTP 503", provider="Skinport")

Provider adapters raise these on unrecoverable upstream failures. The
aggregator never lets them escape search_all(); they are recorded on the
provider's execution report instead.
"""

from typing import Optional, Dict, Any


class SkinSourcingError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
        status_code: Suggested HTTP status code (for API errors)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(SkinSourcingError):
    """
    Raised when a search request cannot be turned into a valid query.

    Examples:
        raise ValidationError("Query text is required")
        raise ValidationError("Invalid wear", detail={"wear": "Shiny"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=400)


class RateLimitError(SkinSourcingError):
    """
    Raised when a marketplace answers with HTTP 429.

    Examples:
        raise RateLimitError("Too many requests", provider="Steam")
        raise RateLimitError("Rate limit exceeded", retry_after=60)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        retry_after: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        detail = dict(detail or {})
        if retry_after:
            detail["retry_after"] = retry_after
        if provider:
            detail["provider"] = provider

        super().__init__(message, detail=detail or None, status_code=429)


class ExternalServiceError(SkinSourcingError):
    """
    Base exception for external service failures.
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        service_name: Optional[str] = None,
    ):
        if service_name and detail is None:
            detail = {"service": service_name}
        elif service_name and detail:
            detail["service"] = service_name

        super().__init__(message, detail=detail, status_code=502)


class SearchProviderError(ExternalServiceError):
    """
    Raised when a marketplace call fails (bad status, malformed payload).

    Examples:
        raise SearchProviderError("DMarket returned HTTP 500", provider="DMarket")
        raise SearchProviderError("Unexpected payload", detail={"keys": ["foo"]})
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
    ):
        if provider and detail is None:
            detail = {"provider": provider}
        elif provider and detail:
            detail["provider"] = provider

        super().__init__(message, detail=detail, service_name="search_provider")
