"""
Domain exceptions for the analytics engine.

Raised by the ingestion and insight layers and translated into HTTP
responses by the handlers registered in ``analytics_engine.main``.
Store failures (``sqlalchemy.exc.SQLAlchemyError``) are never wrapped here;
they propagate unchanged to the caller.
"""

from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    """Base class for all analytics domain errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class NotFoundError(AnalyticsError):
    """Raised when a referenced business does not exist."""

    status_code = 404

    @classmethod
    def business(cls, business_id: str) -> "NotFoundError":
        return cls(
            "Business not found",
            code="BusinessNotFound",
            details={"business_id": business_id},
        )


class ValidationError(AnalyticsError):
    """Raised for malformed request input such as unparseable window dates."""

    status_code = 422
