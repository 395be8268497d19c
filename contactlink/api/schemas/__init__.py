"""API schemas package."""

from contactlink.api.schemas.identify import (
    ConsolidatedContactResponse,
    ErrorResponse,
    HealthResponse,
    IdentifyRequest,
    IdentifyResponse,
)

__all__ = [
    "ConsolidatedContactResponse",
    "ErrorResponse",
    "HealthResponse",
    "IdentifyRequest",
    "IdentifyResponse",
]
