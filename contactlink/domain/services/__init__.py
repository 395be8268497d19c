"""Domain services."""

from contactlink.domain.services.identity_service import (
    ConsolidatedContact,
    IdentityService,
    build_consolidated_contact,
)

__all__ = [
    "ConsolidatedContact",
    "IdentityService",
    "build_consolidated_contact",
]
