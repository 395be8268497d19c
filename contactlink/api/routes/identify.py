"""Identify API endpoint."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from contactlink.api.schemas.identify import (
    ConsolidatedContactResponse,
    ErrorResponse,
    IdentifyRequest,
    IdentifyResponse,
)
from contactlink.core.exceptions import IdentityValidationError
from contactlink.domain.services.identity_service import IdentityService
from contactlink.persistence.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/identify",
    response_model=IdentifyResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def identify(
    payload: IdentifyRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Reconcile an email/phone pair with the stored contacts."""
    service = IdentityService(db)
    try:
        contact = await service.identify(payload.email, payload.phone_number)
    except IdentityValidationError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "At least one of email or phoneNumber must be provided"},
        )
    except Exception as e:
        logger.exception(
            "Error in identify endpoint",
            extra={"request_body": payload.model_dump(by_alias=True)},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "message": str(e)},
        )

    return IdentifyResponse(contact=ConsolidatedContactResponse.from_consolidated(contact))
