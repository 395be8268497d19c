"""Identify endpoint schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contactlink.domain.services.identity_service import ConsolidatedContact


class IdentifyRequest(BaseModel):
    """Identify request. At least one field must be non-empty."""

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    phone_number: str | None = Field(default=None, alias="phoneNumber")

    @field_validator("phone_number", mode="before")
    @classmethod
    def coerce_numeric_phone(cls, value):
        """Accept phone numbers sent as JSON numbers."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ConsolidatedContactResponse(BaseModel):
    """Consolidated contact.

    ``primaryContatctId`` is spelled the way existing consumers expect it.
    """

    model_config = ConfigDict(populate_by_name=True)

    primary_contact_id: int = Field(alias="primaryContatctId")
    emails: list[str]
    phone_numbers: list[str] = Field(alias="phoneNumbers")
    secondary_contact_ids: list[int] = Field(alias="secondaryContactIds")

    @classmethod
    def from_consolidated(cls, contact: ConsolidatedContact) -> "ConsolidatedContactResponse":
        return cls(
            primary_contact_id=contact.primary_contact_id,
            emails=contact.emails,
            phone_numbers=contact.phone_numbers,
            secondary_contact_ids=contact.secondary_contact_ids,
        )


class IdentifyResponse(BaseModel):
    """Identify response."""

    contact: ConsolidatedContactResponse


class ErrorResponse(BaseModel):
    """Error payload."""

    error: str
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check payload."""

    status: str
    message: str
