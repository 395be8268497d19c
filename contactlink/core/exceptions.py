"""Exceptions raised by identity reconciliation."""


class ContactLinkError(Exception):
    """Base class for contactlink errors."""


class IdentityValidationError(ContactLinkError):
    """Neither an email nor a phone number was supplied."""


class StoreError(ContactLinkError):
    """A contact store operation failed."""


class InvariantViolation(ContactLinkError):
    """Stored contacts are in a state the resolver cannot reconcile.

    Raised when a linked group has no primary contact after merging.
    """

    def __init__(self, message: str, contact_ids: list[int] | None = None):
        super().__init__(message)
        self.contact_ids = contact_ids or []


class LockTimeoutError(ContactLinkError):
    """A key lock could not be acquired in time."""

    def __init__(self, key: str):
        super().__init__(f"Timed out waiting for lock on {key!r}")
        self.key = key
