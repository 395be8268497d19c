"""Database models."""

from contactlink.persistence.models.contact import Contact, LinkPrecedence

__all__ = [
    "Contact",
    "LinkPrecedence",
]
