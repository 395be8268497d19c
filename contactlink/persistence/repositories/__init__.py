"""Repository implementations."""

from contactlink.persistence.repositories.base import BaseRepository
from contactlink.persistence.repositories.contact_repository import ContactRepository

__all__ = [
    "BaseRepository",
    "ContactRepository",
]
