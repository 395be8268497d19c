"""Contact repository."""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from contactlink.persistence.models.contact import Contact, LinkPrecedence
from contactlink.persistence.repositories.base import BaseRepository


class ContactRepository(BaseRepository[Contact]):
    """Repository for Contact entities.

    Soft-deleted contacts are invisible to every query here.
    """

    def __init__(self, session: AsyncSession):
        """Initialize contact repository."""
        super().__init__(Contact, session)

    async def get_by_id(self, id: int) -> Contact | None:
        """Get active contact by ID (excludes deleted).

        Args:
            id: Contact ID

        Returns:
            Contact or None if not found or deleted
        """
        stmt = select(Contact).where(
            Contact.id == id,
            Contact.deleted_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_email_or_phone(
        self, email: str | None = None, phone_number: str | None = None
    ) -> list[Contact]:
        """Get every contact whose email or phone number matches exactly.

        Args:
            email: Optional email to search
            phone_number: Optional phone number to search

        Returns:
            Matching contacts, oldest first
        """
        conditions = []
        if email:
            conditions.append(Contact.email == email)
        if phone_number:
            conditions.append(Contact.phone_number == phone_number)
        if not conditions:
            return []

        stmt = (
            select(Contact)
            .where(
                Contact.deleted_at.is_(None),
                or_(*conditions),
            )
            .order_by(Contact.created_at, Contact.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_closure(self, anchor_ids: Iterable[int]) -> list[Contact]:
        """Get the anchor contacts and every contact linked to them.

        Args:
            anchor_ids: IDs of primary contacts

        Returns:
            Contacts ordered by creation time, oldest first
        """
        ids = list(set(anchor_ids))
        if not ids:
            return []

        stmt = (
            select(Contact)
            .where(
                Contact.deleted_at.is_(None),
                or_(Contact.id.in_(ids), Contact.linked_id.in_(ids)),
            )
            .order_by(Contact.created_at, Contact.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def insert(
        self,
        email: str | None,
        phone_number: str | None,
        linked_id: int | None,
        link_precedence: LinkPrecedence,
    ) -> Contact:
        """Create a contact.

        Args:
            email: Optional email
            phone_number: Optional phone number
            linked_id: Primary contact ID for secondaries, None for primaries
            link_precedence: Primary or secondary

        Returns:
            Created contact with ID and timestamps assigned
        """
        now = datetime.utcnow()
        return await self.create(
            email=email or None,
            phone_number=phone_number or None,
            linked_id=linked_id,
            link_precedence=link_precedence,
            created_at=now,
            updated_at=now,
        )

    async def update(self, id: int, **fields) -> Contact | None:
        """Update contact fields and bump updated_at.

        Args:
            id: Contact ID
            **fields: Column values to set

        Returns:
            Updated contact or None if not found
        """
        fields.setdefault("updated_at", datetime.utcnow())
        return await super().update(id, **fields)

    async def bulk_update_linked_id(self, old_linked_id: int, new_linked_id: int) -> int:
        """Re-point every contact linked to one primary at another.

        Args:
            old_linked_id: Primary ID being replaced
            new_linked_id: Primary ID to link to instead

        Returns:
            Number of contacts updated
        """
        stmt = (
            update(Contact)
            .where(
                Contact.linked_id == old_linked_id,
                Contact.deleted_at.is_(None),
            )
            .values(linked_id=new_linked_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0

    async def soft_delete(self, id: int) -> bool:
        """Mark a contact as deleted.

        Args:
            id: Contact ID

        Returns:
            True if the contact was found and deleted
        """
        contact = await self.get_by_id(id)
        if contact is None:
            return False
        contact.deleted_at = datetime.utcnow()
        await self.session.flush()
        return True
