"""Identity reconciliation for incoming email/phone pairs."""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from contactlink.core.exceptions import (
    IdentityValidationError,
    InvariantViolation,
    LockTimeoutError,
    StoreError,
)
from contactlink.core.locking import KeyedLock, identity_lock, identity_lock_keys, primary_lock_keys
from contactlink.persistence.models.contact import Contact, LinkPrecedence
from contactlink.persistence.repositories.contact_repository import ContactRepository

logger = logging.getLogger(__name__)

# Times the linked groups may change under a request before it gives up
MAX_GROUP_LOCK_ATTEMPTS = 5


@dataclass(frozen=True)
class ConsolidatedContact:
    """Merged view of one customer's linked contacts."""

    primary_contact_id: int
    emails: list[str] = field(default_factory=list)
    phone_numbers: list[str] = field(default_factory=list)
    secondary_contact_ids: list[int] = field(default_factory=list)


def _anchor_ids(contacts: list[Contact]) -> set[int]:
    """IDs of the primaries that own the given contacts."""
    anchors = set()
    for contact in contacts:
        if contact.is_primary:
            anchors.add(contact.id)
        elif contact.linked_id is not None:
            anchors.add(contact.linked_id)
    return anchors


def _oldest_primary(contacts: list[Contact]) -> Contact | None:
    primaries = [c for c in contacts if c.is_primary]
    if not primaries:
        return None
    return min(primaries, key=lambda c: (c.created_at, c.id))


def build_consolidated_contact(contacts: list[Contact]) -> ConsolidatedContact:
    """Project a linked group onto its consolidated view.

    The primary's email and phone come first, followed by the values of
    secondaries in the order given, with duplicates removed.

    Args:
        contacts: Every contact of one group, oldest first

    Returns:
        ConsolidatedContact

    Raises:
        InvariantViolation: If the group has no primary contact
    """
    primary = _oldest_primary(contacts)
    if primary is None:
        raise InvariantViolation(
            "No primary contact found",
            contact_ids=[c.id for c in contacts],
        )

    emails: list[str] = []
    phone_numbers: list[str] = []
    secondary_ids: list[int] = []

    if primary.email:
        emails.append(primary.email)
    if primary.phone_number:
        phone_numbers.append(primary.phone_number)

    for contact in contacts:
        if contact.is_primary:
            continue
        secondary_ids.append(contact.id)
        if contact.email and contact.email not in emails:
            emails.append(contact.email)
        if contact.phone_number and contact.phone_number not in phone_numbers:
            phone_numbers.append(contact.phone_number)

    return ConsolidatedContact(
        primary_contact_id=primary.id,
        emails=emails,
        phone_numbers=phone_numbers,
        secondary_contact_ids=secondary_ids,
    )


class IdentityService:
    """Resolves an email/phone pair to a customer identity.

    Each call runs in one transaction on the given session while holding
    locks on its email and phone keys and on the primaries it resolves to.
    """

    def __init__(self, session: AsyncSession, lock: KeyedLock | None = None) -> None:
        """Initialize identity service."""
        self.session = session
        self.contact_repo = ContactRepository(session)
        self.lock = lock if lock is not None else identity_lock

    async def identify(
        self, email: str | None = None, phone_number: str | None = None
    ) -> ConsolidatedContact:
        """Find, create or merge the contacts matching an email/phone pair.

        Args:
            email: Optional email, matched exactly
            phone_number: Optional phone number, matched exactly

        Returns:
            Consolidated view of the customer the pair belongs to

        Raises:
            IdentityValidationError: If neither email nor phone number is given
            StoreError: If a database operation fails
            InvariantViolation: If the resulting group has no primary contact
        """
        email = email or None
        phone_number = phone_number or None
        if email is None and phone_number is None:
            raise IdentityValidationError("Either email or phoneNumber must be provided")

        async with self.lock.hold(identity_lock_keys(email, phone_number)):
            try:
                result = await self._identify(email, phone_number)
            except SQLAlchemyError as e:
                await self.session.rollback()
                raise StoreError(str(e)) from e
            except Exception:
                await self.session.rollback()
                raise

        logger.info(
            "Identified contact",
            extra={
                "primary_contact_id": result.primary_contact_id,
                "secondary_count": len(result.secondary_contact_ids),
            },
        )
        return result

    async def _identify(self, email: str | None, phone_number: str | None) -> ConsolidatedContact:
        for _ in range(MAX_GROUP_LOCK_ATTEMPTS):
            matches = await self.contact_repo.find_by_email_or_phone(email, phone_number)

            if not matches:
                contact = await self.contact_repo.insert(
                    email=email,
                    phone_number=phone_number,
                    linked_id=None,
                    link_precedence=LinkPrecedence.PRIMARY,
                )
                result = build_consolidated_contact([contact])
                await self.session.commit()
                logger.info("Created primary contact", extra={"contact_id": contact.id})
                return result

            # Requests with other keys may merge the same groups; hold the
            # primaries until commit and make sure they are still primaries
            # once held.
            anchors = _anchor_ids(matches)
            async with self.lock.hold(primary_lock_keys(anchors)):
                matches = await self.contact_repo.find_by_email_or_phone(email, phone_number)
                if matches and _anchor_ids(matches) == anchors:
                    result = await self._reconcile(matches, email, phone_number)
                    await self.session.commit()
                    return result

            logger.info(
                "Linked groups changed while waiting for locks, retrying",
                extra={"anchor_ids": sorted(anchors)},
            )

        raise LockTimeoutError(",".join(primary_lock_keys(anchors)))

    async def _reconcile(
        self, matches: list[Contact], email: str | None, phone_number: str | None
    ) -> ConsolidatedContact:
        group = await self.contact_repo.find_closure(_anchor_ids(matches))

        if self._needs_new_contact(group, email, phone_number):
            primary = _oldest_primary(group)
            if primary is None:
                raise InvariantViolation(
                    "Linked contacts have no primary contact",
                    contact_ids=[c.id for c in group],
                )
            contact = await self.contact_repo.insert(
                email=email,
                phone_number=phone_number,
                linked_id=primary.id,
                link_precedence=LinkPrecedence.SECONDARY,
            )
            logger.info(
                "Created secondary contact",
                extra={"contact_id": contact.id, "linked_id": primary.id},
            )
            group.append(contact)

        await self._merge_primaries(group)

        final_group = await self.contact_repo.find_closure(_anchor_ids(group))
        try:
            return build_consolidated_contact(final_group)
        except InvariantViolation as e:
            logger.error(
                "Linked contacts have no primary contact after merge",
                extra={"contact_ids": e.contact_ids, "email": email, "phone_number": phone_number},
            )
            raise

    @staticmethod
    def _needs_new_contact(
        group: list[Contact], email: str | None, phone_number: str | None
    ) -> bool:
        """Whether the pair adds information not yet recorded for the group.

        Only a request carrying both fields can create a secondary.
        """
        if not (email and phone_number):
            return False

        if any(c.email == email and c.phone_number == phone_number for c in group):
            return False

        return any(c.email == email or c.phone_number == phone_number for c in group)

    async def _merge_primaries(self, group: list[Contact]) -> None:
        """Demote every primary but the oldest and flatten their links."""
        primaries = sorted(
            (c for c in group if c.is_primary),
            key=lambda c: (c.created_at, c.id),
        )
        if len(primaries) <= 1:
            return

        oldest = primaries[0]
        for primary in primaries[1:]:
            await self.contact_repo.update(
                primary.id,
                link_precedence=LinkPrecedence.SECONDARY,
                linked_id=oldest.id,
            )
            repointed = await self.contact_repo.bulk_update_linked_id(primary.id, oldest.id)
            logger.info(
                "Merged primary contact",
                extra={
                    "contact_id": primary.id,
                    "linked_id": oldest.id,
                    "repointed_count": repointed,
                },
            )
