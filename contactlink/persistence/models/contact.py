"""Contact model."""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String

from contactlink.persistence.database import Base


class LinkPrecedence(str, enum.Enum):
    """Position of a contact within its linked group."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class Contact(Base):
    """A single email/phone observation belonging to a customer identity.

    Secondary contacts point at the primary of their group through
    ``linked_id``; chains are always one level deep.
    """

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(String(50), nullable=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    linked_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    link_precedence = Column(
        Enum(
            LinkPrecedence,
            name="link_precedence",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=LinkPrecedence.PRIMARY,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_primary(self) -> bool:
        return self.link_precedence == LinkPrecedence.PRIMARY

    def __repr__(self) -> str:
        return (
            f"<Contact(id={self.id}, email={self.email}, phone_number={self.phone_number}, "
            f"linked_id={self.linked_id}, link_precedence={self.link_precedence})>"
        )
