"""Emergency contact service."""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from safewatch.core.errors import NotFoundError
from safewatch.models.emergency_contact import EmergencyContact
from safewatch.schemas.contact import EmergencyContactCreate


def list_contacts(db: Session, user_id: int) -> list[EmergencyContact]:
    """Primary contact first, then in the order they were added."""
    return list(
        db.execute(
            select(EmergencyContact)
            .where(EmergencyContact.user_id == user_id)
            .order_by(EmergencyContact.is_primary.desc(), EmergencyContact.id.asc())
        )
        .scalars()
        .all()
    )


def add_contact(db: Session, user_id: int, data: EmergencyContactCreate) -> EmergencyContact:
    """Add a contact. A new primary contact demotes the previous one."""
    if data.is_primary:
        db.execute(
            update(EmergencyContact)
            .where(EmergencyContact.user_id == user_id, EmergencyContact.is_primary.is_(True))
            .values(is_primary=False)
        )
    contact = EmergencyContact(
        user_id=user_id,
        name=data.name,
        phone=data.phone,
        relationship=data.relationship,
        is_primary=data.is_primary,
    )
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def delete_contact(db: Session, user_id: int, contact_id: int) -> None:
    contact = db.get(EmergencyContact, contact_id)
    if contact is None or contact.user_id != user_id:
        raise NotFoundError("Contact not found")
    db.delete(contact)
    db.commit()


def get_primary_contact(db: Session, user_id: int) -> EmergencyContact | None:
    """The contact flagged primary, else the first one added, else None."""
    contacts = list_contacts(db, user_id)
    return contacts[0] if contacts else None
