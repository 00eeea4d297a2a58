"""Emergency contacts API."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from safewatch.api.errors import http_error
from safewatch.core.deps import require_seeker
from safewatch.core.errors import SafeWatchError
from safewatch.db.session import get_db
from safewatch.models.user import User
from safewatch.schemas.contact import EmergencyContactCreate, EmergencyContactOut
from safewatch.services.contact_service import add_contact, delete_contact, list_contacts

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("", response_model=list[EmergencyContactOut])
def list_my_contacts(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_seeker),
):
    """Primary contact first."""
    return list_contacts(db, current_user.id)


@router.post("", response_model=EmergencyContactOut, status_code=status.HTTP_201_CREATED)
def create_contact(
    data: EmergencyContactCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_seeker),
):
    return add_contact(db, current_user.id, data)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_seeker),
):
    try:
        delete_contact(db, current_user.id, contact_id)
    except SafeWatchError as e:
        raise http_error(e)
