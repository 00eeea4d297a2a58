"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from safewatch.core.security import decode_access_token
from safewatch.db.session import get_db
from safewatch.models.user import ROLE_RESPONDER, ROLE_SEEKER, User
from safewatch.services.auth_service import get_user_by_email
from safewatch.services.safety_service import SafetyService

security = HTTPBearer(auto_error=False)


def get_current_user(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> User:
    """Require authenticated user. Raises 401 if not authenticated."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # sub is email for our tokens
    user = get_user_by_email(db, payload["sub"])
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_seeker(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """Only safety seekers raise alerts and run monitored journeys."""
    if current_user.role != ROLE_SEEKER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only safety seekers can do this",
        )
    return current_user


def require_responder(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if current_user.role != ROLE_RESPONDER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only responders can respond to alerts",
        )
    return current_user


def get_safety(request: Request) -> SafetyService:
    """The SafetyService built in the application lifespan."""
    return request.app.state.safety
