"""Live journey sharing.

A seeker can share an active journey through an unguessable token; anyone
holding the token can follow the destination and the recent positions.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from safewatch.core.errors import NotFoundError
from safewatch.models.shared_journey import JourneyLocation, SharedJourney
from safewatch.schemas.common import as_utc
from safewatch.schemas.journey import JourneyDestination, JourneyFeedOut, JourneyFeedPoint
from safewatch.schemas.location import LocationFix

logger = logging.getLogger(__name__)

FEED_POINT_LIMIT = 100


def get_active_share(db: Session, user_id: int) -> SharedJourney | None:
    return db.execute(
        select(SharedJourney)
        .where(SharedJourney.user_id == user_id, SharedJourney.is_active.is_(True))
        .order_by(SharedJourney.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def begin_share(db: Session, user_id: int, destination: JourneyDestination, now: datetime) -> SharedJourney:
    """Start sharing; any share the seeker still had open is ended first."""
    end_share(db, user_id, now)
    journey = SharedJourney(
        user_id=user_id,
        destination_name=destination.name,
        dest_lat=destination.latitude,
        dest_lon=destination.longitude,
        transport=destination.transport,
        share_token=secrets.token_hex(16),
        is_active=True,
        started_at=now,
    )
    db.add(journey)
    db.commit()
    db.refresh(journey)
    logger.info("User %s started sharing journey %s", user_id, journey.id)
    return journey


def end_share(db: Session, user_id: int, now: datetime) -> int:
    """End all open shares for the seeker. Returns how many were ended."""
    result = db.execute(
        update(SharedJourney)
        .where(SharedJourney.user_id == user_id, SharedJourney.is_active.is_(True))
        .values(is_active=False, ended_at=now)
    )
    db.commit()
    if result.rowcount:
        logger.info("User %s stopped sharing (%s journeys ended)", user_id, result.rowcount)
    return result.rowcount


def publish_location(
    db: Session,
    user_id: int,
    fix: LocationFix,
    min_interval_seconds: int = 15,
) -> bool:
    """Append ``fix`` to the seeker's active share.

    Returns False when nothing is shared or the previous point is more recent
    than ``min_interval_seconds``.
    """
    journey = get_active_share(db, user_id)
    if journey is None:
        return False
    last_ts = db.execute(
        select(JourneyLocation.ts)
        .where(JourneyLocation.journey_id == journey.id)
        .order_by(JourneyLocation.ts.desc())
        .limit(1)
    ).scalar_one_or_none()
    if last_ts is not None:
        if fix.timestamp - as_utc(last_ts) < timedelta(seconds=min_interval_seconds):
            return False
    db.add(
        JourneyLocation(
            journey_id=journey.id,
            lat=fix.latitude,
            lon=fix.longitude,
            speed=fix.speed,
            ts=fix.timestamp,
        )
    )
    db.commit()
    return True


def get_feed(db: Session, token: str, limit: int = FEED_POINT_LIMIT) -> JourneyFeedOut:
    """Public view of a shared journey, newest point first."""
    journey = db.execute(
        select(SharedJourney).where(SharedJourney.share_token == token)
    ).scalar_one_or_none()
    if journey is None:
        raise NotFoundError("Shared journey not found")
    points = db.execute(
        select(JourneyLocation)
        .where(JourneyLocation.journey_id == journey.id)
        .order_by(JourneyLocation.ts.desc(), JourneyLocation.id.desc())
        .limit(limit)
    ).scalars().all()
    return JourneyFeedOut(
        destination_name=journey.destination_name,
        dest_lat=journey.dest_lat,
        dest_lon=journey.dest_lon,
        transport=journey.transport,
        is_active=journey.is_active,
        started_at=journey.started_at,
        ended_at=journey.ended_at,
        points=[JourneyFeedPoint.model_validate(p) for p in points],
    )
