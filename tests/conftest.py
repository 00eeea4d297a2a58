"""Pytest fixtures."""

import heapq
import itertools
import logging
import os
from datetime import datetime, timedelta, timezone

# Point the application engine at the test database before anything imports it
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from safewatch.core.scheduler import ScheduledTask, TaskScheduler  # noqa: E402
from safewatch.core.security import hash_password  # noqa: E402
from safewatch.db.base import Base  # noqa: E402
from safewatch.db.session import SessionLocal, engine, get_db  # noqa: E402
from safewatch.main import app  # noqa: E402
from safewatch.models import (  # noqa: E402,F401 - register for create_all
    Alert,
    AlertResponse,
    EmergencyContact,
    JourneyLocation,
    SharedJourney,
    User,
)
from safewatch.models.user import ROLE_RESPONDER, ROLE_SEEKER  # noqa: E402
from safewatch.schemas.location import LocationFix  # noqa: E402
from safewatch.services.safety_service import SafetyService  # noqa: E402

logger = logging.getLogger(__name__)

_user_seq = itertools.count(1)


class FakeScheduler(TaskScheduler):
    """Virtual clock: callbacks run synchronously inside ``advance()``."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime.now(timezone.utc)
        self._queue: list[tuple[datetime, int, ScheduledTask]] = []
        self._seq = itertools.count()
        self.errors: list[Exception] = []

    def now(self) -> datetime:
        return self._now

    def schedule(self, delay_seconds, callback, name="task") -> ScheduledTask:
        task = ScheduledTask(callback, name)
        due = self._now + timedelta(seconds=max(0.0, float(delay_seconds)))
        heapq.heappush(self._queue, (due, next(self._seq), task))
        return task

    def advance(self, seconds: float) -> None:
        target = self._now + timedelta(seconds=seconds)
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            try:
                task.run()
            except Exception as exc:
                logger.exception("Scheduled task %s failed", task.name)
                self.errors.append(exc)
        self._now = target

    def pending(self) -> list[ScheduledTask]:
        return [task for _, _, task in self._queue if not task.done]

    def shutdown(self) -> None:
        for _, _, task in self._queue:
            task.cancel()
        self._queue.clear()


def override_get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(setup_db):
    """Test client; the lifespan builds a SafetyService on the real asyncio scheduler."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def safety(setup_db, scheduler):
    """SafetyService driven by virtual time."""
    service = SafetyService(SessionLocal, scheduler)
    yield service
    service.shutdown()


@pytest.fixture
def make_user(setup_db):
    def _make(role: str = ROLE_SEEKER, full_name: str | None = None) -> User:
        n = next(_user_seq)
        db = SessionLocal()
        try:
            user = User(
                email=f"{role}{n}@svc.test",
                hashed_password=hash_password("pass"),
                full_name=full_name or f"{role.title()} {n}",
                role=role,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            return user
        finally:
            db.close()

    return _make


@pytest.fixture
def seeker(make_user):
    return make_user(ROLE_SEEKER, "Dana Seeker")


@pytest.fixture
def responder(make_user):
    return make_user(ROLE_RESPONDER)


@pytest.fixture
def fix_at(scheduler):
    """Build a LocationFix stamped with the virtual clock."""

    def _fix(lat: float = 52.3702, lon: float = 4.8952) -> LocationFix:
        return LocationFix(latitude=lat, longitude=lon, timestamp=scheduler.now())

    return _fix
