"""Per-user device location feed.

Clients push fixes, permission changes and location errors over HTTP; the feed
keeps the latest fix for each seeker and fans new samples out to watchers such
as the journey monitor.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from safewatch.core.errors import PermissionDeniedError, TransientIOError
from safewatch.schemas.location import LocationFix, LocationStatus

logger = logging.getLogger(__name__)

PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"
PERMISSION_UNKNOWN = "unknown"

FixHandler = Callable[[LocationFix], None]
ErrorHandler = Callable[[Exception], None]


@dataclass(eq=False)
class _Watcher:
    on_fix: FixHandler
    on_error: ErrorHandler | None = None


@dataclass
class _UserFeed:
    permission: str = PERMISSION_UNKNOWN
    last_fix: LocationFix | None = None
    watchers: list[_Watcher] = field(default_factory=list)


class LocationWatch:
    """Scoped subscription returned by ``watch_position``."""

    def __init__(self, release: Callable[[], None]) -> None:
        self._release = release
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    def __enter__(self) -> LocationWatch:
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class DeviceLocationFeed:
    def __init__(self) -> None:
        self._feeds: dict[int, _UserFeed] = {}
        self._lock = threading.Lock()

    def _feed(self, user_id: int) -> _UserFeed:
        return self._feeds.setdefault(user_id, _UserFeed())

    def set_permission(self, user_id: int, granted: bool) -> None:
        with self._lock:
            self._feed(user_id).permission = PERMISSION_GRANTED if granted else PERMISSION_DENIED
        logger.info("Location permission for user %s: %s", user_id, "granted" if granted else "denied")

    def check_permission(self, user_id: int) -> None:
        """Raise PermissionDeniedError if the seeker refused location access.

        An unknown permission is let through; the first fix settles it.
        """
        with self._lock:
            permission = self._feed(user_id).permission
        if permission == PERMISSION_DENIED:
            raise PermissionDeniedError("Location permission denied")

    def report_fix(self, user_id: int, fix: LocationFix) -> None:
        with self._lock:
            feed = self._feed(user_id)
            # A device that sends fixes has evidently been granted access
            feed.permission = PERMISSION_GRANTED
            feed.last_fix = fix
            watchers = list(feed.watchers)
        for watcher in watchers:
            try:
                watcher.on_fix(fix)
            except Exception:
                logger.exception("Location watcher for user %s failed", user_id)

    def report_error(self, user_id: int, message: str) -> None:
        logger.warning("Location error reported for user %s: %s", user_id, message)
        with self._lock:
            watchers = list(self._feed(user_id).watchers)
        error = TransientIOError(message)
        for watcher in watchers:
            if watcher.on_error is None:
                continue
            try:
                watcher.on_error(error)
            except Exception:
                logger.exception("Location error handler for user %s failed", user_id)

    def get_current_position(self, user_id: int) -> LocationFix:
        self.check_permission(user_id)
        with self._lock:
            fix = self._feed(user_id).last_fix
        if fix is None:
            raise TransientIOError("No location fix available yet")
        return fix

    def watch_position(
        self,
        user_id: int,
        on_fix: FixHandler,
        on_error: ErrorHandler | None = None,
    ) -> LocationWatch:
        watcher = _Watcher(on_fix=on_fix, on_error=on_error)
        with self._lock:
            self._feed(user_id).watchers.append(watcher)

        def release() -> None:
            with self._lock:
                watchers = self._feed(user_id).watchers
                if watcher in watchers:
                    watchers.remove(watcher)

        return LocationWatch(release)

    def watcher_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._feed(user_id).watchers)

    def status(self, user_id: int) -> LocationStatus:
        with self._lock:
            feed = self._feed(user_id)
            return LocationStatus(permission=feed.permission, last_fix=feed.last_fix)
