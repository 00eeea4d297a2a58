"""Distance and movement classification for journey monitoring."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from safewatch.core.alert_policies import EARTH_RADIUS_M
from safewatch.schemas.location import LocationFix


@dataclass
class MovementReading:
    """Result of classifying one position sample."""

    moved: bool
    distance_m: float | None  # None for the first sample of a journey


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two lat/lng points in meters."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def stationary_duration_ms(now: datetime, last_movement: datetime | None) -> int:
    if last_movement is None:
        return 0
    return max(0, int((now - last_movement).total_seconds() * 1000))


def is_stationary(duration_ms: int, threshold_ms: int) -> bool:
    """Stationary once the duration reaches the threshold (inclusive)."""
    return duration_ms >= threshold_ms


class MovementClassifier:
    """Compares each sample with the position where movement was last recorded.

    Measuring against that anchor rather than the previous sample means slow
    walking still adds up to a movement once the seeker is ``min_movement_m``
    away from where they last moved.
    """

    def __init__(self, min_movement_m: float = 15.0) -> None:
        self.min_movement_m = min_movement_m
        self.anchor: LocationFix | None = None

    def reset(self, anchor: LocationFix | None = None) -> None:
        self.anchor = anchor

    def classify(self, fix: LocationFix) -> MovementReading:
        if self.anchor is None:
            self.anchor = fix
            return MovementReading(moved=False, distance_m=None)
        distance = haversine_m(self.anchor.latitude, self.anchor.longitude, fix.latitude, fix.longitude)
        if distance >= self.min_movement_m:
            self.anchor = fix
            return MovementReading(moved=True, distance_m=distance)
        return MovementReading(moved=False, distance_m=distance)
