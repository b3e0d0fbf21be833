"""Parsed GPX data (dataclasses, no I/O)."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass
class GpxPoint:
    """Track point; index in the sequence = position along the course."""

    lat: float
    lng: float
    elevation_m: float | None
    timestamp: str | None  # raw <time> text, not validated
    cumulative_distance_km: float


@dataclass
class GpxWaypoint:
    """Named point of interest, independent of the track."""

    lat: float
    lng: float
    name: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class CourseStats:
    """
    Derived course statistics.

    Field names match the flattened ``race_catalog`` columns, so
    ``stats.to_record()`` can be merged straight into a row payload.
    """

    distance_km: float
    elevation_gain_m: float
    elevation_loss_m: float
    min_alt_m: float | None
    max_alt_m: float | None
    start_lat: float | None
    start_lng: float | None
    bounds_min_lat: float | None
    bounds_min_lng: float | None
    bounds_max_lat: float | None
    bounds_max_lng: float | None

    def to_record(self) -> dict:
        return asdict(self)

    @classmethod
    def from_record(cls, row: dict) -> CourseStats:
        """Rebuild stats from a catalog row (missing numeric fields → 0 / None)."""
        return cls(
            distance_km=float(row.get("distance_km") or 0),
            elevation_gain_m=float(row.get("elevation_gain_m") or 0),
            elevation_loss_m=float(row.get("elevation_loss_m") or 0),
            min_alt_m=row.get("min_alt_m"),
            max_alt_m=row.get("max_alt_m"),
            start_lat=row.get("start_lat"),
            start_lng=row.get("start_lng"),
            bounds_min_lat=row.get("bounds_min_lat"),
            bounds_min_lng=row.get("bounds_min_lng"),
            bounds_max_lat=row.get("bounds_max_lat"),
            bounds_max_lng=row.get("bounds_max_lng"),
        )


@dataclass
class ParsedGpx:
    """Result of a successful parse."""

    points: list[GpxPoint]
    stats: CourseStats
    waypoints: list[GpxWaypoint] = field(default_factory=list)
    name: str | None = None
