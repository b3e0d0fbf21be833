"""
GPX Parser Service

Parses GPX documents into track points, waypoints and course statistics.

The parser is deliberately permissive. Real-world exporters produce files
with odd namespaces, missing attributes and stray markup, so instead of a
strict XML parser this module runs a small token scanner and only looks at
the handful of elements it needs:

    <trkpt lat lon> <ele/> <time/> </trkpt>
    <wpt lat lon> <name/> <desc/> </wpt>
    <metadata> <name/> </metadata>
    <trk> <name/> </trk>

Malformed fragments are dropped. The only fatal condition is a document with
zero usable track points.
"""

import html
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Iterator, Optional

from raceplanner.shared.constants import (
    CUMULATIVE_DISTANCE_DECIMALS,
    DISTANCE_DECIMALS,
    ELEVATION_DECIMALS,
    ELEVATION_NOISE_THRESHOLD_M,
)
from raceplanner.shared.geo import haversine
from .models import CourseStats, GpxPoint, GpxWaypoint, ParsedGpx

logger = logging.getLogger(__name__)


class GpxParseError(ValueError):
    """GPX document has no usable track."""
    pass


# =============================================================================
# Token scanner
# =============================================================================

_TOKEN_RE = re.compile(
    r"<!--.*?-->"
    r"|<!\[CDATA\[(?P<cdata>.*?)\]\]>"
    r"|<\?.*?\?>"
    r"|<![^>]*>"
    r"|<(?P<close>/)?(?P<tag>[A-Za-z_][\w:.\-]*)(?P<attrs>[^>]*?)(?P<empty>/)?>",
    re.DOTALL,
)

_ATTR_RE = re.compile(r"""([A-Za-z_][\w:.\-]*)\s*=\s*(?:"([^"]*)"|'([^']*)')""")

START, END, TEXT = "start", "end", "text"


@dataclass
class _Token:
    kind: str
    name: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ""


def _local_name(tag: str) -> str:
    """Strip namespace prefix and normalize case: 'gpx:TrkPt' -> 'trkpt'."""
    return tag.rsplit(":", 1)[-1].lower()


def _parse_attrs(raw: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for match in _ATTR_RE.finditer(raw):
        name = _local_name(match.group(1))
        value = match.group(2) if match.group(2) is not None else match.group(3)
        attrs.setdefault(name, html.unescape(value))
    return attrs


def _scan(content: str) -> Iterator[_Token]:
    """Yield start/end/text tokens. Comments, PIs and doctypes are skipped."""
    pos = 0
    for match in _TOKEN_RE.finditer(content):
        if match.start() > pos:
            yield _Token(TEXT, text=html.unescape(content[pos:match.start()]))
        pos = match.end()

        if match.group("cdata") is not None:
            yield _Token(TEXT, text=match.group("cdata"))
        elif match.group("tag"):
            name = _local_name(match.group("tag"))
            if match.group("close"):
                yield _Token(END, name)
            else:
                yield _Token(START, name, attrs=_parse_attrs(match.group("attrs")))
                if match.group("empty"):
                    yield _Token(END, name)

    if pos < len(content):
        yield _Token(TEXT, text=html.unescape(content[pos:]))


def _to_number(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# =============================================================================
# Course accumulator
# =============================================================================

class _CourseAccumulator:
    """Running distance, elevation and bounds over the point sequence."""

    def __init__(self, elevation_threshold_m: float):
        self.elevation_threshold_m = elevation_threshold_m
        self.points: list[GpxPoint] = []
        self.total_km = 0.0
        self.gain_m = 0.0
        self.loss_m = 0.0
        self.min_alt_m: Optional[float] = None
        self.max_alt_m: Optional[float] = None
        self.previous_elevation: Optional[float] = None
        self.bounds: Optional[list[float]] = None  # [min_lat, min_lng, max_lat, max_lng]

    def add(self, lat: float, lng: float, elevation: Optional[float], timestamp: Optional[str]) -> None:
        if self.points:
            previous = self.points[-1]
            self.total_km += haversine(previous.lat, previous.lng, lat, lng)

        if elevation is not None:
            self.min_alt_m = elevation if self.min_alt_m is None else min(self.min_alt_m, elevation)
            self.max_alt_m = elevation if self.max_alt_m is None else max(self.max_alt_m, elevation)

            if self.previous_elevation is not None:
                diff = elevation - self.previous_elevation
                if diff > self.elevation_threshold_m:
                    self.gain_m += diff
                elif diff < -self.elevation_threshold_m:
                    self.loss_m += abs(diff)
            self.previous_elevation = elevation

        if self.bounds is None:
            self.bounds = [lat, lng, lat, lng]
        else:
            self.bounds[0] = min(self.bounds[0], lat)
            self.bounds[1] = min(self.bounds[1], lng)
            self.bounds[2] = max(self.bounds[2], lat)
            self.bounds[3] = max(self.bounds[3], lng)

        self.points.append(GpxPoint(
            lat=lat,
            lng=lng,
            elevation_m=elevation,
            timestamp=timestamp,
            cumulative_distance_km=round(self.total_km, CUMULATIVE_DISTANCE_DECIMALS),
        ))

    def stats(self) -> CourseStats:
        first = self.points[0] if self.points else None
        min_lat, min_lng, max_lat, max_lng = self.bounds or (None, None, None, None)

        return CourseStats(
            distance_km=round(self.total_km, DISTANCE_DECIMALS),
            elevation_gain_m=round(self.gain_m, ELEVATION_DECIMALS),
            elevation_loss_m=round(self.loss_m, ELEVATION_DECIMALS),
            min_alt_m=None if self.min_alt_m is None else round(self.min_alt_m, ELEVATION_DECIMALS),
            max_alt_m=None if self.max_alt_m is None else round(self.max_alt_m, ELEVATION_DECIMALS),
            start_lat=first.lat if first else None,
            start_lng=first.lng if first else None,
            bounds_min_lat=min_lat,
            bounds_min_lng=min_lng,
            bounds_max_lat=max_lat,
            bounds_max_lng=max_lng,
        )


# =============================================================================
# Parser
# =============================================================================

@dataclass
class _Fragment:
    """An open <trkpt> or <wpt> and the child values seen so far."""
    attrs: dict[str, str]
    children: dict[str, str] = field(default_factory=dict)


class GPXParserService:
    """Service for parsing GPX files."""

    # child elements captured per container
    _POINT_CHILDREN = ("ele", "time")
    _WAYPOINT_CHILDREN = ("name", "desc")
    _NAMED_CONTAINERS = ("metadata", "trk")

    def __init__(self, elevation_threshold_m: float = ELEVATION_NOISE_THRESHOLD_M):
        self.elevation_threshold_m = elevation_threshold_m

    def parse(self, content: str | bytes) -> ParsedGpx:
        """
        Parse GPX content and extract route information.

        Args:
            content: GPX document as text or raw bytes (UTF-8)

        Returns:
            ParsedGpx with points, waypoints, stats and track name

        Raises:
            GpxParseError: If no valid track point was found
        """
        if isinstance(content, bytes):
            content = content.decode("utf-8-sig", errors="replace")
        content = content.lstrip("\ufeff")

        course = _CourseAccumulator(self.elevation_threshold_m)
        waypoints: list[GpxWaypoint] = []
        names: dict[str, str] = {}
        skipped_points = 0

        stack: list[str] = []
        point: Optional[_Fragment] = None
        waypoint: Optional[_Fragment] = None
        capture: Optional[tuple[str, str]] = None  # (element, parent)
        buffer: list[str] = []

        def close_point() -> None:
            nonlocal point, skipped_points
            if point is None:
                return
            lat = _to_number(point.attrs.get("lat"))
            lng = _to_number(point.attrs.get("lon"))
            if lat is None or lng is None:
                skipped_points += 1
            else:
                course.add(
                    lat,
                    lng,
                    _to_number(point.children.get("ele")),
                    _clean_text(point.children.get("time")),
                )
            point = None

        def close_waypoint() -> None:
            nonlocal waypoint
            if waypoint is None:
                return
            lat = _to_number(waypoint.attrs.get("lat"))
            lng = _to_number(waypoint.attrs.get("lon"))
            if lat is not None and lng is not None:
                waypoints.append(GpxWaypoint(
                    lat=lat,
                    lng=lng,
                    name=_clean_text(waypoint.children.get("name")),
                    description=_clean_text(waypoint.children.get("desc")),
                ))
            waypoint = None

        for token in _scan(content):
            if token.kind == TEXT:
                if capture is not None:
                    buffer.append(token.text)
                continue

            if token.kind == START:
                parent = stack[-1] if stack else None
                stack.append(token.name)

                if token.name == "trkpt":
                    close_point()  # unterminated previous point
                    point = _Fragment(token.attrs)
                    capture = None
                elif token.name == "wpt":
                    close_waypoint()
                    waypoint = _Fragment(token.attrs)
                    capture = None
                elif capture is None and (
                    (parent == "trkpt" and point is not None and token.name in self._POINT_CHILDREN)
                    or (parent == "wpt" and waypoint is not None and token.name in self._WAYPOINT_CHILDREN)
                    or (token.name == "name" and parent in self._NAMED_CONTAINERS)
                ):
                    capture = (token.name, parent)
                    buffer = []
                continue

            # END
            if capture is not None and token.name == capture[0]:
                element, parent = capture
                value = "".join(buffer)
                if parent == "trkpt" and point is not None:
                    point.children.setdefault(element, value)
                elif parent == "wpt" and waypoint is not None:
                    waypoint.children.setdefault(element, value)
                elif parent in self._NAMED_CONTAINERS:
                    names.setdefault(parent, value)
                capture = None
            elif capture is not None and token.name == capture[1]:
                capture = None  # child never closed

            if token.name in stack:
                while stack and stack.pop() != token.name:
                    pass

            if token.name == "trkpt":
                close_point()
            elif token.name == "wpt":
                close_waypoint()

        close_point()
        close_waypoint()

        if not course.points:
            logger.warning("GPX rejected: no track points found")
            raise GpxParseError("No track points found in GPX.")

        if skipped_points:
            logger.debug(f"Skipped {skipped_points} track points without coordinates")

        track_name = _clean_text(names.get("metadata")) or _clean_text(names.get("trk"))

        logger.debug(
            f"Parsed GPX: {len(course.points)} points, {len(waypoints)} waypoints, "
            f"{course.total_km:.2f} km"
        )

        return ParsedGpx(
            points=course.points,
            stats=course.stats(),
            waypoints=waypoints,
            name=track_name,
        )


def parse_gpx(content: str | bytes, elevation_threshold_m: float = ELEVATION_NOISE_THRESHOLD_M) -> ParsedGpx:
    """Parse with a one-off parser instance."""
    return GPXParserService(elevation_threshold_m).parse(content)
