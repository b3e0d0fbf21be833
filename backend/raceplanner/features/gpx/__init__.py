"""
GPX file handling module.

Usage:
    from raceplanner.features.gpx import GPXParserService, GpxParseError

Components:
- GPXParserService: Permissive GPX scanner producing points, waypoints, stats
- GpxPoint / GpxWaypoint / CourseStats / ParsedGpx: parse results
"""

from .models import CourseStats, GpxPoint, GpxWaypoint, ParsedGpx
from .parser import GPXParserService, GpxParseError, parse_gpx

__all__ = [
    # Service
    "GPXParserService",
    "GpxParseError",
    "parse_gpx",
    # Models
    "CourseStats",
    "GpxPoint",
    "GpxWaypoint",
    "ParsedGpx",
]
