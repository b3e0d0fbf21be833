"""
Ingestion constants.

Single source of truth for the numbers that end up persisted as course facts.
"""

# Earth radius in kilometers (6,371,000 m)
EARTH_RADIUS_KM = 6371.0

# Elevation deltas at or below this value (meters) are treated as GPS jitter
# when accumulating gain and loss.
ELEVATION_NOISE_THRESHOLD_M = 1.0

# Rounding applied to derived values
CUMULATIVE_DISTANCE_DECIMALS = 3
DISTANCE_DECIMALS = 2
ELEVATION_DECIMALS = 1

GPX_CONTENT_TYPE = "application/gpx+xml"
