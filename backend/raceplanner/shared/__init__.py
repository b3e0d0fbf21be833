"""
Shared utilities used across features.

Usage:
    from raceplanner.shared.geo import haversine
    from raceplanner.shared.hashing import content_sha256
    from raceplanner.shared.saga import Saga, SagaStep
"""
