"""Feature modules: gpx parsing, catalog ingestion, plan import."""
