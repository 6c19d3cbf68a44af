"""League Tracker: summoner refresh pipeline and challenge aggregation."""

__version__ = "0.1.0"
