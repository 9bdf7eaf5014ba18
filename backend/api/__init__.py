"""API route handlers."""
from . import configurations, event_logs, historical_sync, records

__all__ = ["configurations", "event_logs", "historical_sync", "records"]
