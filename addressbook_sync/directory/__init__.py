"""Directory queries over synchronized contacts."""

from .query_service import DirectoryQueryService, filter_contacts

__all__ = ["DirectoryQueryService", "filter_contacts"]
