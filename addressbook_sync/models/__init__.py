"""Data models for Address Book Sync."""

from .contact_models import ContactRecord, DeviceIdentity, short_identity
from .sync_models import ExportResult, SyncOutcome

__all__ = [
    "ContactRecord",
    "DeviceIdentity",
    "short_identity",
    "ExportResult",
    "SyncOutcome"
]
