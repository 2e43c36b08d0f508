"""Synchronization result data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class SyncOutcome(Enum):
    """Result of one ``ensure_synced`` invocation."""
    ALREADY_SYNCED = "already_synced"      # Local flag was already set
    REMOTE_POPULATED = "remote_populated"  # Remote had data, flag now set
    EXPORTED = "exported"                  # Export ran, flag now set
    DEFERRED = "deferred"                  # Remote failure, retry next session
    PERMISSION_DENIED = "permission_denied"

    @property
    def is_synced(self) -> bool:
        return self in (SyncOutcome.ALREADY_SYNCED, SyncOutcome.REMOTE_POPULATED, SyncOutcome.EXPORTED)


@dataclass
class ExportResult:
    """Summary of a completed export run."""
    identity: str
    exported: int = 0
    skipped: int = 0
    keys: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate fields."""
        if not self.identity.strip():
            raise ValueError("identity cannot be empty")
        if self.exported < 0:
            raise ValueError("exported cannot be negative")
        if self.skipped < 0:
            raise ValueError("skipped cannot be negative")

    @property
    def total_read(self) -> int:
        return self.exported + self.skipped
