"""Identity issuance and the one-time contact sync."""

from .coordinator import SyncCoordinator
from .existence_check import RemoteExistenceCheck
from .exporter import ContactExporter
from .identity_store import IdentityStore
from .state_tracker import SyncStateTracker

__all__ = ["SyncCoordinator", "RemoteExistenceCheck", "ContactExporter", "IdentityStore", "SyncStateTracker"]
