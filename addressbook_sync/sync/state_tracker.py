"""Local "contacts already exported" flag."""

import logging

from ..models.contact_models import DeviceIdentity, short_identity
from ..storage.preferences import PreferencesStore

logger = logging.getLogger(__name__)

CONTACTS_UPLOADED_KEY = "contactsUploaded"


def flag_key(identity: DeviceIdentity) -> str:
    return f"{CONTACTS_UPLOADED_KEY}/{identity}"


class SyncStateTracker:
    """Per-identity boolean flag in local preferences. Never reset."""

    def __init__(self, storage: PreferencesStore):
        self.storage = storage

    def is_synced(self, identity: DeviceIdentity) -> bool:
        """True only if the flag was stored as boolean True.

        Raises:
            PreferencesStorageError: If preferences cannot be read
        """
        value = self.storage.get(flag_key(identity))
        if value is not None and not isinstance(value, bool):
            logger.warning(f"Ignoring non-boolean sync flag for {short_identity(identity)}: {value!r}")
            return False
        return value is True

    def mark_synced(self, identity: DeviceIdentity) -> None:
        """
        Raises:
            PreferencesStorageError: If preferences cannot be written
        """
        self.storage.set(flag_key(identity), True)
        logger.info(f"Marked contacts as uploaded for {short_identity(identity)}")
