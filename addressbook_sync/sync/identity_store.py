"""Durable anonymous device identity."""

import logging
import threading
import uuid
from typing import Optional

from ..exceptions import IdentityStorageError, PreferencesStorageError
from ..models.contact_models import DeviceIdentity, short_identity
from ..storage.preferences import PreferencesStore

logger = logging.getLogger(__name__)

DEVICE_IDENTITY_KEY = "deviceIdentity"


class IdentityStore:
    """Issues the installation's identity once and returns it ever after."""

    def __init__(self, storage: PreferencesStore):
        self.storage = storage
        self._lock = threading.Lock()
        self._identity: Optional[DeviceIdentity] = None

    def get_or_create(self) -> DeviceIdentity:
        """Return the persisted identity, generating and persisting one on first use.

        Returns:
            DeviceIdentity: UUID4 text

        Raises:
            IdentityStorageError: If the identity cannot be read or persisted, or
                the stored value is not a usable identity
        """
        with self._lock:
            if self._identity is not None:
                return self._identity

            try:
                stored = self.storage.get(DEVICE_IDENTITY_KEY)
            except PreferencesStorageError as e:
                raise IdentityStorageError(f"Failed to load device identity: {e}") from e

            if stored is None:
                identity = str(uuid.uuid4())
                try:
                    self.storage.set(DEVICE_IDENTITY_KEY, identity)
                except PreferencesStorageError as e:
                    raise IdentityStorageError(f"Failed to persist device identity: {e}") from e
                logger.info(f"Generated new device identity {short_identity(identity)}")
            elif isinstance(stored, str) and stored.strip():
                identity = stored.strip()
            else:
                raise IdentityStorageError(f"Stored device identity is corrupt: {stored!r}")

            self._identity = identity
            return identity
