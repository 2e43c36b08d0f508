"""Exception taxonomy for Address Book Sync."""

from typing import Optional


class AddressBookSyncError(Exception):
    """Base class for all errors raised by this package."""


class PreferencesStorageError(AddressBookSyncError):
    """Local preferences file could not be read or written."""


class IdentityStorageError(AddressBookSyncError):
    """Device identity could not be loaded or persisted. Fatal for the session."""


class PermissionDeniedError(AddressBookSyncError):
    """Access to the local contact source was not granted."""


class MalformedRecordError(AddressBookSyncError, ValueError):
    """A contact entry is missing its name or phone number."""

    def __init__(self, message: str, raw: Optional[object] = None):
        super().__init__(message)
        self.raw = raw


class RemoteQueryError(AddressBookSyncError):
    """A read against the remote store failed or timed out."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ExportError(AddressBookSyncError):
    """A write to the remote store failed during export.

    ``written`` is the number of records already stored when the export stopped.
    A non-zero value means the remote collection now exists and will not be
    written to again.
    """

    def __init__(self, message: str, identity: str, written: int = 0):
        super().__init__(message)
        self.identity = identity
        self.written = written

    @property
    def is_partial(self) -> bool:
        return self.written > 0


class RemoteWriteError(AddressBookSyncError):
    """A single append to the remote store failed after retries."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ContactSourceError(AddressBookSyncError):
    """The local contact source exists but could not be read or decoded."""
