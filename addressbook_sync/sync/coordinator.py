"""
Sync Coordinator

Decides, once per session, whether this device's contacts still have to be
exported:

- local flag set: nothing to do
- remote collection already populated: set the flag, nothing to export
- otherwise: export, then set the flag

Remote failures never escape; they turn into a deferred outcome and the
decision is made again at the next session start. The whole decide-then-act
sequence runs under a per-identity lock, so two calls in one process cannot
both see an empty remote collection and export twice. Processes sharing one
identity are not coordinated: the existence check is advisory.
"""

import asyncio
import logging
import weakref
from typing import Dict, Optional

from ..exceptions import (
    ContactSourceError, ExportError, PermissionDeniedError, PreferencesStorageError, RemoteQueryError
)
from ..models.contact_models import DeviceIdentity, short_identity
from ..models.sync_models import SyncOutcome
from .existence_check import RemoteExistenceCheck
from .exporter import ContactExporter
from .state_tracker import SyncStateTracker

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Runs the one-time contact export with idempotent decision logic."""

    def __init__(self,
                 state_tracker: SyncStateTracker,
                 existence_check: RemoteExistenceCheck,
                 exporter: ContactExporter):
        self.state_tracker = state_tracker
        self.existence_check = existence_check
        self.exporter = exporter
        # Entries disappear once no caller holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[DeviceIdentity, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._outcomes: Dict[DeviceIdentity, SyncOutcome] = {}

    @classmethod
    def from_context(cls, context) -> "SyncCoordinator":
        """Build the coordinator from a ``SessionContext``."""
        return cls(
            state_tracker=SyncStateTracker(context.preferences),
            existence_check=RemoteExistenceCheck(context.remote_store),
            exporter=ContactExporter(context.contact_source, context.remote_store)
        )

    def _lock_for(self, identity: DeviceIdentity) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    def last_outcome(self, identity: DeviceIdentity) -> Optional[SyncOutcome]:
        """Outcome of the most recent ``ensure_synced`` for this identity."""
        return self._outcomes.get(identity)

    async def ensure_synced(self, identity: DeviceIdentity) -> SyncOutcome:
        """Make sure this identity's contacts were exported exactly once.

        Never raises for remote, contact source or permission failures.

        Args:
            identity: Device identity to synchronize

        Returns:
            SyncOutcome describing what happened
        """
        lock = self._lock_for(identity)
        async with lock:
            outcome = await self._decide_and_act(identity)
        self._outcomes[identity] = outcome
        logger.info(f"Contact sync for {short_identity(identity)}: {outcome.value}")
        return outcome

    async def _decide_and_act(self, identity: DeviceIdentity) -> SyncOutcome:
        try:
            if self.state_tracker.is_synced(identity):
                return SyncOutcome.ALREADY_SYNCED
        except PreferencesStorageError as e:
            logger.error(f"Cannot read sync flag, skipping export this session: {e}")
            return SyncOutcome.DEFERRED

        try:
            populated = await self.existence_check.has_remote_contacts(identity)
        except RemoteQueryError as e:
            logger.warning(f"Remote existence check failed, export deferred: {e}")
            return SyncOutcome.DEFERRED

        if populated:
            self._mark_synced(identity)
            return SyncOutcome.REMOTE_POPULATED

        try:
            result = await self.exporter.export(identity)
        except PermissionDeniedError as e:
            logger.info(f"Contact export not permitted: {e}")
            return SyncOutcome.PERMISSION_DENIED
        except ExportError as e:
            logger.warning(f"Contact export failed, deferred to next session: {e}")
            return SyncOutcome.DEFERRED
        except ContactSourceError as e:
            logger.warning(f"Contact source unreadable, export deferred: {e}")
            return SyncOutcome.DEFERRED

        logger.info(f"Exported {result.exported} contacts for {short_identity(identity)}, "
                    f"skipped {result.skipped} malformed")
        self._mark_synced(identity)
        return SyncOutcome.EXPORTED

    def _mark_synced(self, identity: DeviceIdentity) -> None:
        # The remote collection already guards against re-export if this write is lost
        try:
            self.state_tracker.mark_synced(identity)
        except PreferencesStorageError as e:
            logger.error(f"Failed to persist sync flag for {short_identity(identity)}: {e}")
