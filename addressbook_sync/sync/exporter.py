"""Contact export: local source to the identity's remote collection."""

import asyncio
import logging
from typing import List, Tuple

from ..aws_clients.remote_store import RemoteStore, contacts_path, generate_child_key
from ..exceptions import ExportError, MalformedRecordError, RemoteWriteError
from ..models.contact_models import ContactRecord, DeviceIdentity, short_identity
from ..models.sync_models import ExportResult
from ..sources.contact_source import ContactSource, RawContact

logger = logging.getLogger(__name__)


def validate_contacts(raw_contacts: List[RawContact]) -> Tuple[List[ContactRecord], int]:
    """Split raw pairs into valid records and a count of malformed ones."""
    records: List[ContactRecord] = []
    skipped = 0
    for raw in raw_contacts:
        try:
            records.append(ContactRecord.from_raw(raw))
        except MalformedRecordError as e:
            skipped += 1
            logger.debug(f"Skipping malformed contact entry: {e}")
    return records, skipped


class ContactExporter:
    """Appends every valid local contact under a new generated key.

    Each record's key is generated once, before its first write, so the
    remote store's retries of that write overwrite the same child. The export
    as a whole is never restarted: a failure part way leaves a non-empty
    collection that the existence check reports as already uploaded.
    """

    def __init__(self, contact_source: ContactSource, remote_store: RemoteStore):
        self.contact_source = contact_source
        self.remote_store = remote_store

    def _read_source(self) -> List[RawContact]:
        return list(self.contact_source.read_contacts())

    async def export(self, identity: DeviceIdentity) -> ExportResult:
        """Export the full local contact list.

        Args:
            identity: Device identity owning the remote collection

        Returns:
            ExportResult: Counts of written and skipped records

        Raises:
            PermissionDeniedError: If the contact source is not accessible
            ExportError: If a remote write fails; ``written`` tells how many
                records were stored before the failure
        """
        raw_contacts = await asyncio.to_thread(self._read_source)
        records, skipped = validate_contacts(raw_contacts)
        path = contacts_path(identity)

        logger.info(f"Exporting {len(records)} contacts for {short_identity(identity)} "
                    f"({skipped} malformed entries skipped)")

        keys: List[str] = []
        for record in records:
            key = generate_child_key()
            try:
                await self.remote_store.append_child(path, record.to_item(), key=key)
            except RemoteWriteError as e:
                if keys:
                    logger.warning(f"Export for {short_identity(identity)} stopped after {len(keys)} of "
                                   f"{len(records)} records; the partial collection will not be retried")
                raise ExportError(
                    f"Export failed after {len(keys)} of {len(records)} records: {e}",
                    identity=identity,
                    written=len(keys)
                ) from e
            keys.append(key)

        return ExportResult(identity=identity, exported=len(keys), skipped=skipped, keys=keys)
