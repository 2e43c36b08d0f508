"""Read side: browse identities and their synchronized contacts."""

import logging
from typing import Iterable, List

from ..aws_clients.remote_store import USERS_ROOT, RemoteStore, contacts_path
from ..exceptions import MalformedRecordError, RemoteQueryError
from ..models.contact_models import ContactRecord, DeviceIdentity, short_identity

logger = logging.getLogger(__name__)


def filter_contacts(contacts: Iterable[ContactRecord], query: str) -> List[ContactRecord]:
    """Contacts whose name contains ``query`` (any case) or whose phone contains it.

    An empty query matches everything. Input order is kept.
    """
    return [contact for contact in contacts if contact.matches(query)]


class DirectoryQueryService:
    """Remote reads for the administrative view. Failures degrade to empty results."""

    def __init__(self, remote_store: RemoteStore):
        self.remote_store = remote_store

    @classmethod
    def from_context(cls, context) -> "DirectoryQueryService":
        return cls(context.remote_store)

    async def list_identities(self) -> List[DeviceIdentity]:
        """Identities with data in the remote store, in no particular order."""
        try:
            node = await self.remote_store.get(USERS_ROOT)
        except RemoteQueryError as e:
            logger.warning(f"Failed to list identities: {e}")
            return []
        return list(node.children)

    async def list_contacts(self, identity: DeviceIdentity) -> List[ContactRecord]:
        """One identity's contacts in insertion order, malformed entries dropped."""
        try:
            node = await self.remote_store.get(contacts_path(identity))
        except RemoteQueryError as e:
            logger.warning(f"Failed to list contacts for {short_identity(identity)}: {e}")
            return []

        contacts: List[ContactRecord] = []
        for key, value in node.children.items():
            try:
                contacts.append(ContactRecord.from_raw(value))
            except MalformedRecordError as e:
                logger.debug(f"Dropping malformed remote contact {key}: {e}")
        return contacts

    def filter_contacts(self, contacts: Iterable[ContactRecord], query: str) -> List[ContactRecord]:
        return filter_contacts(contacts, query)
