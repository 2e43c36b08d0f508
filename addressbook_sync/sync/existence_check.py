"""Remote check for an already uploaded contact collection."""

import logging

from ..aws_clients.remote_store import RemoteStore, contacts_path
from ..models.contact_models import DeviceIdentity, short_identity

logger = logging.getLogger(__name__)


class RemoteExistenceCheck:
    """Authoritative guard that survives loss of the local flag."""

    def __init__(self, remote_store: RemoteStore):
        self.remote_store = remote_store

    async def has_remote_contacts(self, identity: DeviceIdentity) -> bool:
        """True iff the identity's remote collection exists and is non-empty.

        Reads at most one child.

        Raises:
            RemoteQueryError: If the read fails or times out
        """
        node = await self.remote_store.get(contacts_path(identity), limit=1)
        populated = node.exists and len(node.children) > 0
        logger.debug(f"Remote collection for {short_identity(identity)} populated={populated}")
        return populated
