"""
Session Handler

Entry point invoked when a user session starts:
- Resolves (or creates) the device identity
- Runs the one-time contact sync, absorbing remote failures
- Serves directory reads for the presentation layer

Results are plain dictionaries so any front end can render them.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..config.config_manager import AppConfig, ConfigManager
from ..context import SessionContext
from ..directory.query_service import DirectoryQueryService
from ..exceptions import IdentityStorageError
from ..models.contact_models import short_identity
from ..models.sync_models import SyncOutcome
from ..sources.contact_source import PERMISSION_NOTICE
from ..sync.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "addressbook_sync"


def configure_logging(level: str) -> None:
    """Apply the configured level to the package logger."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not logging.getLogger().handlers and not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        package_logger.addHandler(handler)


class SessionHandler:
    """Session-scoped orchestration of identity, sync and directory reads."""

    def __init__(self, context: SessionContext):
        """Initialize the session handler.

        Args:
            context: Collaborators for this process
        """
        self.context = context
        self.coordinator = SyncCoordinator.from_context(context)
        self.query_service = DirectoryQueryService.from_context(context)

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> "SessionHandler":
        config = config or AppConfig.from_environment()
        configure_logging(config.log_level)
        return cls(SessionContext.from_config(config))

    async def start_session(self) -> Dict[str, Any]:
        """
        Resolve identity and run the sync decision once.

        Returns:
            Dict with identity, sync outcome, an optional user notice and,
            when the sync was deferred, the remote store health

        Raises:
            IdentityStorageError: If no identity can be loaded or created
        """
        identity = self.context.identity_store.get_or_create()
        logger.info(f"Starting session for device {short_identity(identity)}")

        outcome = await self.coordinator.ensure_synced(identity)

        result: Dict[str, Any] = {
            'identity': identity,
            'status': 'synced' if outcome.is_synced else 'not_synced',
            'outcome': outcome.value,
        }
        if outcome == SyncOutcome.PERMISSION_DENIED:
            result['notice'] = PERMISSION_NOTICE
        elif outcome == SyncOutcome.DEFERRED:
            result['remote_health'] = self.context.remote_store.get_health_status()
        return result

    async def browse(self, identity: Optional[str] = None, query: str = "") -> Dict[str, Any]:
        """
        Directory view: all identities, or one identity's filtered contacts.

        Args:
            identity: Identity whose contacts to list; None lists identities
            query: Filter applied to the contact list

        Returns:
            Dict suitable for rendering
        """
        if identity is None:
            identities = await self.query_service.list_identities()
            return {
                'identities': [
                    {'identity': i, 'label': f"{short_identity(i, 10)}..."} for i in identities
                ],
                'count': len(identities)
            }

        contacts = await self.query_service.list_contacts(identity)
        matches = self.query_service.filter_contacts(contacts, query)
        return {
            'identity': identity,
            'title': short_identity(identity),
            'query': query,
            'contacts': [contact.to_item() for contact in matches],
            'count': len(matches),
            'total': len(contacts)
        }


def run_session(config_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Synchronous entry point for a session start.

    Args:
        config_data: Optional configuration dictionary; environment variables
            are used when omitted

    Returns:
        Dict containing the session result, or an error description
    """
    try:
        if config_data is None:
            config = AppConfig.from_environment()
        else:
            config = ConfigManager().load_config(config_data)
        handler = SessionHandler.from_config(config)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return {'status': 'failed', 'error': 'Configuration error', 'message': str(e)}

    try:
        return asyncio.run(handler.start_session())
    except IdentityStorageError as e:
        logger.error(f"Device identity unavailable, session cannot proceed: {e}")
        return {'status': 'failed', 'error': 'Identity storage error', 'message': str(e)}
