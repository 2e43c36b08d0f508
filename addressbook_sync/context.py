"""Process-wide collaborators shared by the coordinator and query service."""

from dataclasses import dataclass
from typing import Optional

import boto3

from .aws_clients.remote_store import DynamoDBRemoteStore, RemoteStore
from .config.config_manager import AppConfig
from .sources.contact_source import ContactSource, FileContactSource
from .storage.preferences import PreferencesStore
from .sync.identity_store import IdentityStore


@dataclass
class SessionContext:
    """Explicit replacement for ambient globals. Lives as long as the process."""
    config: AppConfig
    preferences: PreferencesStore
    remote_store: RemoteStore
    contact_source: ContactSource
    identity_store: IdentityStore

    @classmethod
    def from_config(cls, config: AppConfig, session: Optional[boto3.Session] = None) -> "SessionContext":
        """Wire the default file-backed and DynamoDB-backed collaborators."""
        preferences = PreferencesStore(config.local.preferences_path)
        return cls(
            config=config,
            preferences=preferences,
            remote_store=DynamoDBRemoteStore(
                settings=config.remote_store,
                retry_config=config.retry_config,
                session=session
            ),
            contact_source=FileContactSource(
                config.local.contact_source_path,
                permission_granted=config.local.permission_granted
            ),
            identity_store=IdentityStore(preferences)
        )
