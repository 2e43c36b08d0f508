"""Remote store clients for Address Book Sync."""

from .remote_store import DynamoDBRemoteStore, RemoteNode, RemoteStore, contacts_path

__all__ = ["DynamoDBRemoteStore", "RemoteNode", "RemoteStore", "contacts_path"]
