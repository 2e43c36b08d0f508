"""Shared fakes and fixtures for Address Book Sync tests."""

from typing import Any, Dict, List, Optional

import pytest

from addressbook_sync.aws_clients.remote_store import RemoteNode, generate_child_key, parse_path
from addressbook_sync.exceptions import PermissionDeniedError, RemoteQueryError, RemoteWriteError
from addressbook_sync.sources.contact_source import PERMISSION_NOTICE
from addressbook_sync.storage.preferences import PreferencesStore
from addressbook_sync.sync.coordinator import SyncCoordinator
from addressbook_sync.sync.existence_check import RemoteExistenceCheck
from addressbook_sync.sync.exporter import ContactExporter
from addressbook_sync.sync.state_tracker import SyncStateTracker


class InMemoryRemoteStore:
    """Remote store fake with the same path contract and failure switches."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Any]] = {}
        self.fail_reads = False
        self.fail_writes_after: Optional[int] = None
        self.read_calls: List[str] = []
        self.write_calls: List[str] = []

    async def get(self, path: str, limit: Optional[int] = None) -> RemoteNode:
        self.read_calls.append(path)
        if self.fail_reads:
            raise RemoteQueryError(f"simulated read failure for {path}", path=path)

        kind, identity = parse_path(path)
        if kind == "root":
            identities = [i for i, children in self.collections.items() if children]
            return RemoteNode(path=path, exists=bool(identities), children={i: {} for i in identities})

        children = dict(self.collections.get(identity, {}))
        if limit is not None:
            children = dict(list(children.items())[:limit])
        return RemoteNode(path=path, exists=bool(children), children=children)

    async def append_child(self, path: str, value: Dict[str, Any], key: Optional[str] = None) -> str:
        if self.fail_writes_after is not None and len(self.write_calls) >= self.fail_writes_after:
            raise RemoteWriteError(f"simulated write failure for {path}", path=path)
        _, identity = parse_path(path)
        child_key = key or generate_child_key()
        self.collections.setdefault(identity, {})[child_key] = dict(value)
        self.write_calls.append(child_key)
        return child_key

    def get_health_status(self) -> Dict[str, Any]:
        return {"overall_health": "unhealthy" if self.fail_reads else "healthy"}

    def contacts_of(self, identity: str) -> List[Dict[str, Any]]:
        return list(self.collections.get(identity, {}).values())


class ListContactSource:
    """Contact source over an in-memory list of raw pairs."""

    def __init__(self, contacts: List[Dict[str, Any]], permission_granted: bool = True):
        self.contacts = contacts
        self.permission_granted = permission_granted
        self.reads = 0

    def read_contacts(self):
        self.reads += 1
        if not self.permission_granted:
            raise PermissionDeniedError(PERMISSION_NOTICE)
        return iter(list(self.contacts))


class CountingExporter(ContactExporter):
    """Exporter that counts how many exports were started."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.export_calls = 0

    async def export(self, identity):
        self.export_calls += 1
        return await super().export(identity)


SAMPLE_CONTACTS = [
    {"displayName": "Ada Lovelace", "phoneNumber": "555-1111"},
    {"displayName": "bob", "phoneNumber": "555-2222"},
    {"displayName": "Grace Hopper", "phoneNumber": "555-3333"},
]

IDENTITY = "0f8fad5b-d9cb-469f-a165-70867728950e"


@pytest.fixture
def remote_store():
    return InMemoryRemoteStore()


@pytest.fixture
def contact_source():
    return ListContactSource(list(SAMPLE_CONTACTS))


@pytest.fixture
def preferences(tmp_path):
    return PreferencesStore(tmp_path / "prefs.json")


@pytest.fixture
def state_tracker(preferences):
    return SyncStateTracker(preferences)


@pytest.fixture
def exporter(contact_source, remote_store):
    return CountingExporter(contact_source, remote_store)


@pytest.fixture
def coordinator(state_tracker, remote_store, exporter):
    return SyncCoordinator(
        state_tracker=state_tracker,
        existence_check=RemoteExistenceCheck(remote_store),
        exporter=exporter
    )
