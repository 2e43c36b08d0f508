"""Tests for the one-time sync decision protocol.

Covers idempotence across repeated session starts, fail-safe behavior when the
remote check fails, the same-process race, and partial exports.
"""

import asyncio
import gc

import pytest
from hypothesis import given, settings, strategies as st

from addressbook_sync.models.sync_models import SyncOutcome
from addressbook_sync.exceptions import PreferencesStorageError
from addressbook_sync.sources.contact_source import FileContactSource
from addressbook_sync.sync.coordinator import SyncCoordinator
from addressbook_sync.sync.existence_check import RemoteExistenceCheck
from addressbook_sync.sync.state_tracker import SyncStateTracker

from conftest import (
    IDENTITY, SAMPLE_CONTACTS, CountingExporter, InMemoryRemoteStore, ListContactSource
)


class DictStorage:
    """Preferences stand-in that can be told to fail."""

    def __init__(self):
        self.values = {}
        self.fail_reads = False
        self.fail_writes = False

    def get(self, key):
        if self.fail_reads:
            raise PreferencesStorageError("disk unavailable")
        return self.values.get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise PreferencesStorageError("disk full")
        self.values[key] = value


def _build(contacts=None, remote=None, storage=None, permission_granted=True):
    remote = remote or InMemoryRemoteStore()
    storage = storage or DictStorage()
    source = ListContactSource(list(SAMPLE_CONTACTS if contacts is None else contacts), permission_granted)
    exporter = CountingExporter(source, remote)
    tracker = SyncStateTracker(storage)
    coordinator = SyncCoordinator(tracker, RemoteExistenceCheck(remote), exporter)
    return coordinator, tracker, remote, exporter


class TestEnsureSynced:
    """Decision branches of ensure_synced."""

    @pytest.mark.asyncio
    async def test_first_session_exports_and_marks_synced(self, coordinator, state_tracker, remote_store, exporter):
        outcome = await coordinator.ensure_synced(IDENTITY)

        assert outcome == SyncOutcome.EXPORTED
        assert state_tracker.is_synced(IDENTITY) is True
        assert exporter.export_calls == 1
        assert remote_store.contacts_of(IDENTITY) == [
            {"name": "Ada Lovelace", "phone": "555-1111"},
            {"name": "bob", "phone": "555-2222"},
            {"name": "Grace Hopper", "phone": "555-3333"},
        ]

    @pytest.mark.asyncio
    async def test_local_flag_short_circuits_remote_check(self, coordinator, state_tracker, remote_store, exporter):
        state_tracker.mark_synced(IDENTITY)

        outcome = await coordinator.ensure_synced(IDENTITY)

        assert outcome == SyncOutcome.ALREADY_SYNCED
        assert remote_store.read_calls == []
        assert exporter.export_calls == 0

    @pytest.mark.asyncio
    async def test_remote_already_populated_sets_flag_without_writes(self, coordinator, state_tracker, remote_store, exporter):
        await remote_store.append_child(f"users/{IDENTITY}/contacts", {"name": "Old", "phone": "1"})
        writes_before = len(remote_store.write_calls)

        outcome = await coordinator.ensure_synced(IDENTITY)

        assert outcome == SyncOutcome.REMOTE_POPULATED
        assert state_tracker.is_synced(IDENTITY) is True
        assert exporter.export_calls == 0
        assert len(remote_store.write_calls) == writes_before

    @pytest.mark.asyncio
    async def test_existence_check_failure_defers_without_side_effects(self, coordinator, state_tracker, remote_store, exporter):
        remote_store.fail_reads = True

        outcome = await coordinator.ensure_synced(IDENTITY)

        assert outcome == SyncOutcome.DEFERRED
        assert state_tracker.is_synced(IDENTITY) is False
        assert exporter.export_calls == 0
        assert remote_store.collections == {}

    @pytest.mark.asyncio
    async def test_deferred_session_retries_on_next_start(self, coordinator, state_tracker, remote_store):
        remote_store.fail_reads = True
        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.DEFERRED

        remote_store.fail_reads = False
        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.EXPORTED
        assert len(remote_store.contacts_of(IDENTITY)) == len(SAMPLE_CONTACTS)

    @pytest.mark.asyncio
    async def test_write_failure_before_any_record_is_retried_next_session(self):
        coordinator, tracker, remote, exporter = _build()
        remote.fail_writes_after = 0

        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.DEFERRED
        assert tracker.is_synced(IDENTITY) is False
        assert remote.contacts_of(IDENTITY) == []

        remote.fail_writes_after = None
        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.EXPORTED
        assert exporter.export_calls == 2
        assert len(remote.contacts_of(IDENTITY)) == len(SAMPLE_CONTACTS)

    @pytest.mark.asyncio
    async def test_partial_export_is_never_retried(self):
        coordinator, tracker, remote, exporter = _build()
        remote.fail_writes_after = 1

        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.DEFERRED
        assert tracker.is_synced(IDENTITY) is False
        assert len(remote.contacts_of(IDENTITY)) == 1

        remote.fail_writes_after = None
        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.REMOTE_POPULATED
        assert tracker.is_synced(IDENTITY) is True
        assert exporter.export_calls == 1
        assert len(remote.contacts_of(IDENTITY)) == 1

    @pytest.mark.asyncio
    async def test_permission_denied_is_terminal_for_session(self):
        coordinator, tracker, remote, exporter = _build(permission_granted=False)

        outcome = await coordinator.ensure_synced(IDENTITY)

        assert outcome == SyncOutcome.PERMISSION_DENIED
        assert tracker.is_synced(IDENTITY) is False
        assert remote.write_calls == []

    @pytest.mark.asyncio
    async def test_empty_source_counts_as_exported(self):
        coordinator, tracker, remote, exporter = _build(contacts=[])

        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.EXPORTED
        assert tracker.is_synced(IDENTITY) is True
        assert remote.write_calls == []

    @pytest.mark.asyncio
    async def test_unreadable_flag_defers_without_export(self):
        storage = DictStorage()
        storage.fail_reads = True
        coordinator, tracker, remote, exporter = _build(storage=storage)

        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.DEFERRED
        assert exporter.export_calls == 0
        assert remote.read_calls == []

    @pytest.mark.asyncio
    async def test_unwritable_flag_still_reports_export(self):
        storage = DictStorage()
        storage.fail_writes = True
        coordinator, tracker, remote, exporter = _build(storage=storage)

        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.EXPORTED

        # The populated remote collection now guards the next session
        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.REMOTE_POPULATED
        assert exporter.export_calls == 1

    @pytest.mark.asyncio
    async def test_undecodable_contact_file_defers(self, tmp_path, state_tracker, remote_store):
        """Test an unreadable source leaves the session unsynced and retries next time."""
        path = tmp_path / "contacts.vcf"
        path.write_bytes(b"BEGIN:VCARD\nFN:Z\xfcrich\nTEL:555\nEND:VCARD\n")
        exporter = CountingExporter(FileContactSource(path, permission_granted=True), remote_store)
        coordinator = SyncCoordinator(state_tracker, RemoteExistenceCheck(remote_store), exporter)

        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.DEFERRED
        assert state_tracker.is_synced(IDENTITY) is False
        assert remote_store.write_calls == []

        path.write_text("BEGIN:VCARD\nFN:Z\u00fcrich\nTEL:555\nEND:VCARD\n", encoding="utf-8")
        assert await coordinator.ensure_synced(IDENTITY) == SyncOutcome.EXPORTED
        assert remote_store.contacts_of(IDENTITY) == [{"name": "Z\u00fcrich", "phone": "555"}]

    @pytest.mark.asyncio
    async def test_last_outcome_is_recorded(self, coordinator):
        assert coordinator.last_outcome(IDENTITY) is None
        await coordinator.ensure_synced(IDENTITY)
        assert coordinator.last_outcome(IDENTITY) == SyncOutcome.EXPORTED


class TestConcurrentSync:
    """Same-process race between two session starts."""

    @pytest.mark.asyncio
    async def test_concurrent_calls_export_once(self, coordinator, remote_store, exporter):
        outcomes = await asyncio.gather(
            coordinator.ensure_synced(IDENTITY),
            coordinator.ensure_synced(IDENTITY),
        )

        assert exporter.export_calls == 1
        assert sorted(o.value for o in outcomes) == ["already_synced", "exported"]
        assert len(remote_store.contacts_of(IDENTITY)) == len(SAMPLE_CONTACTS)

    @pytest.mark.asyncio
    async def test_different_identities_do_not_block_each_other(self, coordinator, remote_store, exporter):
        other = "7c9e6679-7425-40de-944b-e07fc1f90ae7"

        outcomes = await asyncio.gather(
            coordinator.ensure_synced(IDENTITY),
            coordinator.ensure_synced(other),
        )

        assert outcomes == [SyncOutcome.EXPORTED, SyncOutcome.EXPORTED]
        assert exporter.export_calls == 2

    @pytest.mark.asyncio
    async def test_released_locks_are_not_retained(self, coordinator):
        identities = [f"identity-{i}" for i in range(20)]

        await asyncio.gather(*(coordinator.ensure_synced(i) for i in identities))
        gc.collect()

        assert len(coordinator._locks) == 0


@pytest.mark.property
class TestSyncIdempotence:
    """Repeated session starts never duplicate the upload."""

    @given(
        sessions=st.integers(min_value=1, max_value=8),
        concurrent=st.booleans(),
        contacts=st.lists(
            st.fixed_dictionaries({
                "displayName": st.one_of(st.none(), st.text(max_size=12)),
                "phoneNumber": st.one_of(st.none(), st.text(alphabet="0123456789- ", max_size=10)),
            }),
            max_size=15
        )
    )
    @settings(max_examples=50, deadline=None)
    def test_n_sessions_export_exactly_once(self, sessions, concurrent, contacts):
        coordinator, tracker, remote, exporter = _build(contacts=contacts)

        async def run():
            if concurrent:
                return await asyncio.gather(*(coordinator.ensure_synced(IDENTITY) for _ in range(sessions)))
            return [await coordinator.ensure_synced(IDENTITY) for _ in range(sessions)]

        outcomes = asyncio.run(run())

        valid = [
            c for c in contacts
            if isinstance(c["displayName"], str) and c["displayName"].strip()
            and isinstance(c["phoneNumber"], str) and c["phoneNumber"].strip()
        ]
        assert exporter.export_calls == 1
        assert outcomes.count(SyncOutcome.EXPORTED) == 1
        assert len(remote.contacts_of(IDENTITY)) == len(valid)
        assert tracker.is_synced(IDENTITY) is True
