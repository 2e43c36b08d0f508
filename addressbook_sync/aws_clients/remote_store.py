"""DynamoDB-backed remote keyed store with path addressing.

The remote store is a small tree::

    users/
      <identity>/
        contacts/
          <generated key> -> {"name": ..., "phone": ...}

It is laid out on one DynamoDB table with partition key ``user_id`` and sort
key ``contact_key``. Generated keys are time-ordered, so sort-key order is
insertion order.
"""

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Protocol, Tuple

import boto3
from boto3.dynamodb.conditions import Key
from botocore.config import Config as BotoConfig

from ..config.config_manager import RemoteStoreSettings, RetryConfig
from ..error_handling.recovery_manager import RecoveryConfig, RecoveryManager
from ..exceptions import RemoteQueryError, RemoteWriteError

logger = logging.getLogger(__name__)

USERS_ROOT = "users"
CONTACTS_NODE = "contacts"
KEY_ATTRIBUTES = ("user_id", "contact_key", "created_at")


def contacts_path(identity: str) -> str:
    """Path of an identity's contact collection."""
    return f"{USERS_ROOT}/{identity}/{CONTACTS_NODE}"


def parse_path(path: str) -> Tuple[str, Optional[str]]:
    """Split a store path into its node kind and identity.

    Returns:
        ("root", None) for ``users`` or ("contacts", identity) for
        ``users/<identity>/contacts``

    Raises:
        ValueError: For any other path
    """
    parts = [part for part in path.strip("/").split("/") if part]
    if parts == [USERS_ROOT]:
        return "root", None
    if len(parts) == 3 and parts[0] == USERS_ROOT and parts[2] == CONTACTS_NODE:
        return "contacts", parts[1]
    raise ValueError(f"Unsupported remote path: {path}")


class _KeyGenerator:
    """Time-ordered unique child keys, strictly increasing within a process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._last = 0

    def __call__(self) -> str:
        with self._lock:
            now = max(time.time_ns(), self._last + 1)
            self._last = now
        return f"{now:020d}-{uuid.uuid4().hex[:8]}"


generate_child_key = _KeyGenerator()


@dataclass
class RemoteNode:
    """Snapshot of one node: whether it exists and its children in key order."""
    path: str
    exists: bool
    children: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.children)


class RemoteStore(Protocol):
    """Operations the sync core needs from the remote keyed store."""

    async def get(self, path: str, limit: Optional[int] = None) -> RemoteNode:
        ...

    async def append_child(self, path: str, value: Dict[str, Any], key: Optional[str] = None) -> str:
        ...

    def get_health_status(self) -> Dict[str, Any]:
        ...


class DynamoDBRemoteStore:
    """Remote keyed store on a single DynamoDB table."""

    def __init__(self,
                 settings: Optional[RemoteStoreSettings] = None,
                 retry_config: Optional[RetryConfig] = None,
                 session: Optional[boto3.Session] = None,
                 recovery_manager: Optional[RecoveryManager] = None):
        """Initialize the remote store.

        Args:
            settings: Table name, region, endpoint and call timeout
            retry_config: Retry settings for each remote call
            session: Optional boto3 session for testing
            recovery_manager: Optional recovery manager for testing
        """
        self.settings = settings or RemoteStoreSettings()
        self.retry_config = retry_config or RetryConfig()
        self.session = session or boto3.Session()
        self.recovery_manager = recovery_manager or RecoveryManager(config=RecoveryConfig(
            max_retry_attempts=self.retry_config.max_attempts,
            base_retry_delay=self.retry_config.base_delay,
            max_retry_delay=self.retry_config.max_delay
        ))
        self._dynamodb = None
        self._table = None

    def _get_table(self):
        """Get DynamoDB table resource with lazy initialization."""
        if self._table is None:
            if self._dynamodb is None:
                # Retries are owned by the recovery manager
                boto_config = BotoConfig(
                    connect_timeout=self.settings.timeout_seconds,
                    read_timeout=self.settings.timeout_seconds,
                    retries={'max_attempts': 1, 'mode': 'standard'}
                )
                self._dynamodb = self.session.resource(
                    'dynamodb',
                    region_name=self.settings.region,
                    endpoint_url=self.settings.endpoint_url,
                    config=boto_config
                )
            self._table = self._dynamodb.Table(self.settings.table_name)
        return self._table

    def _query_contacts(self, identity: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Read an identity's contact items in sort-key order, following pagination."""
        table = self._get_table()
        query_kwargs: Dict[str, Any] = {'KeyConditionExpression': Key('user_id').eq(identity)}
        if limit is not None:
            query_kwargs['Limit'] = limit

        items: List[Dict[str, Any]] = []
        while True:
            response = table.query(**query_kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key or (limit is not None and len(items) >= limit):
                break
            query_kwargs['ExclusiveStartKey'] = last_key

        return items if limit is None else items[:limit]

    def _scan_identities(self) -> List[str]:
        """Distinct partition keys, in first-seen order."""
        table = self._get_table()
        scan_kwargs: Dict[str, Any] = {'ProjectionExpression': 'user_id'}

        seen: Dict[str, None] = {}
        while True:
            response = table.scan(**scan_kwargs)
            for item in response.get('Items', []):
                user_id = item.get('user_id')
                if isinstance(user_id, str) and user_id:
                    seen.setdefault(user_id, None)
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                break
            scan_kwargs['ExclusiveStartKey'] = last_key

        return list(seen)

    def _put_child(self, identity: str, key: str, value: Dict[str, Any]) -> None:
        item = dict(value)
        item.update({
            'user_id': identity,
            'contact_key': key,
            'created_at': datetime.now(UTC).isoformat()
        })
        self._get_table().put_item(Item=item)

    def get_health_status(self) -> Dict[str, Any]:
        """Retry settings and circuit breaker states for the table operations."""
        return self.recovery_manager.get_health_status()

    async def _run(self, operation_name: str, error_cls, path: str, func, *args) -> Any:
        """Run a blocking table call off the event loop with retries and a deadline."""
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.recovery_manager.execute_with_recovery, operation_name, func, *args),
                timeout=self.settings.timeout_seconds * self.retry_config.max_attempts + self.retry_config.max_delay
            )
        except asyncio.TimeoutError:
            raise error_cls(f"{operation_name} timed out for {path}", path=path)

        if not result.success:
            message = result.classification.user_message if result.classification else str(result.error)
            raise error_cls(f"{operation_name} failed for {path}: {message}", path=path) from result.error
        return result.result

    async def get(self, path: str, limit: Optional[int] = None) -> RemoteNode:
        """Read a node and its children.

        Args:
            path: ``users`` or ``users/<identity>/contacts``
            limit: Maximum number of children to read (contacts only)

        Returns:
            RemoteNode: ``exists`` is False when the node has no children

        Raises:
            RemoteQueryError: If the read fails after retries or times out
            ValueError: If the path is not supported
        """
        kind, identity = parse_path(path)

        if kind == "root":
            identities = await self._run("scan_identities", RemoteQueryError, path, self._scan_identities)
            return RemoteNode(path=path, exists=bool(identities), children={i: {} for i in identities})

        items = await self._run("query_contacts", RemoteQueryError, path, self._query_contacts, identity, limit)
        children = {
            item['contact_key']: {k: v for k, v in item.items() if k not in KEY_ATTRIBUTES}
            for item in items
        }
        return RemoteNode(path=path, exists=bool(children), children=children)

    async def append_child(self, path: str, value: Dict[str, Any], key: Optional[str] = None) -> str:
        """Store ``value`` under a new generated key below ``path``.

        Passing a previously generated ``key`` makes the call an idempotent
        overwrite of that child.

        Returns:
            str: The child key

        Raises:
            RemoteWriteError: If the write fails after retries or times out
            ValueError: If the path is not a contact collection
        """
        kind, identity = parse_path(path)
        if kind != "contacts":
            raise ValueError(f"Cannot append below {path}")

        child_key = key or generate_child_key()
        await self._run("put_contact", RemoteWriteError, path, self._put_child, identity, child_key, value)
        logger.debug(f"Appended child {child_key} under {USERS_ROOT}/{identity[:8]}/{CONTACTS_NODE}")
        return child_key
