"""
Tenant registry backed by Redis.

Each tenant is a hash keyed by its canonical name. Every mutation is written
in the same MULTI/EXEC transaction as its change-stream entry, so the stream
holds exactly one event per committed mutation.
"""
import logging
from typing import List, Optional

import redis

from shared.change_stream import ChangeStreamClient, stream_key_for
from shared.errors import BackendUnavailable, DuplicateName
from shared.events import EventKind
from .models import TenantRecord

logger = logging.getLogger(__name__)


class TenantRegistryClient:
    """Conditional writes, idempotent deletes and reads against the registry."""

    def __init__(self, redis_client: redis.Redis, table_name: str, stream: ChangeStreamClient = None,
                 stream_max_len: int = 100000):
        self.redis = redis_client
        self.table_name = table_name
        self.stream = stream or ChangeStreamClient(
            redis_client, stream_key_for(table_name), max_len=stream_max_len
        )

    @classmethod
    def from_config(cls, cfg, redis_client: redis.Redis = None) -> 'TenantRegistryClient':
        if redis_client is None:
            redis_client = redis.from_url(
                cfg.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=cfg.REGISTRY_TIMEOUT,
                socket_timeout=cfg.REGISTRY_TIMEOUT
            )
        return cls(redis_client, cfg.TABLE_NAME, stream_max_len=cfg.STREAM_MAX_LEN)

    def record_key(self, tenant_name: str) -> str:
        return f"{self.table_name}:tenant:{tenant_name}"

    def put_if_absent(self, record: TenantRecord) -> None:
        """
        Insert a record unless one with the same canonical name exists.

        Raises:
            DuplicateName: a live record already holds the name
            BackendUnavailable: the store failed or timed out
        """
        key = self.record_key(record.tenant_name)
        try:
            with self.redis.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        if pipe.exists(key):
                            raise DuplicateName(record.tenant_name)
                        pipe.multi()
                        pipe.hset(key, mapping=record.to_dict())
                        self.stream.append(pipe, EventKind.CREATED, new_image=record.to_dict())
                        pipe.execute()
                        return
                    except redis.WatchError:
                        # Someone touched the key; re-check the condition.
                        continue
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Registry write failed for {record.tenant_name}", e) from e

    def delete(self, tenant_name: str) -> Optional[TenantRecord]:
        """
        Delete a record by canonical name.

        Returns the deleted record, or None when nothing was registered under
        the name. Deleting an absent name is not an error and emits no event.
        """
        key = self.record_key(tenant_name)
        try:
            with self.redis.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        current = pipe.hgetall(key)
                        if not current:
                            pipe.unwatch()
                            return None
                        pipe.multi()
                        pipe.delete(key)
                        self.stream.append(pipe, EventKind.REMOVED, old_image=current)
                        pipe.execute()
                        return TenantRecord.from_dict(current)
                    except redis.WatchError:
                        continue
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Registry delete failed for {tenant_name}", e) from e

    def get(self, tenant_name: str) -> Optional[TenantRecord]:
        try:
            return TenantRecord.from_dict(self.redis.hgetall(self.record_key(tenant_name)))
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Registry read failed for {tenant_name}", e) from e

    def list_records(self) -> List[TenantRecord]:
        records = []
        try:
            for key in self.redis.scan_iter(match=self.record_key('*')):
                record = TenantRecord.from_dict(self.redis.hgetall(key))
                if record:
                    records.append(record)
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable("Registry scan failed", e) from e
        return sorted(records, key=lambda r: r.tenant_name)
