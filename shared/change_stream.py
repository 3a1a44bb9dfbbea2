import logging
from typing import Iterable, List, Optional, Tuple

import redis

from .errors import BackendUnavailable
from .events import ChangeEvent, EventKind

logger = logging.getLogger(__name__)


def stream_key_for(table_name: str) -> str:
    return f"{table_name}:stream"


class ChangeStreamClient:
    """
    Ordered, durable change stream for registry mutations, backed by a Redis
    Stream and read through a consumer group (at-least-once delivery).
    """

    def __init__(self, redis_client: redis.Redis, stream_key: str, max_len: int = 100000):
        self.redis = redis_client
        self.stream_key = stream_key
        self.max_len = max_len

    def append(self, pipe, event_kind: EventKind, old_image: dict = None, new_image: dict = None):
        """Queue a change entry on a pipeline so it commits with the mutation."""
        event = ChangeEvent(event_kind=event_kind, event_id="", old_image=old_image, new_image=new_image)
        pipe.xadd(self.stream_key, event.to_fields(), maxlen=self.max_len, approximate=True)

    def ensure_group(self, group: str) -> bool:
        """Create the consumer group from the start of the stream. Returns False if it already existed."""
        try:
            self.redis.xgroup_create(self.stream_key, group, id='0', mkstream=True)
            logger.info(f"Created consumer group {group} on {self.stream_key}")
            return True
        except redis.exceptions.ResponseError as e:
            if 'BUSYGROUP' in str(e):
                return False
            raise BackendUnavailable(f"Failed to create consumer group {group}", e) from e
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Failed to create consumer group {group}", e) from e

    def read_group(self, group: str, consumer: str, count: int, block_ms: Optional[int] = None) -> List[ChangeEvent]:
        """Read entries never delivered to this group before."""
        try:
            response = self.redis.xreadgroup(
                group,
                consumer,
                {self.stream_key: '>'},
                count=count,
                # 0 would block forever
                block=block_ms or None,
            )
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Failed to read from {self.stream_key}", e) from e

        events = []
        for _stream, entries in response or []:
            events.extend(self._to_events(entries))
        return events

    def claim_stale(
        self,
        group: str,
        consumer: str,
        min_idle_ms: int,
        count: int,
        start_id: str = '0-0'
    ) -> Tuple[str, List[ChangeEvent]]:
        """
        Take over entries left unacknowledged for too long.

        Scans the pending list from `start_id` and returns the cursor to resume
        from along with the claimed events. The cursor is '0-0' once the scan
        has covered the whole list.
        """
        try:
            response = self.redis.xautoclaim(
                self.stream_key,
                group,
                consumer,
                min_idle_time=min_idle_ms,
                start_id=start_id,
                count=count,
            )
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Failed to claim pending entries on {self.stream_key}", e) from e

        if not response:
            return '0-0', []
        cursor = response[0] or '0-0'
        entries = response[1] if len(response) > 1 else []
        return cursor, self._to_events(entries)

    def pending_count(self, group: str, consumer: str) -> int:
        """Number of entries delivered to `consumer` and not yet acknowledged."""
        try:
            summary = self.redis.xpending(self.stream_key, group)
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Failed to read pending entries on {self.stream_key}", e) from e

        for entry in summary.get("consumers") or []:
            if entry["name"] == consumer:
                return int(entry["pending"])
        return 0

    def ack(self, group: str, event_ids: Iterable[str]) -> int:
        ids = list(event_ids)
        if not ids:
            return 0
        try:
            return self.redis.xack(self.stream_key, group, *ids)
        except redis.exceptions.RedisError as e:
            raise BackendUnavailable(f"Failed to acknowledge {len(ids)} entries", e) from e

    def length(self) -> int:
        return self.redis.xlen(self.stream_key)

    def _to_events(self, entries) -> List[ChangeEvent]:
        events = []
        for entry_id, fields in entries:
            # Entries trimmed from the stream come back without fields.
            if entry_id is None or fields is None:
                continue
            events.append(ChangeEvent.from_fields(entry_id, fields))
        return events
