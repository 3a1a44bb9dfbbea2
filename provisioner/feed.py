import logging
from typing import List

from shared.change_stream import ChangeStreamClient
from shared.events import ChangeEvent
from .reactor import BatchReport

logger = logging.getLogger(__name__)


class ChangeFeedReader:
    """
    Reads batches of registry change events for one consumer of a group.

    Events are acknowledged only after processing; failed events stay pending
    and are reclaimed once they have been idle for `claim_idle_ms`. Until
    then no new entries are read past them.
    """

    def __init__(
        self,
        stream: ChangeStreamClient,
        group: str,
        consumer: str,
        batch_size: int = 100,
        block_ms: int = 5000,
        claim_idle_ms: int = 60000
    ):
        self.stream = stream
        self.group = group
        self.consumer = consumer
        self.batch_size = batch_size
        self.block_ms = block_ms
        self.claim_idle_ms = claim_idle_ms
        self._group_ready = False
        self._claim_cursor = '0-0'

    @classmethod
    def from_config(cls, cfg, stream: ChangeStreamClient) -> "ChangeFeedReader":
        return cls(
            stream,
            group=cfg.FEED_CONSUMER_GROUP,
            consumer=cfg.FEED_CONSUMER_NAME,
            batch_size=cfg.FEED_BATCH_SIZE,
            block_ms=cfg.FEED_BLOCK_MS,
            claim_idle_ms=cfg.FEED_CLAIM_IDLE_MS
        )

    def ensure_group(self):
        if not self._group_ready:
            self.stream.ensure_group(self.group)
            self._group_ready = True

    def next_batch(self) -> List[ChangeEvent]:
        """
        Redeliver stale pending entries, otherwise read new entries in stream order.

        Nothing new is read while this consumer still holds unacknowledged
        entries, so a failed event is retried before any later event for the
        same tenant can be processed.

        Raises:
            BackendUnavailable: the stream could not be read
        """
        self.ensure_group()

        self._claim_cursor, events = self.stream.claim_stale(
            self.group, self.consumer, self.claim_idle_ms, self.batch_size, start_id=self._claim_cursor
        )
        if events:
            logger.info(f"Reclaimed {len(events)} pending events for redelivery")
            return events

        pending = self.stream.pending_count(self.group, self.consumer)
        if pending:
            logger.debug(f"Holding new entries until {pending} pending events can be redelivered")
            return []

        return self.stream.read_group(self.group, self.consumer, self.batch_size, self.block_ms)

    def acknowledge(self, report: BatchReport) -> int:
        """Acknowledge every event that does not need redelivery."""
        return self.stream.ack(self.group, [o.event_id for o in report.completed])
