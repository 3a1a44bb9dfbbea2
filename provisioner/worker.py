import logging
import threading
from typing import Optional

import redis

from shared.change_stream import ChangeStreamClient, stream_key_for
from shared.config import get_config
from shared.errors import BackendUnavailable
from .feed import ChangeFeedReader
from .reactor import BatchReport, ProvisioningReactor
from .stack_manager import StackManagerClient

logger = logging.getLogger(__name__)


class ReactorWorker:
    """Feeds batches from the change feed through the reactor until stopped."""

    def __init__(self, feed: ChangeFeedReader, reactor: ProvisioningReactor, idle_sleep: float = 1.0):
        self.feed = feed
        self.reactor = reactor
        self.idle_sleep = idle_sleep
        self._stop = threading.Event()

    def run_once(self) -> Optional[BatchReport]:
        """Process one batch. Returns None when the feed had nothing to deliver."""
        events = self.feed.next_batch()
        if not events:
            return None

        report = self.reactor.process_batch(events)
        acked = self.feed.acknowledge(report)
        logger.debug(f"Acknowledged {acked} of {len(events)} events")
        return report

    def run_forever(self):
        logger.info(f"Reactor worker {self.feed.consumer} listening on {self.feed.stream.stream_key}")
        while not self._stop.is_set():
            try:
                report = self.run_once()
            except BackendUnavailable as e:
                logger.error(f"Change feed unavailable, backing off: {e} ({e.cause!r})")
                self._stop.wait(self.idle_sleep)
                continue

            if report is None:
                self._stop.wait(self.idle_sleep)
        logger.info("Reactor worker stopped")

    def stop(self):
        self._stop.set()


def create_worker(config_name: str = None, redis_client: redis.Redis = None,
                  stack_client=None) -> ReactorWorker:
    """Factory for the provisioning worker."""
    cfg = get_config(config_name)

    if redis_client is None:
        redis_client = redis.from_url(
            cfg.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=cfg.REGISTRY_TIMEOUT,
            # Reads block on the stream for up to FEED_BLOCK_MS
            socket_timeout=cfg.REGISTRY_TIMEOUT + cfg.FEED_BLOCK_MS / 1000.0
        )

    stream = ChangeStreamClient(redis_client, stream_key_for(cfg.TABLE_NAME), max_len=cfg.STREAM_MAX_LEN)
    feed = ChangeFeedReader.from_config(cfg, stream)
    reactor = ProvisioningReactor(StackManagerClient.from_config(cfg, client=stack_client))

    return ReactorWorker(feed, reactor, idle_sleep=cfg.FEED_IDLE_SLEEP)
