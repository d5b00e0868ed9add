"""
Supervisor loop of the topic mirror.

Runs cycles of reset, discovery and forwarding until stopped. A forwarding
pass that notices new topics goes straight back to discovery and keeps the
consumer and its positions. Any error resets the whole cycle: connections
are released and every eligible topic is subscribed again. There is no
backoff and no retry limit; stop() is the only way out. Repeated failures
with no forwarding progress in between make the supervisor report itself
unhealthy.
"""

import threading
from enum import Enum
from typing import FrozenSet, Optional, Set

from loguru import logger

from .config import MirrorConfig
from .connections import ConnectionPool
from .forwarder import BatchForwarder, ForwardResult
from .subscriptions import SubscriptionManager
from . import metrics


# Consecutive failed cycles after which the supervisor reports unhealthy
UNHEALTHY_AFTER_FAILURES = 3


class EngineState(Enum):
    IDLE = 'idle'
    RESETTING = 'resetting'
    DISCOVERING = 'discovering'
    FORWARDING = 'forwarding'
    STOPPED = 'stopped'


class TopicsReplicator:
    """
    Mirrors every eligible topic of the source cluster to the destination.

    Args:
        config: Mirror configuration
        pool: Connection pool (built from config when omitted)
    """

    def __init__(self, config: MirrorConfig, pool: Optional[ConnectionPool] = None):
        self.config = config
        self.pool = pool or ConnectionPool(config)
        self.state = EngineState.IDLE
        self._replicated_topics: Set[str] = set()
        self._stopped = threading.Event()
        self.consecutive_failures = 0

        logger.info(
            f"TopicsReplicator initialized: {','.join(config.source_brokers)} -> "
            f"{','.join(config.destination_brokers)}, skip={sorted(config.skip_topics)}"
        )

    @property
    def replicated_topics(self) -> FrozenSet[str]:
        """Snapshot of the topics mirrored in the current cycle."""
        return frozenset(self._replicated_topics)

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def is_running(self) -> bool:
        """Check if the supervisor is inside a cycle."""
        return self.state not in (EngineState.IDLE, EngineState.STOPPED)

    def is_healthy(self) -> bool:
        """
        Check if the supervisor is mirroring.

        False before the first cycle, once stopped, and while cycles keep
        failing without a forwarded batch in between.
        """
        if self.stopped or not self.is_running():
            return False
        return self.consecutive_failures < UNHEALTHY_AFTER_FAILURES

    def start(self):
        """
        Run cycles until stop() is called.

        Errors raised by a cycle are logged and followed by a fresh cycle;
        they never escape this call.
        """
        try:
            while not self._stopped.is_set():
                try:
                    self.run_cycle()
                except Exception as e:
                    self._log_failure(e)
        finally:
            self.pool.release()
            self.state = EngineState.STOPPED
            logger.info("Replication stopped")

    def stop(self):
        """
        Ask the supervisor to finish after the current cycle.

        The source consumer is stopped as well so a waiting consume returns.
        """
        logger.info("Stopping replication...")
        self._stopped.set()
        self.pool.stop_consumer()

    def run_cycle(self):
        """Run one reset, discovery and forwarding pass."""
        self._reset()
        self._discover(reason='start')

        while not self._stopped.is_set():
            result = self._forward()
            if result is not ForwardResult.RESTART_REQUESTED:
                break
            self._discover(reason='new_topics')

    def _reset(self):
        self.state = EngineState.RESETTING
        logger.info("Setting up configuration...")
        self._replicated_topics.clear()
        metrics.REPLICATED_TOPICS.set(0)
        self.pool.release()

    def _discover(self, reason: str) -> Set[str]:
        self.state = EngineState.DISCOVERING
        logger.info("Adding topics for replication...")
        metrics.CYCLES.labels(reason=reason).inc()

        manager = SubscriptionManager(
            self.pool.source_cluster,
            self.pool.destination_cluster,
            self.pool.source_consumer,
            self.config.skip_topics
        )
        return manager.reconcile(self._replicated_topics)

    def _forward(self) -> ForwardResult:
        self.state = EngineState.FORWARDING
        consumer = self.pool.source_consumer
        producer = self.pool.destination_producer

        # stop() may have run before this consumer existed
        if self._stopped.is_set():
            return ForwardResult.STOPPED

        logger.info("Starting replication...")
        forwarder = BatchForwarder(
            self.pool.source_cluster,
            self.config.skip_topics,
            commit_batch_size=self.config.commit_batch_size,
            on_batch=self._record_progress
        )
        return forwarder.run(consumer, producer, self._replicated_topics)

    def _record_progress(self):
        self.consecutive_failures = 0

    def _log_failure(self, error: Exception):
        self.consecutive_failures += 1
        metrics.CYCLE_FAILURES.labels(phase=self.state.value).inc()
        cause = error.__cause__ or error.__context__
        logger.error(f"Exception: {error}")
        logger.error(f"Exception.cause: {cause!r}")
