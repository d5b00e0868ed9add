"""
Batch forwarder: the consume, forward, commit pipeline.

Each batch is cut into fixed-size slices. Every message of a slice is either
skipped (already a replica) or forwarded to the same topic and partition on
the destination, tagged with the replication marker. Once a slice is fully
submitted the producer is flushed and only then are the source offsets
committed, so a crash replays at most one slice per partition.
"""

import time
from enum import Enum
from typing import AbstractSet, Callable, List, Optional

from loguru import logger

from .catalog import unreplicated_topics
from .config import DEFAULT_COMMIT_BATCH_SIZE
from .errors import ForwardingError
from .loop_guard import is_replica, tag
from .models import Batch, Message
from . import metrics


class ForwardResult(Enum):
    """Why the forwarding loop returned."""
    RESTART_REQUESTED = 'restart_requested'
    STOPPED = 'stopped'


class BatchForwarder:
    """
    Mirrors consumed batches to the destination cluster.

    Args:
        source_cluster: Source cluster handle, used to detect new topics
        skip_topics: Topic names never mirrored
        commit_batch_size: Messages per deliver-then-commit slice
        on_batch: Called after each batch is fully handled
    """

    def __init__(
        self,
        source_cluster,
        skip_topics: AbstractSet[str],
        commit_batch_size: int = DEFAULT_COMMIT_BATCH_SIZE,
        on_batch: Optional[Callable[[], None]] = None
    ):
        if commit_batch_size < 1:
            raise ValueError(f"commit_batch_size must be positive, got {commit_batch_size}")
        self.source_cluster = source_cluster
        self.skip_topics = skip_topics
        self.commit_batch_size = commit_batch_size
        self.on_batch = on_batch

    def run(self, consumer, producer, replicated_topics: AbstractSet[str]) -> ForwardResult:
        """
        Consume and forward batches until new topics appear or the consumer stops.

        Args:
            consumer: Source consumer (consume_batches, mark_processed, commit_offsets)
            producer: Destination producer (enqueue, flush)
            replicated_topics: Topics subscribed in the current cycle

        Returns:
            RESTART_REQUESTED when the catalog gained eligible topics,
            STOPPED when the consumer was stopped

        Raises:
            ForwardingError: On any consume, produce or commit failure
        """
        try:
            for batch in consumer.consume_batches():
                if self._has_new_topics(replicated_topics):
                    logger.info("New topics added, restarting...")
                    return ForwardResult.RESTART_REQUESTED

                self.forward_batch(batch, consumer, producer)
                if self.on_batch:
                    self.on_batch()
        except ForwardingError:
            raise
        except Exception as e:
            raise ForwardingError(f"Forwarding failed: {e}") from e

        return ForwardResult.STOPPED

    def forward_batch(self, batch: Batch, consumer, producer):
        """Forward one batch slice by slice, committing after each delivered slice."""
        for messages in batch.slices(self.commit_batch_size):
            self._forward_slice(messages, consumer, producer)

    def _has_new_topics(self, replicated_topics: AbstractSet[str]) -> bool:
        return bool(unreplicated_topics(self.source_cluster, self.skip_topics, replicated_topics))

    def _forward_slice(self, messages: List[Message], consumer, producer):
        forwarded = 0

        for message in messages:
            metrics.MESSAGES_CONSUMED.labels(topic=message.topic).inc()

            # Tombstones cannot carry the marker and would bounce between clusters
            if message.value is None:
                metrics.MESSAGES_SKIPPED.labels(reason='tombstone').inc()
                consumer.mark_processed(message)
                continue

            # Already mirrored; forwarding again would loop in two-way setups
            if is_replica(message.value):
                metrics.MESSAGES_SKIPPED.labels(reason='replica').inc()
                consumer.mark_processed(message)
                continue

            producer.enqueue(
                tag(message.value),
                topic=message.topic,
                partition=message.partition,
                key=message.key
            )
            metrics.MESSAGES_FORWARDED.labels(topic=message.topic).inc()
            consumer.mark_processed(message)
            forwarded += 1

        with metrics.DELIVER_DURATION.time():
            producer.flush()
        consumer.commit_offsets()

        metrics.SLICES_COMMITTED.inc()
        metrics.LAST_COMMIT_TIMESTAMP.set(time.time())
        logger.debug(f"Committed slice: {len(messages)} messages, {forwarded} forwarded")
