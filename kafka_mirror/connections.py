"""
Broker handles for the mirror.

Thin wrappers around kafka-python exposing only what the mirror needs:
cluster metadata and topic creation, a batch consumer with explicit
processed-offset commits, and a producer with synchronous delivery
confirmation. ConnectionPool owns them, creates each lazily on first use
and closes them all on release.
"""

import threading
from typing import Callable, Dict, Iterator, List, Optional, Set

from kafka import KafkaConsumer, KafkaProducer, TopicPartition
from kafka.admin import KafkaAdminClient
from kafka.structs import OffsetAndMetadata
from loguru import logger

from .config import DESTINATION_CLIENT_ID, SOURCE_CLIENT_ID, MirrorConfig
from .errors import UnknownTopicError
from .models import Batch, Message


class KafkaCluster:
    """Metadata and topic administration for one cluster."""

    def __init__(self, brokers: List[str], client_id: str):
        self.brokers = brokers
        self.client_id = client_id
        self.admin = KafkaAdminClient(bootstrap_servers=brokers, client_id=client_id)

    def list_topics(self) -> Set[str]:
        """List every topic name on the cluster."""
        return set(self.admin.list_topics())

    def partition_count_for(self, topic: str) -> int:
        """
        Get the number of partitions of a topic.

        Raises:
            UnknownTopicError: If the cluster does not report the topic
        """
        for description in self.admin.describe_topics([topic]):
            if description.get('name', description.get('topic')) != topic:
                continue
            partitions = description.get('partitions') or []
            if description.get('error_code', 0) == 0 and partitions:
                return len(partitions)
        raise UnknownTopicError(topic)

    def create_topic(self, name: str, partitions: int, replication_factor: int):
        """Create a topic with an explicit partition count and replication factor."""
        self.admin.create_topics(
            new_topics={
                name: {
                    'num_partitions': partitions,
                    'replication_factor': replication_factor
                }
            },
            validate_only=False
        )

    def close(self):
        self.admin.close()


class SourceConsumer:
    """
    Batch consumer with manual offset management.

    Offsets are committed only for messages explicitly marked as processed.
    Once stopped, the consumer never yields another batch.
    """

    def __init__(
        self,
        brokers: List[str],
        group_id: str,
        client_id: str = SOURCE_CLIENT_ID,
        poll_timeout_ms: int = 1000
    ):
        self.poll_timeout_ms = poll_timeout_ms
        self.consumer = KafkaConsumer(
            bootstrap_servers=brokers,
            group_id=group_id,
            client_id=client_id,
            enable_auto_commit=False,
            auto_offset_reset='earliest'
        )
        self._topics: Set[str] = set()
        self._processed: Dict[TopicPartition, OffsetAndMetadata] = {}
        self._stopped = threading.Event()

    @property
    def topics(self) -> Set[str]:
        return set(self._topics)

    def subscribe(self, topic: str):
        """
        Add a topic to the subscription.

        Partitions without a committed group offset start from the earliest
        retained message.
        """
        self._topics.add(topic)
        self.consumer.subscribe(topics=sorted(self._topics))

    def consume_batches(self) -> Iterator[Batch]:
        """
        Yield one batch per poll interval until stopped.

        An idle poll yields an empty batch so callers regain control and can
        re-check the topic catalog. Without any subscription there is nothing
        to poll; the consumer just waits out the interval.
        """
        while not self._stopped.is_set():
            if not self._topics:
                if not self._stopped.wait(self.poll_timeout_ms / 1000.0):
                    yield Batch()
                continue
            records = self.consumer.poll(timeout_ms=self.poll_timeout_ms)
            if self._stopped.is_set():
                break
            yield Batch.from_records(records)

    def mark_processed(self, message: Message):
        """Record the message's offset as the next commit point of its partition."""
        tp = TopicPartition(message.topic, message.partition)
        self._processed[tp] = OffsetAndMetadata(message.offset + 1, '', -1)

    def commit_offsets(self):
        """Synchronously commit offsets of processed messages."""
        if not self._processed:
            return
        self.consumer.commit(offsets=dict(self._processed))
        self._processed.clear()

    def stop(self):
        """Stop consuming; an in-progress consume loop exits after its current poll."""
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def close(self):
        self._stopped.set()
        self.consumer.close()


class DestinationProducer:
    """Producer whose flush only returns once every enqueued message is acknowledged."""

    def __init__(self, brokers: List[str], client_id: str = DESTINATION_CLIENT_ID):
        self.producer = KafkaProducer(
            bootstrap_servers=brokers,
            client_id=client_id,
            acks='all',
            retries=3
        )
        self._pending = []

    def enqueue(self, value: bytes, topic: str, partition: int, key: Optional[bytes] = None):
        """Buffer a message for an explicit topic and partition."""
        future = self.producer.send(topic, value=value, key=key, partition=partition)
        self._pending.append(future)

    def flush(self):
        """
        Deliver all buffered messages.

        Raises:
            KafkaError: If any buffered message was not acknowledged
        """
        self.producer.flush()
        pending, self._pending = self._pending, []
        for future in pending:
            future.get()

    def close(self):
        self.producer.close()


class ConnectionPool:
    """
    Lazily created, memoized broker handles.

    Each handle is built on its first acquire and returned as-is afterwards.
    release() closes every handle created so far and forgets it, so the next
    acquire builds a fresh one.
    """

    SOURCE_CLUSTER = 'source_cluster'
    DESTINATION_CLUSTER = 'destination_cluster'
    SOURCE_CONSUMER = 'source_consumer'
    DESTINATION_PRODUCER = 'destination_producer'

    def __init__(
        self,
        config: MirrorConfig,
        factories: Optional[Dict[str, Callable[[], object]]] = None
    ):
        self.config = config
        self._factories: Dict[str, Callable[[], object]] = {
            self.SOURCE_CLUSTER: lambda: KafkaCluster(config.source_brokers, SOURCE_CLIENT_ID),
            self.DESTINATION_CLUSTER: lambda: KafkaCluster(config.destination_brokers, DESTINATION_CLIENT_ID),
            self.SOURCE_CONSUMER: lambda: SourceConsumer(
                config.source_brokers,
                group_id=config.consumer_group,
                poll_timeout_ms=config.poll_timeout_ms
            ),
            self.DESTINATION_PRODUCER: lambda: DestinationProducer(config.destination_brokers),
        }
        if factories:
            self._factories.update(factories)
        self._handles: Dict[str, object] = {}
        self._lock = threading.RLock()

    def acquire(self, name: str):
        """Return the named handle, creating it on first use."""
        with self._lock:
            handle = self._handles.get(name)
            if handle is None:
                handle = self._factories[name]()
                self._handles[name] = handle
                logger.debug(f"Created {name}")
            return handle

    def peek(self, name: str):
        """Return the named handle if it exists, without creating it."""
        with self._lock:
            return self._handles.get(name)

    @property
    def source_cluster(self) -> KafkaCluster:
        return self.acquire(self.SOURCE_CLUSTER)

    @property
    def destination_cluster(self) -> KafkaCluster:
        return self.acquire(self.DESTINATION_CLUSTER)

    @property
    def source_consumer(self) -> SourceConsumer:
        return self.acquire(self.SOURCE_CONSUMER)

    @property
    def destination_producer(self) -> DestinationProducer:
        return self.acquire(self.DESTINATION_PRODUCER)

    def stop_consumer(self):
        """Stop the source consumer if one has been created."""
        consumer = self.peek(self.SOURCE_CONSUMER)
        if consumer is not None:
            consumer.stop()

    def release(self):
        """Close and forget every handle created so far."""
        with self._lock:
            handles, self._handles = self._handles, {}

        for name, handle in handles.items():
            try:
                handle.close()
            except Exception as e:
                logger.warning(f"Failed to close {name}: {e}")
