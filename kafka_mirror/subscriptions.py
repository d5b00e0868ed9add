"""
Subscription reconciliation.

Subscribes the source consumer to every eligible topic that is not mirrored
yet and makes sure a matching topic exists on the destination cluster.
"""

from typing import AbstractSet, Set

from loguru import logger

from .catalog import unreplicated_topics
from .errors import DiscoveryError
from . import metrics

# Set explicitly; some clients silently fall back to a replication factor of 1
DESTINATION_REPLICATION_FACTOR = 3


class SubscriptionManager:
    """
    Brings the replicated topic set up to date with the source catalog.

    Args:
        source_cluster: Source cluster handle (list_topics, partition_count_for)
        destination_cluster: Destination cluster handle (list_topics, create_topic)
        source_consumer: Consumer exposing subscribe(topic)
        skip_topics: Topic names never mirrored
    """

    def __init__(self, source_cluster, destination_cluster, source_consumer, skip_topics: AbstractSet[str]):
        self.source_cluster = source_cluster
        self.destination_cluster = destination_cluster
        self.source_consumer = source_consumer
        self.skip_topics = skip_topics

    def reconcile(self, replicated_topics: Set[str]) -> Set[str]:
        """
        Subscribe to every eligible topic missing from `replicated_topics`.

        `replicated_topics` is updated in place as topics are added.

        Returns:
            Topics added by this call (possibly empty)

        Raises:
            DiscoveryError: If listing, subscribing or topic creation fails
        """
        added: Set[str] = set()

        try:
            pending = unreplicated_topics(self.source_cluster, self.skip_topics, replicated_topics)
            if not pending:
                return added

            destination_topics = self.destination_cluster.list_topics()

            for topic in sorted(pending):
                self.source_consumer.subscribe(topic)
                replicated_topics.add(topic)
                added.add(topic)

                if topic not in destination_topics:
                    self._create_destination_topic(topic)

                logger.info(f"Topic added: {topic}")

        except DiscoveryError:
            raise
        except Exception as e:
            raise DiscoveryError(f"Topic discovery failed: {e}") from e
        finally:
            metrics.REPLICATED_TOPICS.set(len(replicated_topics))

        return added

    def _create_destination_topic(self, topic: str):
        partitions = self.source_cluster.partition_count_for(topic)
        self.destination_cluster.create_topic(
            topic,
            partitions=partitions,
            replication_factor=DESTINATION_REPLICATION_FACTOR
        )
        metrics.TOPICS_CREATED.inc()
        logger.info(
            f"Created destination topic {topic}: partitions={partitions}, "
            f"replication_factor={DESTINATION_REPLICATION_FACTOR}"
        )
