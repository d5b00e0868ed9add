"""
Topic catalog: which topics of a cluster are eligible for mirroring.
"""

from typing import AbstractSet, Set

from loguru import logger


def eligible_topics(cluster, skip_topics: AbstractSet[str]) -> Set[str]:
    """
    List the cluster's topics minus the skip set.

    Args:
        cluster: Handle exposing list_topics()
        skip_topics: Topic names never mirrored

    Returns:
        Set of eligible topic names (unordered)
    """
    topics = {topic for topic in cluster.list_topics() if topic not in skip_topics}
    logger.debug(f"{len(topics)} eligible topics on cluster")
    return topics


def unreplicated_topics(cluster, skip_topics: AbstractSet[str], replicated: AbstractSet[str]) -> Set[str]:
    """Eligible topics that are not yet part of the replicated set."""
    return eligible_topics(cluster, skip_topics) - set(replicated)
