"""
Mirror configuration.

Settings come from the environment, with an optional YAML file for the
skip list. The effective skip set always contains the reserved bookkeeping
topics, whatever the caller supplies.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional

import yaml

from .errors import ConfigurationError


# Consumer offsets family (including the truncated name some brokers report)
# and the schema registry topic
RESERVED_TOPICS = frozenset(['__consumer_offse', '__consumer_offsets', '_schemas'])

DEFAULT_CONSUMER_GROUP = 'replicator'
DEFAULT_COMMIT_BATCH_SIZE = 100
DEFAULT_POLL_TIMEOUT_MS = 1000
DEFAULT_HEALTH_PORT = 8000

SOURCE_CLIENT_ID = 'replicator_source'
DESTINATION_CLIENT_ID = 'replicator_destination'


def effective_skip_topics(skip_topics: Optional[Iterable[str]] = None) -> FrozenSet[str]:
    """
    Union caller supplied skip topics with the reserved names.

    Args:
        skip_topics: Extra topic names to leave unmirrored

    Returns:
        Immutable set of topic names to skip
    """
    return RESERVED_TOPICS | frozenset(skip_topics or ())


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def _int_setting(env: Dict[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def load_skip_topics_file(config_path: str) -> List[str]:
    """
    Load the skip list from a YAML file.

    Expected format:
        skip_topics:
          - some.internal.topic
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    with open(path, 'r') as f:
        config = yaml.safe_load(f) or {}

    topics = config.get('skip_topics') or []
    if not isinstance(topics, list):
        raise ConfigurationError(f"skip_topics in {config_path} must be a list")
    return [str(topic) for topic in topics]


@dataclass(frozen=True)
class MirrorConfig:
    """
    Immutable mirror settings.

    Attributes:
        source_brokers: Bootstrap addresses of the cluster to read from
        destination_brokers: Bootstrap addresses of the cluster to write to
        skip_topics: Effective skip set (reserved names always included)
        consumer_group: Consumer group used on the source cluster
        commit_batch_size: Messages per deliver-then-commit slice
        poll_timeout_ms: Upper bound of a single consumer poll
        health_port: Port of the health/metrics HTTP server
        log_level: Loguru level name
    """
    source_brokers: List[str]
    destination_brokers: List[str]
    skip_topics: FrozenSet[str] = field(default_factory=lambda: RESERVED_TOPICS)
    consumer_group: str = DEFAULT_CONSUMER_GROUP
    commit_batch_size: int = DEFAULT_COMMIT_BATCH_SIZE
    poll_timeout_ms: int = DEFAULT_POLL_TIMEOUT_MS
    health_port: int = DEFAULT_HEALTH_PORT
    log_level: str = 'INFO'

    def __post_init__(self):
        if not self.source_brokers:
            raise ConfigurationError("At least one source broker is required")
        if not self.destination_brokers:
            raise ConfigurationError("At least one destination broker is required")
        if self.commit_batch_size < 1:
            raise ConfigurationError(
                f"commit_batch_size must be positive, got {self.commit_batch_size}"
            )
        if self.poll_timeout_ms < 1:
            raise ConfigurationError(
                f"poll_timeout_ms must be positive, got {self.poll_timeout_ms}"
            )
        # Always keep the reserved names, however the instance was built
        object.__setattr__(self, 'source_brokers', list(self.source_brokers))
        object.__setattr__(self, 'destination_brokers', list(self.destination_brokers))
        object.__setattr__(self, 'skip_topics', effective_skip_topics(self.skip_topics))

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> 'MirrorConfig':
        """
        Build configuration from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Returns:
            MirrorConfig instance

        Raises:
            ConfigurationError: On missing or malformed settings
        """
        env = os.environ if env is None else env

        skip_topics = _split_list(env.get('MIRROR_SKIP_TOPICS'))
        config_path = env.get('MIRROR_CONFIG_PATH')
        if config_path:
            skip_topics.extend(load_skip_topics_file(config_path))

        return cls(
            source_brokers=_split_list(env.get('SOURCE_KAFKA_BROKERS')),
            destination_brokers=_split_list(env.get('DESTINATION_KAFKA_BROKERS')),
            skip_topics=frozenset(skip_topics),
            consumer_group=env.get('MIRROR_CONSUMER_GROUP') or DEFAULT_CONSUMER_GROUP,
            commit_batch_size=_int_setting(env, 'MIRROR_COMMIT_BATCH_SIZE', DEFAULT_COMMIT_BATCH_SIZE),
            poll_timeout_ms=_int_setting(env, 'MIRROR_POLL_TIMEOUT_MS', DEFAULT_POLL_TIMEOUT_MS),
            health_port=_int_setting(env, 'HEALTH_PORT', DEFAULT_HEALTH_PORT),
            log_level=env.get('LOG_LEVEL', 'INFO').upper()
        )
