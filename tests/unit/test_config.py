"""
Unit tests for mirror configuration.
"""

import dataclasses

import pytest

from kafka_mirror.config import (
    RESERVED_TOPICS,
    MirrorConfig,
    effective_skip_topics,
    load_skip_topics_file,
)
from kafka_mirror.errors import ConfigurationError


BASE_ENV = {
    'SOURCE_KAFKA_BROKERS': 'src-1:9092, src-2:9092',
    'DESTINATION_KAFKA_BROKERS': 'dst-1:9092',
}


def test_reserved_topics():
    """Test the reserved bookkeeping topics."""
    assert RESERVED_TOPICS == {'__consumer_offse', '__consumer_offsets', '_schemas'}


@pytest.mark.parametrize('extra', [None, [], ['audit'], ['_schemas', 'audit']])
def test_skip_set_is_reserved_superset(extra):
    """Test reserved names survive any caller supplied skip list."""
    skip = effective_skip_topics(extra)

    assert RESERVED_TOPICS <= skip
    for topic in extra or []:
        assert topic in skip


def test_config_always_keeps_reserved_topics():
    """Test a config built with an explicit skip set still has reserved names."""
    config = MirrorConfig(
        source_brokers=['a:9092'],
        destination_brokers=['b:9092'],
        skip_topics=frozenset()
    )

    assert RESERVED_TOPICS <= config.skip_topics


def test_config_defaults():
    """Test default settings."""
    config = MirrorConfig(source_brokers=['a:9092'], destination_brokers=['b:9092'])

    assert config.consumer_group == 'replicator'
    assert config.commit_batch_size == 100
    assert config.poll_timeout_ms == 1000
    assert config.health_port == 8000


def test_config_is_immutable():
    """Test settings cannot change after construction."""
    config = MirrorConfig(source_brokers=['a:9092'], destination_brokers=['b:9092'])

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.commit_batch_size = 5


def test_from_env():
    """Test reading settings from the environment."""
    env = dict(BASE_ENV)
    env.update({
        'MIRROR_SKIP_TOPICS': 'audit,  debug ,',
        'MIRROR_COMMIT_BATCH_SIZE': '25',
        'MIRROR_CONSUMER_GROUP': 'mirror-eu',
        'HEALTH_PORT': '9100',
        'LOG_LEVEL': 'debug',
    })

    config = MirrorConfig.from_env(env)

    assert config.source_brokers == ['src-1:9092', 'src-2:9092']
    assert config.destination_brokers == ['dst-1:9092']
    assert {'audit', 'debug'} <= config.skip_topics
    assert RESERVED_TOPICS <= config.skip_topics
    assert config.commit_batch_size == 25
    assert config.consumer_group == 'mirror-eu'
    assert config.health_port == 9100
    assert config.log_level == 'DEBUG'


def test_from_env_with_yaml_skip_list(tmp_path):
    """Test the YAML skip list is unioned with the environment list."""
    config_path = tmp_path / "mirror.yaml"
    config_path.write_text("""
skip_topics:
  - internal.metrics
  - internal.audit
""")
    env = dict(BASE_ENV, MIRROR_SKIP_TOPICS='debug', MIRROR_CONFIG_PATH=str(config_path))

    config = MirrorConfig.from_env(env)

    assert {'debug', 'internal.metrics', 'internal.audit'} <= config.skip_topics


def test_load_skip_topics_file_missing(tmp_path):
    """Test a missing config file is a configuration error."""
    with pytest.raises(ConfigurationError):
        load_skip_topics_file(str(tmp_path / "absent.yaml"))


def test_load_skip_topics_file_rejects_non_list(tmp_path):
    """Test skip_topics must be a list."""
    config_path = tmp_path / "mirror.yaml"
    config_path.write_text("skip_topics: audit\n")

    with pytest.raises(ConfigurationError):
        load_skip_topics_file(str(config_path))


def test_missing_brokers():
    """Test both broker lists are required."""
    with pytest.raises(ConfigurationError):
        MirrorConfig.from_env({'SOURCE_KAFKA_BROKERS': 'a:9092'})

    with pytest.raises(ConfigurationError):
        MirrorConfig.from_env({'DESTINATION_KAFKA_BROKERS': 'b:9092'})


@pytest.mark.parametrize('value', ['0', '-5', 'many'])
def test_invalid_commit_batch_size(value):
    """Test the slice size must be a positive integer."""
    env = dict(BASE_ENV, MIRROR_COMMIT_BATCH_SIZE=value)

    with pytest.raises(ConfigurationError):
        MirrorConfig.from_env(env)
