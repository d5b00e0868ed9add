"""
Unit tests for batch construction and slicing.
"""

from unittest.mock import Mock

from kafka import TopicPartition

from kafka_mirror.models import Batch, Message


def record(topic, partition, offset):
    return Mock(topic=topic, partition=partition, offset=offset, key=b'k', value=b'{}')


def test_from_records_keeps_partition_order():
    """Test records of each partition stay contiguous and ordered."""
    records = {
        TopicPartition('orders', 1): [record('orders', 1, 5), record('orders', 1, 6)],
        TopicPartition('orders', 0): [record('orders', 0, 2)],
    }

    batch = Batch.from_records(records)

    assert [(m.partition, m.offset) for m in batch.messages] == [(1, 5), (1, 6), (0, 2)]
    assert batch.messages[0] == Message(key=b'k', value=b'{}', topic='orders', partition=1, offset=5)


def test_slices():
    """Test slicing into fixed-size chunks with a short tail."""
    batch = Batch(messages=[Message(None, b'{}', 't', 0, offset) for offset in range(7)])

    slices = list(batch.slices(3))

    assert [len(s) for s in slices] == [3, 3, 1]
    assert slices[2][0].offset == 6


def test_empty_batch():
    """Test an empty batch has no slices."""
    assert list(Batch().slices(100)) == []
    assert len(Batch()) == 0
