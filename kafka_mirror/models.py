"""
Message and batch structures passed between the consumer and the forwarder.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


@dataclass
class Message:
    """
    A single record read from the source cluster.

    Attributes:
        key: Raw message key (may be None)
        value: Raw message value (None for tombstones)
        topic: Source topic name
        partition: Source partition index
        offset: Position within the partition
    """
    key: Optional[bytes]
    value: Optional[bytes]
    topic: str
    partition: int
    offset: int

    @classmethod
    def from_record(cls, record) -> 'Message':
        """Create a Message from a kafka-python ConsumerRecord."""
        return cls(
            key=record.key,
            value=record.value,
            topic=record.topic,
            partition=record.partition,
            offset=record.offset
        )


@dataclass
class Batch:
    """Messages returned by one consumer poll, in per-partition source order."""
    messages: List[Message] = field(default_factory=list)

    @classmethod
    def from_records(cls, records: Dict) -> 'Batch':
        """
        Flatten a poll result ({TopicPartition: [ConsumerRecord]}) into a batch.

        Records of one partition stay contiguous and in offset order.
        """
        messages = []
        for partition_records in records.values():
            messages.extend(Message.from_record(record) for record in partition_records)
        return cls(messages=messages)

    def slices(self, size: int) -> Iterator[List[Message]]:
        """Yield consecutive slices of at most `size` messages."""
        for start in range(0, len(self.messages), size):
            yield self.messages[start:start + size]

    def __len__(self) -> int:
        return len(self.messages)
