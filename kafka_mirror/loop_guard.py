"""
Replication marker handling.

Every forwarded payload gets the marker inserted right after its first byte
(usually the opening brace of a JSON object). A payload that already carries
the marker came out of another mirror and must never be forwarded again,
which is what keeps two-way mirroring free of loops.

The byte layout is shared with every other mirror deployment writing into
the same clusters, so it must not change.
"""

from typing import Optional

REPLICA_TAG = b'"replica":true, '
TAG_OFFSET = 1


def is_replica(value: Optional[bytes]) -> bool:
    """
    Check whether a payload carries the replication marker.

    Args:
        value: Raw message value

    Returns:
        True if bytes [1, 17) equal the marker exactly
    """
    if value is None:
        return False
    return value[TAG_OFFSET:TAG_OFFSET + len(REPLICA_TAG)] == REPLICA_TAG


def tag(value: bytes) -> bytes:
    """
    Return a copy of the payload with the marker inserted at offset 1.

    The input is never modified.
    """
    return bytes(value[:TAG_OFFSET]) + REPLICA_TAG + bytes(value[TAG_OFFSET:])
