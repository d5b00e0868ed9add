"""
Kafka Mirror - continuous topic mirroring between two Kafka clusters

Safe for two-way setups: forwarded payloads carry a replication marker and
marked payloads are never forwarded again.
"""

from .config import MirrorConfig
from .supervisor import EngineState, TopicsReplicator

__version__ = "1.0.0"

__all__ = ['MirrorConfig', 'TopicsReplicator', 'EngineState']
