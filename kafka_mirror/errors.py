"""
Exception hierarchy for the topic mirror.

Discovery and forwarding failures wrap the underlying broker error as their
cause so the supervisor can log both.
"""


class MirrorError(Exception):
    """Base class for all mirror errors."""


class ConfigurationError(MirrorError):
    """Raised when the mirror configuration is missing or invalid."""


class DiscoveryError(MirrorError):
    """Raised when listing, creating or subscribing to topics fails."""


class ForwardingError(MirrorError):
    """Raised when consuming, producing or committing fails."""


class UnknownTopicError(MirrorError):
    """Raised when a topic is not present on the cluster."""

    def __init__(self, topic: str):
        super().__init__(f"Unknown topic: {topic}")
        self.topic = topic
