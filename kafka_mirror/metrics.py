"""
Prometheus metrics for the topic mirror.
"""

from prometheus_client import Counter, Gauge, Histogram


MESSAGES_CONSUMED = Counter(
    'mirror_messages_consumed_total',
    'Total messages consumed from the source cluster',
    ['topic']
)

MESSAGES_FORWARDED = Counter(
    'mirror_messages_forwarded_total',
    'Total messages forwarded to the destination cluster',
    ['topic']
)

MESSAGES_SKIPPED = Counter(
    'mirror_messages_skipped_total',
    'Total messages marked processed without forwarding',
    ['reason']
)

SLICES_COMMITTED = Counter(
    'mirror_slices_committed_total',
    'Total delivered-then-committed message slices'
)

DELIVER_DURATION = Histogram(
    'mirror_deliver_duration_seconds',
    'Time to deliver one slice to the destination cluster'
)

CYCLES = Counter(
    'mirror_cycles_total',
    'Discovery passes run by the supervisor',
    ['reason']
)

CYCLE_FAILURES = Counter(
    'mirror_cycle_failures_total',
    'Cycles aborted by an error',
    ['phase']
)

TOPICS_CREATED = Counter(
    'mirror_topics_created_total',
    'Topics created on the destination cluster'
)

REPLICATED_TOPICS = Gauge(
    'mirror_replicated_topics',
    'Topics currently subscribed for mirroring'
)

LAST_COMMIT_TIMESTAMP = Gauge(
    'mirror_last_commit_timestamp',
    'Timestamp of the last successful offset commit'
)
