"""Alert aggregation: keyed merge, severity escalation, publication filter."""

from clustering.aggregator import (
    AlertAggregator,
    alert_key,
    normalize_location,
    escalate_severity,
    publish_alerts,
    estimate_affected_population,
)

__all__ = [
    "AlertAggregator",
    "alert_key",
    "normalize_location",
    "escalate_severity",
    "publish_alerts",
    "estimate_affected_population",
]
