"""
Merge disaster signals into alerts keyed by (disaster_type, normalized location).

Per key: absent -> open on the first qualifying signal; every later signal for the key
merges in place. There is no closed state inside a batch.

Merge: report_count += 1, source appended, confidence + 0.05 (cap 1),
sentiment = (old + new) / 2, severity escalated from report volume and sentiment.

Publication: report_count >= 2 or urgency critical; ordered by confidence, descending,
first-created first on ties.
"""

import logging
import math
import random
import re
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from core.errors import AggregationError
from core.models import DisasterAlert, DisasterSignal, DISASTER_TYPES
from extractors.tables import MAJOR_CITIES

logger = logging.getLogger("disaster_api.clustering.aggregator")

MERGE_CONFIDENCE_STEP = 0.05
MAX_SEVERITY = 5
MIN_PUBLISH_REPORTS = 2


def normalize_location(name: Optional[str]) -> str:
    """Strip, collapse whitespace, lowercase."""
    return re.sub(r"\s+", " ", (name or "").strip()).lower()


def alert_key(signal: DisasterSignal) -> tuple[str, str]:
    """(disaster_type, normalized location). Raises AggregationError for keys that must not exist."""
    if signal.disaster_type not in DISASTER_TYPES:
        raise AggregationError(
            f"cannot aggregate signal of type {signal.disaster_type!r}",
            disaster_type=signal.disaster_type,
            location=signal.location_name,
        )
    location = normalize_location(signal.location_name)
    if not location:
        raise AggregationError(
            "cannot aggregate signal without a location",
            disaster_type=signal.disaster_type,
            location=signal.location_name,
        )
    return signal.disaster_type, location


def estimate_affected_population(location: str, rng: random.Random, major_cities=MAJOR_CITIES) -> int:
    """Major city in the name: 10,000-59,999; elsewhere 1,000-10,999."""
    loc = (location or "").lower()
    if any(city in loc for city in major_cities):
        return rng.randrange(50000) + 10000
    return rng.randrange(10000) + 1000


def new_alert_id(rng: random.Random) -> str:
    """alert-<12 hex>, drawn from rng so seeded batches get stable ids."""
    return "alert-" + uuid.UUID(int=rng.getrandbits(128)).hex[:12]


def escalate_severity(severity: float, report_count: int, sentiment_score: float) -> int:
    if report_count >= 10:
        severity = min(MAX_SEVERITY, severity + 1)
    elif report_count >= 5:
        severity = min(MAX_SEVERITY, severity + 0.5)
    if sentiment_score < -10:
        severity = min(MAX_SEVERITY, severity + 1)
    return min(MAX_SEVERITY, math.ceil(severity))


def should_publish(alert: DisasterAlert) -> bool:
    return alert.report_count >= MIN_PUBLISH_REPORTS or alert.urgency_level == "critical"


def publish_alerts(alerts: list[DisasterAlert]) -> list[DisasterAlert]:
    """Filter to publishable alerts, highest confidence first. sorted() is stable, so ties keep creation order."""
    return sorted((a for a in alerts if should_publish(a)), key=lambda a: a.confidence, reverse=True)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class AlertAggregator:
    """
    One instance per batch. Not thread-safe: feed it from a single thread after parallel extraction.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        major_cities=MAJOR_CITIES,
        clock: Optional[Callable[[], str]] = None,
    ):
        self.rng = rng or random.Random()
        self.major_cities = major_cities
        self.clock = clock or _utc_now_iso
        self._alerts: dict[tuple[str, str], DisasterAlert] = {}

    def __len__(self) -> int:
        return len(self._alerts)

    @property
    def alerts(self) -> list[DisasterAlert]:
        """All live alerts in creation order, published or not."""
        return list(self._alerts.values())

    def get(self, disaster_type: str, location: str) -> Optional[DisasterAlert]:
        return self._alerts.get((disaster_type, normalize_location(location)))

    def _open(self, signal: DisasterSignal) -> DisasterAlert:
        alert = DisasterAlert(
            alert_id=new_alert_id(self.rng),
            disaster_type=signal.disaster_type,
            location_name=signal.location_name.strip(),
            coordinates=signal.coordinates,
            confidence=signal.confidence,
            severity=signal.severity,
            affected_population=estimate_affected_population(signal.location_name, self.rng, self.major_cities),
            sentiment_score=signal.sentiment_score,
            urgency_level=signal.urgency_level,
            timestamp=self.clock(),
            report_count=1,
            sources=[signal.source],
        )
        alert.add_keywords(signal.keywords)
        return alert

    def _merge(self, alert: DisasterAlert, signal: DisasterSignal) -> None:
        alert.report_count += 1
        alert.sources.append(signal.source)
        alert.confidence = min(1.0, alert.confidence + MERGE_CONFIDENCE_STEP)
        # two-point running average, not a true mean
        alert.sentiment_score = (alert.sentiment_score + signal.sentiment_score) / 2
        alert.add_keywords(signal.keywords)
        alert.severity = escalate_severity(alert.severity, alert.report_count, alert.sentiment_score)

    def add(self, signal: DisasterSignal) -> DisasterAlert:
        """Open or merge the alert for the signal's key. Raises AggregationError on an invalid key."""
        key = alert_key(signal)
        alert = self._alerts.get(key)
        if alert is None:
            alert = self._open(signal)
            self._alerts[key] = alert
            logger.debug("alert opened key=%s alert_id=%s", key, alert.alert_id)
        else:
            self._merge(alert, signal)
            logger.debug("alert merged key=%s reports=%d confidence=%.2f severity=%d",
                         key, alert.report_count, alert.confidence, alert.severity)
        return alert

    def add_all(self, signals) -> None:
        for signal in signals:
            self.add(signal)

    def publish(self) -> list[DisasterAlert]:
        published = publish_alerts(self.alerts)
        logger.info("alerts published=%d live=%d", len(published), len(self._alerts))
        return published
