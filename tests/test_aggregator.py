"""Tests for alert aggregation: keys, merge rules, severity escalation, publication."""

import random
import re

import pytest

from clustering.aggregator import (
    AlertAggregator,
    alert_key,
    escalate_severity,
    estimate_affected_population,
    new_alert_id,
    normalize_location,
    publish_alerts,
)
from core.errors import AggregationError


@pytest.fixture
def aggregator(fixed_clock):
    return AlertAggregator(rng=random.Random(3), clock=fixed_clock)


class TestKeys:
    def test_normalize_location(self):
        assert normalize_location("  New   Delhi ") == "new delhi"
        assert normalize_location(None) == ""

    def test_alert_key(self, make_signal):
        assert alert_key(make_signal(location=" MUMBAI ")) == ("flood", "mumbai")

    def test_none_type_rejected(self, make_signal):
        with pytest.raises(AggregationError) as exc:
            alert_key(make_signal(disaster_type="none"))
        assert exc.value.disaster_type == "none"

    def test_empty_location_rejected(self, make_signal):
        with pytest.raises(AggregationError):
            alert_key(make_signal(location="   "))


class TestOpen:
    def test_first_signal_opens_alert(self, aggregator, make_signal):
        s = make_signal(confidence=0.42, severity=4, sentiment=-3.0, urgency="high", keywords=("flood", "flooding"))
        alert = aggregator.add(s)
        assert len(aggregator) == 1
        assert re.fullmatch(r"alert-[0-9a-f]{12}", alert.alert_id)
        assert alert.report_count == 1
        assert alert.confidence == 0.42
        assert alert.severity == 4
        assert alert.sentiment_score == -3.0
        assert alert.urgency_level == "high"
        assert alert.keywords == ["flood", "flooding"]
        assert alert.sources == [s.source]
        assert alert.timestamp == "2025-01-01T12:00:00Z"
        assert 10000 <= alert.affected_population < 60000  # Mumbai is a major city

    def test_seeded_ids_and_population_repeat(self, fixed_clock, make_signal):
        a = AlertAggregator(rng=random.Random(9), clock=fixed_clock).add(make_signal())
        b = AlertAggregator(rng=random.Random(9), clock=fixed_clock).add(make_signal())
        assert a.alert_id == b.alert_id
        assert a.affected_population == b.affected_population


class TestMerge:
    def test_same_key_merges(self, aggregator, make_signal):
        first = aggregator.add(make_signal(location="Mumbai"))
        second = aggregator.add(make_signal(location="  mumbai "))
        assert second is first
        assert len(aggregator) == 1
        assert first.report_count == 2
        assert len(first.sources) == 2
        assert first.location_name == "Mumbai"

    def test_different_type_same_place_separate(self, aggregator, make_signal):
        aggregator.add(make_signal(disaster_type="flood"))
        aggregator.add(make_signal(disaster_type="fire", keywords=("fire",)))
        assert len(aggregator) == 2
        assert aggregator.get("fire", "MUMBAI").report_count == 1

    def test_confidence_steps_and_caps(self, aggregator, make_signal):
        alert = aggregator.add(make_signal(confidence=0.9))
        seen = [alert.confidence]
        for _ in range(5):
            aggregator.add(make_signal(confidence=0.1))
            seen.append(alert.confidence)
        assert seen[1] == pytest.approx(0.95)
        assert seen == sorted(seen)
        assert max(seen) <= 1.0
        assert seen[-1] == 1.0

    def test_sentiment_two_point_average(self, aggregator, make_signal):
        alert = aggregator.add(make_signal(sentiment=-4.0))
        aggregator.add(make_signal(sentiment=-8.0))
        assert alert.sentiment_score == -6.0
        aggregator.add(make_signal(sentiment=-2.0))
        assert alert.sentiment_score == -4.0

    def test_keywords_union_in_order(self, aggregator, make_signal):
        alert = aggregator.add(make_signal(keywords=("flood", "flooding")))
        aggregator.add(make_signal(keywords=("submerg", "flood")))
        assert alert.keywords == ["flood", "flooding", "submerg"]

    def test_urgency_kept_from_first_signal(self, aggregator, make_signal):
        alert = aggregator.add(make_signal(urgency="medium"))
        aggregator.add(make_signal(urgency="critical"))
        assert alert.urgency_level == "medium"

    def test_invalid_signal_raises(self, aggregator, make_signal):
        with pytest.raises(AggregationError):
            aggregator.add(make_signal(disaster_type="none"))
        assert len(aggregator) == 0


class TestSeverity:
    def test_escalate_severity_rules(self):
        assert escalate_severity(3, 2, 0.0) == 3
        assert escalate_severity(3, 5, 0.0) == 4  # 3.5 rounds up
        assert escalate_severity(4, 10, -11.0) == 5
        assert escalate_severity(2, 3, -10.5) == 3
        assert escalate_severity(5, 12, -20.0) == 5

    def test_report_volume_escalation(self, aggregator, make_signal):
        alert = aggregator.add(make_signal(severity=2))
        for _ in range(4):
            aggregator.add(make_signal(severity=2))
        assert alert.report_count == 5
        assert alert.severity == 3

    def test_never_exceeds_five(self, aggregator, make_signal):
        alert = aggregator.add(make_signal(severity=2, sentiment=-20.0))
        for _ in range(11):
            aggregator.add(make_signal(sentiment=-20.0))
            assert 1 <= alert.severity <= 5
        assert alert.severity == 5


class TestPublish:
    def test_single_non_critical_not_published(self, aggregator, make_signal):
        aggregator.add(make_signal(urgency="medium"))
        assert aggregator.publish() == []

    def test_single_critical_published(self, aggregator, make_signal):
        aggregator.add(make_signal(urgency="critical"))
        assert len(aggregator.publish()) == 1

    def test_two_reports_published(self, aggregator, make_signal):
        aggregator.add(make_signal(urgency="low"))
        aggregator.add(make_signal(urgency="low"))
        assert len(aggregator.publish()) == 1

    def test_order_by_confidence_then_creation(self, aggregator, make_signal):
        aggregator.add(make_signal(location="Pune", confidence=0.3, urgency="critical"))
        aggregator.add(make_signal(location="Delhi", confidence=0.8, urgency="critical"))
        aggregator.add(make_signal(location="Kerala", confidence=0.3, urgency="critical"))
        names = [a.location_name for a in aggregator.publish()]
        assert names == ["Delhi", "Pune", "Kerala"]

    def test_publish_alerts_is_pure_filter(self, aggregator, make_signal):
        aggregator.add(make_signal(urgency="medium"))
        assert publish_alerts(aggregator.alerts) == []
        assert len(aggregator.alerts) == 1


class TestHelpers:
    def test_population_ranges(self):
        rng = random.Random(0)
        for _ in range(50):
            assert 10000 <= estimate_affected_population("North Mumbai", rng) <= 59999
            assert 1000 <= estimate_affected_population("Riverside", rng) <= 10999

    def test_custom_major_cities(self):
        rng = random.Random(0)
        assert estimate_affected_population("Springfield", rng, major_cities=("springfield",)) >= 10000

    def test_new_alert_id_format(self):
        assert re.fullmatch(r"alert-[0-9a-f]{12}", new_alert_id(random.Random(1)))
