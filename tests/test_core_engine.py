"""Tests for batch processing: parallel extraction, per-item errors, aggregation, records."""

import random
import threading

import pytest

from core.engine import alert_record, detection_record, process_batch, source_record
from core.errors import AggregationError, DecodeError
from core.models import Coordinates, RawImage
from extractors.image_classifier import ImageClassifier
from extractors.text_classifier import TextClassifier

CRITICAL_MUMBAI = "URGENT URGENT SOS trapped need rescue, flooding in Mumbai"
PUNE_REPORT = "Flooding reported in Pune, please help"


@pytest.fixture
def run(text_classifier, image_classifier, fixed_clock):
    def _run(posts, images=None, seed=11, **kwargs):
        kwargs.setdefault("text_classifier", text_classifier)
        kwargs.setdefault("image_classifier", image_classifier)
        return process_batch(posts, images, rng=random.Random(seed), clock=fixed_clock, **kwargs)
    return _run


class TestProcessBatch:
    def test_empty_batch(self, run):
        result = run([])
        assert result.alerts == []
        assert result.detections == []
        assert result.errors == []

    def test_single_medium_report_filtered_out(self, run, make_post):
        result = run([make_post(PUNE_REPORT)])
        assert result.alerts == []

    def test_two_reports_same_place_published(self, run, make_post):
        result = run([make_post(PUNE_REPORT, post_id="a"), make_post(PUNE_REPORT, post_id="b")])
        assert len(result.alerts) == 1
        alert = result.alerts[0]
        assert alert.disaster_type == "flood"
        assert alert.location_name == "Pune"
        assert alert.report_count == 2
        assert alert.confidence == pytest.approx(0.35)
        assert [s.id for s in alert.sources] == ["a", "b"]

    def test_alerts_sorted_by_confidence(self, run, make_post):
        posts = [
            make_post(PUNE_REPORT, post_id="a"),
            make_post(PUNE_REPORT, post_id="b"),
            make_post(CRITICAL_MUMBAI, post_id="c"),
        ]
        result = run(posts)
        assert [a.location_name for a in result.alerts] == ["Mumbai", "Pune"]
        assert result.alerts[0].confidence == pytest.approx(0.54)
        assert result.alerts[0].report_count == 1

    def test_non_disaster_posts_ignored(self, run, make_post):
        result = run([make_post("lovely sunny day at the beach", post_id="x"), make_post(CRITICAL_MUMBAI)])
        assert len(result.alerts) == 1
        assert [s.id for s in result.alerts[0].sources] == ["p1"]

    def test_malformed_post_reported_and_skipped(self, run, make_post):
        posts = [make_post("   ", post_id="bad"), make_post(CRITICAL_MUMBAI, post_id="good")]
        result = run(posts)
        assert [e.to_dict() for e in result.errors] == [
            {"item_id": "bad", "kind": "input", "message": "post text is empty"},
        ]
        assert len(result.alerts) == 1

    def test_image_detections_include_none(self, run, png_bytes, flood_image):
        forest = RawImage("forest", png_bytes((51, 153, 51)), "image/png")
        result = run([], [flood_image, forest])
        assert [d.disaster_type for d in result.detections] == ["flood", "none"]
        # a lone flood tile is critical (severity 5), so it publishes on its own
        assert len(result.alerts) == 1
        assert result.alerts[0].keywords == ["flood"]

    def test_unreadable_image_becomes_failed_detection(self, run, flood_image):
        bad = RawImage("bad", b"not an image", "image/png")
        result = run([], [bad, flood_image])
        assert [d.disaster_type for d in result.detections] == ["none", "flood"]
        assert result.detections[0].error is not None
        assert result.errors[0].item_id == "bad"
        assert result.errors[0].kind == "decode"

    def test_image_and_post_merge_on_same_key(self, run, make_post, png_bytes):
        tile = RawImage("tile", png_bytes((51, 51, 153)), "image/png", location="mumbai")
        result = run([make_post(CRITICAL_MUMBAI)], [tile])
        assert len(result.alerts) == 1
        alert = result.alerts[0]
        assert alert.report_count == 2
        assert alert.location_name == "Mumbai"  # opened by the post, which comes first
        assert alert.sources[1] is tile

    def test_decode_timeout(self, run, flood_image):
        gate = threading.Event()

        class SlowImageClassifier(ImageClassifier):
            def classify(self, image, rng=None):
                gate.wait(5)
                return super().classify(image, rng)

        try:
            result = run([], [flood_image], image_classifier=SlowImageClassifier(), decode_timeout=0.05)
        finally:
            gate.set()
        assert result.errors[0].kind == "decode"
        assert "timed out" in result.errors[0].message
        assert result.detections[0].disaster_type == "none"

    def test_decode_timeout_counts_from_decode_start(self, run, flood_image):
        gate = threading.Event()

        class HangingImageClassifier(ImageClassifier):
            def classify(self, image, rng=None):
                if image.image_id == "hung":
                    gate.wait(1.0)
                return super().classify(image, rng)

        hung = RawImage("hung", flood_image.data, "image/png")
        ok = RawImage("ok", flood_image.data, "image/png")
        # one worker: "ok" sits in the queue until "hung" gives up its thread
        result = run([], [hung, ok], image_classifier=HangingImageClassifier(), max_workers=1, decode_timeout=0.3)
        gate.set()
        assert [e.item_id for e in result.errors] == ["hung"]
        assert [d.disaster_type for d in result.detections] == ["none", "flood"]

    def test_aggregation_error_is_fatal(self, run, make_post):
        class BlankLocationClassifier(TextClassifier):
            def classify(self, post, rng=None):
                signal = super().classify(post, rng)
                signal.location_name = ""
                return signal

        with pytest.raises(AggregationError):
            run([make_post(CRITICAL_MUMBAI)], text_classifier=BlankLocationClassifier())

    def test_deterministic_regardless_of_workers(self, run, make_post, png_bytes):
        posts = [make_post("smoke everywhere, fire spreading fast", post_id=f"f{i}") for i in range(6)]
        posts += [make_post(PUNE_REPORT, post_id=f"p{i}") for i in range(3)]
        images = [RawImage(f"t{i}", png_bytes((51, 51, 153)), "image/png") for i in range(3)]
        one = run(posts, images, seed=5, max_workers=1).to_dict()
        many = run(posts, images, seed=5, max_workers=4).to_dict()
        assert one == many
        assert run(posts, images, seed=6).to_dict() != one


class TestRecords:
    def test_detection_record(self, image_classifier, png_bytes):
        tile = RawImage("t", png_bytes((51, 51, 153)), "image/png", coordinates=Coordinates(19.0760123456, 72.8777))
        record = detection_record(image_classifier.classify(tile))
        assert record["disaster_type"] == "flood"
        assert record["confidence"] == 0.95
        assert record["severity"] == 5
        assert record["affected_area"] == 360.0
        assert record["latitude"] == 19.07601235
        assert record["water_detection"] == 0.7
        assert set(record) >= {"vegetation_index", "building_damage", "fire_intensity"}

    def test_detection_record_rejects_none(self, image_classifier):
        failed = image_classifier.failed_signal(RawImage("x", b"", "image/png"), DecodeError("empty image buffer"))
        with pytest.raises(ValueError):
            detection_record(failed)

    def test_alert_record(self, run, make_post, png_bytes):
        tile = RawImage("tile", png_bytes((51, 51, 153)), "image/png", location="Mumbai")
        post = make_post(CRITICAL_MUMBAI, coordinates=Coordinates(19.1, 72.9))
        alert = run([post], [tile]).alerts[0]
        record = alert_record(alert)
        assert record["report_count"] == 2
        assert record["confidence"] == round(alert.confidence, 2)
        assert record["urgency_level"] == "critical"
        assert record["sources"] == [source_record(post)]
        assert record["sources"][0]["latitude"] == 19.1
