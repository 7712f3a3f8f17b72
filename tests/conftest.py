"""Pytest fixtures for signal extraction and alert aggregation tests."""

import random
from io import BytesIO

import pytest
from PIL import Image

from core.models import Coordinates, DisasterSignal, RawImage, RawPost
from extractors.image_classifier import ImageClassifier
from extractors.text_classifier import TextClassifier

FIXED_TIME = "2025-01-01T12:00:00Z"


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_TIME


@pytest.fixture
def text_classifier():
    return TextClassifier(rng=random.Random(7))


@pytest.fixture
def image_classifier():
    return ImageClassifier(rng=random.Random(7))


@pytest.fixture
def make_post():
    """Factory for RawPost with sensible defaults."""
    def _make(text, post_id="p1", location=None, platform="twitter", coordinates=None):
        return RawPost(
            id=post_id,
            text=text,
            author="tester",
            timestamp=FIXED_TIME,
            platform=platform,
            location=location,
            coordinates=coordinates,
        )
    return _make


@pytest.fixture
def png_bytes():
    """Factory: solid-colour PNG as bytes."""
    def _make(color, size=(20, 20)):
        buf = BytesIO()
        Image.new("RGB", size, color).save(buf, format="PNG")
        return buf.getvalue()
    return _make


@pytest.fixture
def flood_image(png_bytes):
    """Mean channels r=0.2, g=0.2, b=0.6."""
    return RawImage(image_id="tile-1", data=png_bytes((51, 51, 153)), mime_type="image/png")


@pytest.fixture
def make_signal():
    """Factory for DisasterSignal as the aggregator sees it."""
    counter = {"n": 0}

    def _make(disaster_type="flood", location="Mumbai", confidence=0.5, severity=3,
              sentiment=0.0, urgency="medium", keywords=("flood",)):
        counter["n"] += 1
        post = RawPost(
            id=f"s{counter['n']}", text="x", author="a", timestamp=FIXED_TIME, platform="twitter",
        )
        return DisasterSignal(
            disaster_type=disaster_type,
            confidence=confidence,
            severity=severity,
            coordinates=Coordinates(lat=19.076, lng=72.8777),
            location_name=location,
            source=post,
            keywords=list(keywords),
            sentiment_score=sentiment,
            urgency_level=urgency,
        )
    return _make

