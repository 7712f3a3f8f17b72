"""
Text signal classification: TextFeatures -> DisasterSignal.

confidence = keywords (<=0.4) + urgency (<=0.3) + negative sentiment (<=0.2) + length credibility (0.1)
severity   = urgency base (critical 5, high 4, medium 3, low 2), +1 very negative sentiment, +1 for 3+ keywords
"""

import logging
import random
from typing import Optional

from core.models import DisasterSignal, RawPost, NONE_TYPE, clamp01
from extractors.tables import TextTables, DEFAULT_TEXT_TABLES
from extractors.text_extractor import TextFeatureExtractor, TextFeatures

logger = logging.getLogger("disaster_api.text_classifier")

MAX_SEVERITY = 5
URGENCY_BASE_SEVERITY = {"critical": 5, "high": 4, "medium": 3, "low": 2}
MIN_CREDIBLE_TOKENS = 10
MAX_CREDIBLE_TOKENS = 100


def text_confidence(keyword_matches: int, urgency_hits: int, sentiment: float, token_count: int) -> float:
    confidence = min(0.4, keyword_matches * 0.1)
    confidence += min(0.3, urgency_hits * 0.1)
    if sentiment < 0:
        confidence += min(0.2, abs(sentiment) * 0.02)
    if MIN_CREDIBLE_TOKENS <= token_count <= MAX_CREDIBLE_TOKENS:
        confidence += 0.1
    return clamp01(confidence)


def initial_severity(urgency_level: str, sentiment: float, keyword_matches: int) -> int:
    severity = URGENCY_BASE_SEVERITY.get(urgency_level, 1)
    if sentiment < -5:
        severity = min(MAX_SEVERITY, severity + 1)
    if keyword_matches >= 3:
        severity = min(MAX_SEVERITY, severity + 1)
    return severity


class TextClassifier:
    """
    Post classifier. Holds its own tables and a default random source for coordinate jitter;
    callers that need per-item determinism under threads pass an rng to classify().
    """

    def __init__(self, tables: TextTables = DEFAULT_TEXT_TABLES, rng: Optional[random.Random] = None):
        self.extractor = TextFeatureExtractor(tables)
        self.rng = rng or random.Random()

    @property
    def tables(self) -> TextTables:
        return self.extractor.tables

    def signal_from_features(self, post: RawPost, features: TextFeatures) -> DisasterSignal:
        confidence = text_confidence(
            features.keyword_matches, features.urgency_hits, features.sentiment_score, features.token_count,
        )
        if features.is_disaster_related:
            disaster_type = features.disaster_type
            severity = initial_severity(features.urgency_level, features.sentiment_score, features.keyword_matches)
        else:
            disaster_type = NONE_TYPE
            severity = 0
        return DisasterSignal(
            disaster_type=disaster_type,
            confidence=confidence,
            severity=severity,
            coordinates=features.coordinates,
            location_name=features.location,
            source=post,
            keywords=list(features.keywords),
            sentiment_score=features.sentiment_score,
            urgency_level=features.urgency_level,
        )

    def classify(self, post: RawPost, rng: Optional[random.Random] = None) -> DisasterSignal:
        """Raises InputError for malformed posts."""
        features = self.extractor.extract(post, rng or self.rng)
        signal = self.signal_from_features(post, features)
        logger.debug("text signal post_id=%s type=%s confidence=%.2f severity=%d",
                     post.id, signal.disaster_type, signal.confidence, signal.severity)
        return signal
