"""Lexical feature extraction from social posts (keywords, urgency, sentiment, location)."""

import logging
import random
import re
from dataclasses import dataclass, field
from typing import Optional

from core.errors import InputError
from core.models import Coordinates, RawPost, PLATFORMS
from extractors.sentiment import LexicalSentiment
from extractors.tables import TextTables, DEFAULT_TEXT_TABLES

logger = logging.getLogger("disaster_api.text_extractor")

UNKNOWN_LOCATION = "Unknown Location"
PUNCTUATION_REGEX = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase, punctuation to spaces, split on whitespace, drop empties."""
    return [t for t in PUNCTUATION_REGEX.sub(" ", (text or "").lower()).split() if t]


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


@dataclass
class TextFeatures:
    token_count: int
    disaster_type: Optional[str]  # None when no category keyword matched
    keyword_matches: int
    keywords: list = field(default_factory=list)
    location: str = UNKNOWN_LOCATION
    coordinates: Optional[Coordinates] = None
    sentiment_score: float = 0.0
    urgency_hits: int = 0
    urgency_level: str = "low"

    @property
    def is_disaster_related(self) -> bool:
        return self.disaster_type is not None and self.keyword_matches > 0


def urgency_level_for(hits: int) -> str:
    if hits >= 3:
        return "critical"
    if hits >= 2:
        return "high"
    if hits >= 1:
        return "medium"
    return "low"


def validate_post(post: RawPost) -> None:
    """Raise InputError for posts that cannot be analysed."""
    if not post.id or not str(post.id).strip():
        raise InputError("post id is required", item_id=None)
    if not post.text or not post.text.strip():
        raise InputError("post text is empty", item_id=post.id)
    if post.platform not in PLATFORMS:
        raise InputError(f"unknown platform {post.platform!r}", item_id=post.id)


class TextFeatureExtractor:
    """Owns one TextTables instance. Safe to share across threads; randomness is passed per call."""

    def __init__(self, tables: TextTables = DEFAULT_TEXT_TABLES, sentiment: Optional[LexicalSentiment] = None):
        self.tables = tables
        self.sentiment = sentiment or LexicalSentiment(tables.sentiment_language)
        self._location_regexes = [
            re.compile(re.escape(prep) + r" ([a-z]+)", re.I) for prep in tables.prepositions
        ]

    def match_category(self, text_lower: str) -> tuple[Optional[str], int, list[str]]:
        """
        Winning category by distinct keyword substrings. Strictly greater count wins; ties keep table order.
        Keywords collect the matches of every category that took the lead, not only the winner's.
        """
        best_type: Optional[str] = None
        best_count = 0
        keywords: list[str] = []
        for category, table_keywords in self.tables.categories:
            matched = [kw for kw in table_keywords if kw in text_lower]
            if len(matched) > best_count:
                best_type, best_count = category, len(matched)
                keywords.extend(kw for kw in matched if kw not in keywords)
        return best_type, best_count, keywords

    def count_urgency(self, text_lower: str) -> int:
        return sum(1 for kw in self.tables.urgency if kw in text_lower)

    def extract_location(self, text_lower: str, provided: Optional[str] = None) -> str:
        if provided and provided.strip():
            return provided.strip()
        for place in self.tables.place_names():
            if place in text_lower:
                return _capitalize(place)
        for rx in self._location_regexes:
            m = rx.search(text_lower)
            if m:
                return _capitalize(m.group(1))
        return UNKNOWN_LOCATION

    def lookup_coordinates(self, location: str, rng: random.Random) -> Coordinates:
        """Gazetteer hit, else jitter inside the region. The post's own coordinates are not consulted."""
        coords = self.tables.place_coordinates(location)
        if coords is not None:
            return coords
        return self.tables.region.jitter(rng)

    def extract(self, post: RawPost, rng: random.Random) -> TextFeatures:
        validate_post(post)
        text_lower = post.text.strip().lower()
        tokens = tokenize(text_lower)
        disaster_type, matches, keywords = self.match_category(text_lower)
        location = self.extract_location(text_lower, post.location)
        coordinates = self.lookup_coordinates(location, rng)
        sentiment = self.sentiment.score(text_lower)
        urgency_hits = self.count_urgency(text_lower)
        features = TextFeatures(
            token_count=len(tokens),
            disaster_type=disaster_type,
            keyword_matches=matches,
            keywords=keywords,
            location=location,
            coordinates=coordinates,
            sentiment_score=sentiment,
            urgency_hits=urgency_hits,
            urgency_level=urgency_level_for(urgency_hits),
        )
        logger.debug(
            "text features post_id=%s type=%s matches=%d urgency=%s sentiment=%.1f sentiment_words=%s location=%r",
            post.id, disaster_type, matches, features.urgency_level, sentiment,
            self.sentiment.hits(text_lower), location,
        )
        return features
