"""
Image signal classification from mean channel colours.

Rule cascade, first match wins:
  blue dominant, b > 0.4          -> flood      (conf <= 0.95)
  red dominant, r > 0.5           -> fire       (conf <= 0.95)
  all channels > 0.6 (grey/white) -> hurricane  (conf <= 0.90)
  brown: r > 0.4, g > 0.3, b < 0.3 -> landslide (conf <= 0.85)
  near-equal dark grey            -> earthquake (conf 0.7)
  green dominant                  -> none       (conf <= 0.9)
  anything else                   -> none       (conf 0.6)
"""

import logging
import math
import random
from typing import Optional

from core.errors import DecodeError
from core.models import (
    Coordinates,
    DisasterSignal,
    ImageIndices,
    PixelStats,
    RawImage,
    NONE_TYPE,
    clamp01,
)
from extractors.image_extractor import DEFAULT_GRID_SIZE, compute_indices, decode
from extractors.tables import BoundingRegion, IMAGE_REGION

logger = logging.getLogger("disaster_api.image_classifier")

BASE_AREA_SQ_KM = 10.0
DEFAULT_CONFIDENCE = 0.6


def classify_colours(stats: PixelStats) -> tuple[str, float]:
    r, g, b = stats.r, stats.g, stats.b
    if b > r and b > g and b > 0.4:
        return "flood", min(0.95, 0.5 + (b - max(r, g)) * 2)
    if r > g and r > b and r > 0.5:
        return "fire", min(0.95, 0.5 + (r - max(g, b)) * 1.5)
    if r > 0.6 and g > 0.6 and b > 0.6:
        return "hurricane", min(0.9, 0.6 + (min(r, g, b) - 0.6) * 2)
    if r > 0.4 and g > 0.3 and b < 0.3 and r > b:
        return "landslide", min(0.85, 0.5 + ((r + g) / 2 - b) * 1.2)
    if abs(r - g) < 0.1 and abs(g - b) < 0.1 and r < 0.5:
        return "earthquake", 0.7
    if g > r and g > b:
        return NONE_TYPE, min(0.9, 0.5 + (g - max(r, b)) * 1.5)
    return NONE_TYPE, DEFAULT_CONFIDENCE


def _type_index(indices: ImageIndices, disaster_type: str) -> float:
    if disaster_type == "flood":
        return indices.water_detection
    if disaster_type == "fire":
        return indices.fire_intensity
    if disaster_type in ("earthquake", "landslide"):
        return indices.building_damage
    if disaster_type == "hurricane":
        return indices.water_detection + indices.building_damage
    return 0.0


AREA_MULTIPLIERS = {"flood": 50, "fire": 30, "earthquake": 40, "hurricane": 20, "landslide": 25}
SEVERITY_WEIGHTS = {"flood": 0.3, "fire": 0.4, "earthquake": 0.5, "hurricane": 0.2, "landslide": 0.3}


def affected_area(indices: ImageIndices, disaster_type: str) -> float:
    """Square kilometres: 10 * (1 + type index * type multiplier); 0 for none."""
    multiplier = AREA_MULTIPLIERS.get(disaster_type)
    if multiplier is None:
        return 0.0
    return BASE_AREA_SQ_KM * (1 + _type_index(indices, disaster_type) * multiplier)


def image_severity(confidence: float, indices: ImageIndices, disaster_type: str) -> int:
    weight = SEVERITY_WEIGHTS.get(disaster_type)
    if weight is None:
        return 0
    score = confidence + _type_index(indices, disaster_type) * weight
    return min(5, max(1, math.ceil(score * 5)))


def urgency_for_severity(severity: int) -> str:
    if severity >= 5:
        return "critical"
    if severity == 4:
        return "high"
    if severity == 3:
        return "medium"
    return "low"


def detected_area_name(coords: Coordinates) -> str:
    return f"Detected Area ({coords.lat:.4f}, {coords.lng:.4f})"


def _location_name(image: RawImage, coords: Coordinates) -> str:
    """Caller-supplied name (stripped), else the detected-area label."""
    if image.location and image.location.strip():
        return image.location.strip()
    return detected_area_name(coords)


class ImageClassifier:
    """Decodes and classifies RawImage buffers. Owns its grid size, fallback region and random source."""

    def __init__(
        self,
        grid_size: int = DEFAULT_GRID_SIZE,
        region: BoundingRegion = IMAGE_REGION,
        rng: Optional[random.Random] = None,
    ):
        self.grid_size = grid_size
        self.region = region
        self.rng = rng or random.Random()

    def _placement(self, image: RawImage, rng: random.Random) -> tuple[Coordinates, str]:
        coords = image.coordinates if image.coordinates is not None else self.region.jitter(rng)
        return coords, _location_name(image, coords)

    def signal_from_stats(self, image: RawImage, stats: PixelStats, rng: Optional[random.Random] = None) -> DisasterSignal:
        disaster_type, confidence = classify_colours(stats)
        confidence = clamp01(confidence)
        indices = compute_indices(stats)
        severity = image_severity(confidence, indices, disaster_type)
        coords, name = self._placement(image, rng or self.rng)
        return DisasterSignal(
            disaster_type=disaster_type,
            confidence=confidence,
            severity=severity,
            coordinates=coords,
            location_name=name,
            source=image,
            keywords=[disaster_type] if disaster_type != NONE_TYPE else [],
            sentiment_score=0.0,
            urgency_level=urgency_for_severity(severity),
            affected_area=affected_area(indices, disaster_type),
            indices=indices,
        )

    def classify(self, image: RawImage, rng: Optional[random.Random] = None) -> DisasterSignal:
        """Raises DecodeError when the buffer cannot be read."""
        stats = decode(image.data, image.mime_type, self.grid_size)
        signal = self.signal_from_stats(image, stats, rng)
        logger.info("image classified image_id=%s type=%s confidence=%.2f severity=%d area=%.1f",
                    image.image_id, signal.disaster_type, signal.confidence, signal.severity, signal.affected_area)
        return signal

    def failed_signal(self, image: RawImage, error: DecodeError) -> DisasterSignal:
        """`none` result carrying the decode error; never alerted on."""
        coords = image.coordinates or Coordinates(lat=self.region.center_lat, lng=self.region.center_lng)
        return DisasterSignal(
            disaster_type=NONE_TYPE,
            confidence=0.0,
            severity=0,
            coordinates=coords,
            location_name=_location_name(image, coords),
            source=image,
            urgency_level="low",
            affected_area=0.0,
            error=error.message,
        )
