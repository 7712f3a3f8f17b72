"""Signal and alert models: raw inputs, per-item signals, aggregated alerts."""

from dataclasses import dataclass, field
from typing import Optional, Union

DISASTER_TYPES = ("flood", "fire", "earthquake", "hurricane", "landslide", "cyclone", "tsunami")
NONE_TYPE = "none"
URGENCY_LEVELS = ("critical", "high", "medium", "low")
PLATFORMS = ("twitter", "facebook", "instagram", "reddit")


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


@dataclass
class Coordinates:
    lat: float
    lng: float

    def to_dict(self, decimals: int = 8):
        return {"lat": round(self.lat, decimals), "lng": round(self.lng, decimals)}


@dataclass
class RawPost:
    id: str
    text: str
    author: str
    timestamp: str
    platform: str
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    def to_dict(self):
        d = {
            "id": self.id,
            "text": self.text,
            "author": self.author,
            "timestamp": self.timestamp,
            "platform": self.platform,
            "location": self.location,
        }
        if self.coordinates is not None:
            d["coordinates"] = self.coordinates.to_dict()
        return d


@dataclass
class RawImage:
    """Opaque image buffer. location/coordinates are optional caller hints (e.g. tile centre)."""
    image_id: str
    data: bytes
    mime_type: str
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    def to_dict(self):
        d = {"image_id": self.image_id, "mime_type": self.mime_type, "size": len(self.data or b"")}
        if self.location is not None:
            d["location"] = self.location
        if self.coordinates is not None:
            d["coordinates"] = self.coordinates.to_dict()
        return d


@dataclass
class PixelStats:
    r: float  # 0.0 - 1.0
    g: float
    b: float
    pixels: int = 0


@dataclass
class ImageIndices:
    vegetation_index: float
    water_detection: float
    building_damage: float
    fire_intensity: float

    def __post_init__(self):
        self.vegetation_index = clamp01(self.vegetation_index)
        self.water_detection = clamp01(self.water_detection)
        self.building_damage = clamp01(self.building_damage)
        self.fire_intensity = clamp01(self.fire_intensity)

    def to_dict(self):
        return {
            "vegetation_index": round(self.vegetation_index, 4),
            "water_detection": round(self.water_detection, 4),
            "building_damage": round(self.building_damage, 4),
            "fire_intensity": round(self.fire_intensity, 4),
        }


Source = Union[RawPost, RawImage]


@dataclass
class DisasterSignal:
    """One classification result for one raw input. Consumed by the aggregator, never stored."""
    disaster_type: str
    confidence: float
    severity: int
    coordinates: Coordinates
    location_name: str
    source: Source
    keywords: list = field(default_factory=list)
    sentiment_score: float = 0.0
    urgency_level: str = "low"
    affected_area: Optional[float] = None  # image signals only (sq km)
    indices: Optional[ImageIndices] = None  # image signals only
    error: Optional[str] = None  # set when the image failed to decode

    def __post_init__(self):
        self.confidence = clamp01(self.confidence)

    @property
    def is_disaster_related(self) -> bool:
        return self.disaster_type != NONE_TYPE

    @property
    def source_id(self) -> str:
        return self.source.id if isinstance(self.source, RawPost) else self.source.image_id

    def to_dict(self):
        d = {
            "disaster_type": self.disaster_type,
            "confidence": round(self.confidence, 4),
            "severity": self.severity,
            "coordinates": self.coordinates.to_dict(),
            "location_name": self.location_name,
            "keywords": list(self.keywords),
            "sentiment_score": self.sentiment_score,
            "urgency_level": self.urgency_level,
            "source_id": self.source_id,
        }
        if self.affected_area is not None:
            d["affected_area"] = round(self.affected_area, 2)
        if self.indices is not None:
            d["analysis"] = self.indices.to_dict()
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass
class DisasterAlert:
    alert_id: str
    disaster_type: str
    location_name: str
    coordinates: Coordinates
    confidence: float
    severity: int
    affected_population: int
    sentiment_score: float
    urgency_level: str
    timestamp: str
    report_count: int = 1
    keywords: list = field(default_factory=list)  # insertion-ordered, no duplicates
    sources: list = field(default_factory=list)  # append-only, RawPost / RawImage

    def add_keywords(self, keywords) -> None:
        for kw in keywords:
            if kw not in self.keywords:
                self.keywords.append(kw)

    def to_dict(self):
        return {
            "alert_id": self.alert_id,
            "disaster_type": self.disaster_type,
            "location_name": self.location_name,
            "coordinates": self.coordinates.to_dict(),
            "confidence": round(self.confidence, 2),
            "severity": self.severity,
            "affected_population": self.affected_population,
            "report_count": self.report_count,
            "sentiment_score": round(self.sentiment_score, 2),
            "urgency_level": self.urgency_level,
            "keywords": list(self.keywords),
            "timestamp": self.timestamp,
            "sources": [s.to_dict() for s in self.sources],
        }


@dataclass
class ItemError:
    item_id: str
    kind: str  # "input" | "decode"
    message: str

    def to_dict(self):
        return {"item_id": self.item_id, "kind": self.kind, "message": self.message}


@dataclass
class BatchResult:
    alerts: list = field(default_factory=list)  # published, ordered
    detections: list = field(default_factory=list)  # every image signal, including none/failed
    errors: list = field(default_factory=list)  # ItemError

    def to_dict(self):
        return {
            "alerts": [a.to_dict() for a in self.alerts],
            "detections": [d.to_dict() for d in self.detections],
            "errors": [e.to_dict() for e in self.errors],
        }
