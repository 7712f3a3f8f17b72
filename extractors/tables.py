"""
Lexical tables for the text and image classifiers.

Tables are frozen, order-preserving tuples bundled into TextTables. Each classifier owns
(or is given) one TextTables instance, so classifiers with different locales can run side by side.

Category order matters: on equal keyword counts the category listed first wins.
The order is flood, fire, earthquake, hurricane, landslide, cyclone, tsunami.
"""

import random
from dataclasses import dataclass
from typing import Optional

from core.models import Coordinates

CATEGORY_KEYWORDS = (
    ("flood", ("flood", "flooding", "water rising", "inundation", "waterlogged", "deluge", "submerg")),
    ("fire", ("fire", "blaze", "burning", "flames", "smoke", "wildfire", "forest fire", "arson")),
    ("earthquake", ("earthquake", "tremor", "seismic", "quake", "shaking", "aftershock", "epicenter")),
    ("hurricane", ("hurricane", "cyclone", "typhoon", "storm", "wind", "gale", "tempest")),
    ("landslide", ("landslide", "mudslide", "rockslide", "slope failure", "debris flow", "avalanche")),
    ("cyclone", ("cyclone", "tropical storm", "depression", "low pressure", "eye of storm")),
    ("tsunami", ("tsunami", "tidal wave", "seismic sea wave", "ocean wave")),
)

URGENCY_KEYWORDS = (
    "urgent", "emergency", "help", "sos", "critical", "immediate", "rescue",
    "trapped", "danger", "life threatening", "evacuate", "stranded",
)

# Known places, checked in this order. Keys are lowercase.
GAZETTEER = (
    ("mumbai", (19.0760, 72.8777)),
    ("delhi", (28.7041, 77.1025)),
    ("bangalore", (12.9716, 77.5946)),
    ("hyderabad", (17.3850, 78.4867)),
    ("chennai", (13.0827, 80.2707)),
    ("kolkata", (22.5726, 88.3639)),
    ("pune", (18.5204, 73.8567)),
    ("ahmedabad", (23.0225, 72.5714)),
    ("kerala", (10.8505, 76.2711)),
    ("wayanad", (11.6854, 76.1320)),
    ("uttarakhand", (30.0668, 79.0193)),
    ("assam", (26.2006, 92.9376)),
    ("odisha", (20.9517, 85.0985)),
    ("bihar", (25.0961, 85.3131)),
    ("rajasthan", (27.0238, 74.2179)),
    ("kashmir", (34.0837, 74.7973)),
)

MAJOR_CITIES = ("mumbai", "delhi", "bangalore", "hyderabad", "chennai", "kolkata")

# "in X", "at X", ... tried in this order when no gazetteer place matches.
# Not word-bounded: "rain near ranchi" matches "in near" first.
LOCATION_PREPOSITIONS = ("in", "at", "from", "near")


@dataclass(frozen=True)
class BoundingRegion:
    """Fallback region for unknown locations: centre +/- span/2 on each axis."""
    center_lat: float
    center_lng: float
    span: float

    def jitter(self, rng: random.Random) -> Coordinates:
        return Coordinates(
            lat=self.center_lat + (rng.random() - 0.5) * self.span,
            lng=self.center_lng + (rng.random() - 0.5) * self.span,
        )

    def contains(self, coords: Coordinates) -> bool:
        half = self.span / 2
        return (abs(coords.lat - self.center_lat) <= half
                and abs(coords.lng - self.center_lng) <= half)


TEXT_REGION = BoundingRegion(20.5937, 78.9629, 15.0)
IMAGE_REGION = BoundingRegion(20.5937, 78.9629, 10.0)


@dataclass(frozen=True)
class TextTables:
    categories: tuple = CATEGORY_KEYWORDS
    urgency: tuple = URGENCY_KEYWORDS
    gazetteer: tuple = GAZETTEER
    major_cities: tuple = MAJOR_CITIES
    sentiment_language: str = "en"  # AFINN word list, see extractors.sentiment
    prepositions: tuple = LOCATION_PREPOSITIONS
    region: BoundingRegion = TEXT_REGION

    def place_coordinates(self, name: str) -> Optional[Coordinates]:
        """Exact (case-insensitive) gazetteer lookup."""
        key = (name or "").strip().lower()
        for place, (lat, lng) in self.gazetteer:
            if place == key:
                return Coordinates(lat=lat, lng=lng)
        return None

    def place_names(self) -> list[str]:
        return [place for place, _ in self.gazetteer]


DEFAULT_TEXT_TABLES = TextTables()
