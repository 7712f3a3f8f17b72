"""
Mock social posts: fixed templates x gazetteer places x platforms.
Same rng seed and `now` -> same posts. Only the demo endpoints and tests use this.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.models import Coordinates, RawPost, PLATFORMS
from extractors.tables import TextTables, DEFAULT_TEXT_TABLES

logger = logging.getLogger("disaster_api.generators.mock_posts")

# (template, intended type); {location} is replaced by the place name
POST_TEMPLATES = (
    ("Heavy flooding in {location}! Water levels rising rapidly. Need immediate help! #Flood #Emergency", "flood"),
    ("Massive fire outbreak in {location}. Smoke visible from miles away. Evacuate now! #Fire #Disaster", "fire"),
    ("Strong earthquake felt in {location}! Buildings shaking. Everyone stay safe! #Earthquake", "earthquake"),
    ("Cyclone hitting {location} with strong winds. Trees falling everywhere. Stay indoors! #Cyclone", "hurricane"),
    ("Landslide reported in {location}. Roads blocked. People trapped. Send help urgently! #Landslide", "landslide"),
    ("Severe flooding continues in {location}. Many families stranded on rooftops. #FloodRelief", "flood"),
    ("Forest fire spreading rapidly near {location}. Wildlife and villages at risk. #ForestFire", "fire"),
    ("Another tremor felt in {location}. Buildings damaged. Medical help needed. #EarthquakeAlert", "earthquake"),
    ("Hurricane warning for {location}! Winds expected to reach 150 km/h. Evacuate coastal areas! #Storm", "hurricane"),
    ("Flash floods in {location} after heavy rain. Cars submerged. Rescue operations underway. #Flood", "flood"),
)

MAX_AGE_SECONDS = 3600


def generate_mock_posts(
    count: int = 20,
    *,
    rng: Optional[random.Random] = None,
    tables: TextTables = DEFAULT_TEXT_TABLES,
    now: Optional[datetime] = None,
    templates=POST_TEMPLATES,
) -> list[RawPost]:
    """Posts carry their place name and gazetteer coordinates; timestamps fall in the hour before `now`."""
    if count < 0:
        raise ValueError("count must be >= 0")
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    epoch_ms = int(now.timestamp() * 1000)
    places = list(tables.gazetteer)
    posts = []
    for i in range(count):
        template, _ = rng.choice(templates)
        place, (lat, lng) = rng.choice(places)
        name = place[:1].upper() + place[1:]
        posted = now - timedelta(seconds=rng.random() * MAX_AGE_SECONDS)
        posts.append(RawPost(
            id=f"post-{epoch_ms}-{i}",
            text=template.replace("{location}", name),
            author=f"User{rng.randrange(1000)}",
            timestamp=posted.strftime("%Y-%m-%dT%H:%M:%SZ"),
            platform=rng.choice(PLATFORMS),
            location=name,
            coordinates=Coordinates(lat=lat, lng=lng),
        ))
    logger.debug("generated mock posts count=%d", count)
    return posts
