"""
FastAPI backend: analyse batches of social posts and satellite/aerial images into disaster alerts.
Stateless between requests: every call runs one batch and returns its alerts.
"""

import logging
import random
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.config import load_settings
from core.engine import alert_record, detection_record, process_batch
from core.errors import AggregationError, DecodeError
from core.models import Coordinates, RawImage, RawPost
from extractors.image_classifier import ImageClassifier
from extractors.text_classifier import TextClassifier
from generators.mock_posts import generate_mock_posts

load_dotenv()
settings = load_settings()

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("disaster_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed = settings.random_seed
    app.state.text_classifier = TextClassifier(rng=random.Random(seed))
    app.state.image_classifier = ImageClassifier(grid_size=settings.image_grid, rng=random.Random(seed))
    logger.info("classifiers ready grid=%d workers=%d seeded=%s",
                settings.image_grid, settings.max_workers, seed is not None)
    yield


app = FastAPI(title="Disaster Signal API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

NO_CACHE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate", "Pragma": "no-cache"}


@app.exception_handler(AggregationError)
async def aggregation_error_handler(request: Request, exc: AggregationError):
    logger.error("batch aborted path=%s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=500, content=exc.to_dict(), headers=NO_CACHE_HEADERS)


# -----------------------------------------------------------------------------
# Request/response models
# -----------------------------------------------------------------------------
class PostIn(BaseModel):
    id: str
    text: str = ""
    author: str = "anonymous"
    timestamp: str = ""
    platform: str = "twitter"  # validated per item, so one bad post doesn't reject the batch
    location: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    def to_raw(self) -> RawPost:
        coords = Coordinates(lat=self.lat, lng=self.lng) if self.lat is not None and self.lng is not None else None
        return RawPost(
            id=self.id,
            text=self.text,
            author=self.author,
            timestamp=self.timestamp,
            platform=self.platform,
            location=self.location,
            coordinates=coords,
        )


class AnalyzePostsRequest(BaseModel):
    posts: list[PostIn] = Field(default_factory=list)
    seed: Optional[int] = None


class AnalyzePostsResponse(BaseModel):
    processed: int
    alerts: list[dict]
    records: list[dict]
    errors: list[dict]


def _batch_rng(seed: Optional[int]) -> random.Random:
    if seed is not None:
        return random.Random(seed)
    return random.Random(settings.random_seed) if settings.random_seed is not None else random.Random()


def _run_posts(posts: list[RawPost], seed: Optional[int]) -> dict:
    result = process_batch(
        posts,
        text_classifier=app.state.text_classifier,
        image_classifier=app.state.image_classifier,
        rng=_batch_rng(seed),
        max_workers=settings.max_workers,
        decode_timeout=settings.decode_timeout,
    )
    return AnalyzePostsResponse(
        processed=len(posts),
        alerts=[a.to_dict() for a in result.alerts],
        records=[alert_record(a) for a in result.alerts],
        errors=[e.to_dict() for e in result.errors],
    ).model_dump()


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
@app.post("/analyze/posts", response_model=AnalyzePostsResponse)
def analyze_posts(body: AnalyzePostsRequest):
    """Classify a batch of posts and return published alerts (highest confidence first)."""
    logger.info("analyze posts count=%d seed=%s", len(body.posts), body.seed)
    content = _run_posts([p.to_raw() for p in body.posts], body.seed)
    return JSONResponse(content=content, headers=NO_CACHE_HEADERS)


@app.post("/analyze/image")
async def analyze_image(
    file: UploadFile = File(...),
    lat: Optional[float] = Form(None),
    lng: Optional[float] = Form(None),
    location: Optional[str] = Form(None),
    seed: Optional[int] = Form(None),
):
    """Classify one uploaded image. Unreadable images -> 422."""
    data = await file.read()
    image = RawImage(
        image_id=file.filename or "upload",
        data=data,
        mime_type=file.content_type or "",
        location=location,
        coordinates=Coordinates(lat=lat, lng=lng) if lat is not None and lng is not None else None,
    )
    logger.info("analyze image name=%s mime=%s bytes=%d", image.image_id, image.mime_type, len(data))
    classifier: ImageClassifier = app.state.image_classifier
    try:
        signal = await run_in_threadpool(classifier.classify, image, _batch_rng(seed))
    except DecodeError as e:
        logger.warning("image rejected name=%s: %s", image.image_id, e.message)
        return JSONResponse(status_code=422, content=e.to_dict(), headers=NO_CACHE_HEADERS)
    content = signal.to_dict()
    content["record"] = detection_record(signal) if signal.is_disaster_related else None
    return JSONResponse(content=content, headers=NO_CACHE_HEADERS)


@app.get("/mock/posts")
def mock_posts(count: int = Query(20, ge=0, le=500), seed: Optional[int] = None):
    """Synthetic posts for demos. Same seed -> same texts, places and platforms."""
    posts = generate_mock_posts(count, rng=_batch_rng(seed), tables=app.state.text_classifier.tables)
    return JSONResponse(content={"posts": [p.to_dict() for p in posts]}, headers=NO_CACHE_HEADERS)


@app.post("/mock/analyze", response_model=AnalyzePostsResponse)
def mock_analyze(count: int = Query(50, ge=0, le=500), seed: Optional[int] = None):
    """Generate a mock batch and analyse it in one call."""
    rng = _batch_rng(seed)
    posts = generate_mock_posts(count, rng=rng, tables=app.state.text_classifier.tables)
    content = _run_posts(posts, rng.getrandbits(32))
    return JSONResponse(content=content, headers=NO_CACHE_HEADERS)


@app.get("/health")
def health():
    return JSONResponse(
        content={"status": "ok", "image_grid": settings.image_grid, "max_workers": settings.max_workers},
        headers=NO_CACHE_HEADERS,
    )
