"""
Batch processing: raw posts and images in, published alerts and image detections out.
Per-item extraction runs on a thread pool; merging into the aggregator is serialized afterwards.
"""

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Optional

from clustering.aggregator import AlertAggregator
from core.config import DEFAULT_DECODE_TIMEOUT, DEFAULT_MAX_WORKERS
from core.errors import DecodeError, InputError
from core.models import BatchResult, DisasterAlert, DisasterSignal, ItemError, RawImage, RawPost
from extractors.image_classifier import ImageClassifier
from extractors.text_classifier import TextClassifier

logger = logging.getLogger("disaster_api.engine")


def _item_rngs(rng: random.Random, count: int) -> list[random.Random]:
    """One independent source per item, drawn in input order so thread scheduling cannot change results."""
    return [random.Random(rng.getrandbits(64)) for _ in range(count)]


def _collect_posts(futures, posts: list[RawPost], errors: list[ItemError]) -> list[DisasterSignal]:
    signals = []
    for post, fut in zip(posts, futures):
        try:
            signals.append(fut.result())
        except InputError as e:
            item_id = e.item_id or str(post.id or "")
            logger.warning("post skipped post_id=%r: %s", item_id, e.message)
            errors.append(ItemError(item_id=item_id, kind="input", message=e.message))
    return signals


class _TimedCall:
    """Wraps a classify call and records when a worker actually picked it up."""

    def __init__(self, fn):
        self.fn = fn
        self.started = threading.Event()
        self.started_at = 0.0

    def __call__(self, *args):
        self.started_at = time.monotonic()
        self.started.set()
        return self.fn(*args)

    def remaining(self, timeout: float) -> float:
        return max(0.0, timeout - (time.monotonic() - self.started_at))


def _collect_images(
    futures,
    calls: list[_TimedCall],
    images: list[RawImage],
    image_classifier: ImageClassifier,
    decode_timeout: float,
    errors: list[ItemError],
) -> list[DisasterSignal]:
    """Each decode gets decode_timeout from its own start; time spent queued behind other work doesn't count."""
    signals = []
    for image, call, fut in zip(images, calls, futures):
        try:
            call.started.wait()
            signals.append(fut.result(timeout=call.remaining(decode_timeout)))
            continue
        except DecodeError as e:
            err = e
        except FutureTimeoutError:
            err = DecodeError(f"image decode timed out after {decode_timeout}s", mime_type=image.mime_type)
        logger.warning("image failed image_id=%s: %s", image.image_id, err.message)
        errors.append(ItemError(item_id=image.image_id, kind="decode", message=err.message))
        signals.append(image_classifier.failed_signal(image, err))
    return signals


def process_batch(
    posts: list[RawPost],
    images: Optional[list[RawImage]] = None,
    *,
    text_classifier: TextClassifier,
    image_classifier: ImageClassifier,
    rng: Optional[random.Random] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    decode_timeout: float = DEFAULT_DECODE_TIMEOUT,
    clock: Optional[Callable[[], str]] = None,
) -> BatchResult:
    """
    Classify every post and image, merge disaster signals into alerts, filter and rank.
    Malformed posts and unreadable images are reported in result.errors; AggregationError propagates.
    """
    posts = list(posts or [])
    images = list(images or [])
    rng = rng or random.Random()
    post_rngs = _item_rngs(rng, len(posts))
    image_rngs = _item_rngs(rng, len(images))
    errors: list[ItemError] = []

    pool = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="signal")
    try:
        post_futures = [pool.submit(text_classifier.classify, p, r) for p, r in zip(posts, post_rngs)]
        image_calls = [_TimedCall(image_classifier.classify) for _ in images]
        image_futures = [pool.submit(c, i, r) for c, i, r in zip(image_calls, images, image_rngs)]
        post_signals = _collect_posts(post_futures, posts, errors)
        image_signals = _collect_images(image_futures, image_calls, images, image_classifier, decode_timeout, errors)
    finally:
        # don't wait on a decode that already timed out
        pool.shutdown(wait=False, cancel_futures=True)

    aggregator = AlertAggregator(rng=rng, major_cities=text_classifier.tables.major_cities, clock=clock)
    for signal in post_signals + image_signals:
        if signal.is_disaster_related:
            aggregator.add(signal)

    result = BatchResult(alerts=aggregator.publish(), detections=image_signals, errors=errors)
    logger.info(
        "batch done posts=%d images=%d signals=%d alerts_live=%d alerts_published=%d errors=%d",
        len(posts), len(images), len(post_signals) + len(image_signals), len(aggregator),
        len(result.alerts), len(errors),
    )
    return result


def detection_record(signal: DisasterSignal) -> dict:
    """Persistence-ready row for a classified image detection. Raises ValueError for `none` signals."""
    if not signal.is_disaster_related or signal.indices is None:
        raise ValueError("only classified image signals have detection records")
    record = {
        "disaster_type": signal.disaster_type,
        "confidence": round(signal.confidence, 2),
        "severity": int(signal.severity),
        "affected_area": round(signal.affected_area or 0.0, 2),
        "latitude": round(signal.coordinates.lat, 8),
        "longitude": round(signal.coordinates.lng, 8),
    }
    record.update(signal.indices.to_dict())
    return record


def source_record(post: RawPost) -> dict:
    return {
        "post_id": post.id,
        "platform": post.platform,
        "author": post.author,
        "content": post.text,
        "location_name": post.location,
        "latitude": round(post.coordinates.lat, 8) if post.coordinates else None,
        "longitude": round(post.coordinates.lng, 8) if post.coordinates else None,
        "posted_at": post.timestamp,
    }


def alert_record(alert: DisasterAlert) -> dict:
    """Persistence-ready row for a published alert plus its post sources."""
    return {
        "disaster_type": alert.disaster_type,
        "location_name": alert.location_name,
        "latitude": round(alert.coordinates.lat, 8),
        "longitude": round(alert.coordinates.lng, 8),
        "confidence": round(alert.confidence, 2),
        "severity": int(alert.severity),
        "affected_population": alert.affected_population,
        "report_count": alert.report_count,
        "sentiment_score": round(alert.sentiment_score, 2),
        "urgency_level": alert.urgency_level,
        "keywords": list(alert.keywords),
        "sources": [source_record(s) for s in alert.sources if isinstance(s, RawPost)],
    }
