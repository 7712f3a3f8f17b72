"""
Image feature extraction: decode buffer -> downsampled channel means -> colour indices.
Pure and synchronous so it can run on any worker thread.
"""

import logging
from io import BytesIO

from PIL import Image, ImageStat, UnidentifiedImageError

from core.errors import DecodeError
from core.models import ImageIndices, PixelStats

logger = logging.getLogger("disaster_api.image_extractor")

DEFAULT_GRID_SIZE = 100
SUPPORTED_MIME_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/gif", "image/bmp", "image/webp")


def decode(data: bytes, mime_type: str, grid_size: int = DEFAULT_GRID_SIZE) -> PixelStats:
    """Downsample to grid_size x grid_size and return per-channel means in [0, 1]. Raises DecodeError."""
    mime = (mime_type or "").strip().lower()
    if mime not in SUPPORTED_MIME_TYPES:
        raise DecodeError(f"unsupported image type {mime_type!r}", mime_type=mime_type)
    if not data:
        raise DecodeError("empty image buffer", mime_type=mime_type)
    try:
        with Image.open(BytesIO(data)) as img:
            small = img.convert("RGB").resize((grid_size, grid_size), Image.Resampling.BILINEAR)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"cannot decode image: {e}", mime_type=mime_type) from e
    r, g, b = (m / 255.0 for m in ImageStat.Stat(small).mean)
    logger.debug("decoded image mime=%s grid=%d r=%.3f g=%.3f b=%.3f", mime, grid_size, r, g, b)
    return PixelStats(r=r, g=g, b=b, pixels=grid_size * grid_size)


def compute_indices(stats: PixelStats) -> ImageIndices:
    r, g, b = stats.r, stats.g, stats.b
    return ImageIndices(
        vegetation_index=g - (r + b) / 2,
        water_detection=b - (r + g) / 2 + 0.3,
        building_damage=(r - g) * 1.5,
        fire_intensity=r * 0.7 + (1 - b) * 0.3,
    )
