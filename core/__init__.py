"""Core signal/alert models and error taxonomy. The batch engine lives in core.engine."""

from core.models import DisasterAlert, DisasterSignal, RawPost, RawImage, BatchResult
from core.errors import AggregationError, DecodeError, InputError

__all__ = [
    "DisasterAlert",
    "DisasterSignal",
    "RawPost",
    "RawImage",
    "BatchResult",
    "AggregationError",
    "DecodeError",
    "InputError",
]
