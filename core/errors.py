"""
Error taxonomy for signal extraction and alert aggregation.

- InputError: malformed post (missing id, blank text, unknown platform). The item is skipped.
- DecodeError: unreadable or unsupported image, or decode timeout. The image becomes a `none` signal.
- AggregationError: invalid merge key. Fatal to the batch.
"""

from typing import Any, Optional


class SignalEngineError(Exception):
    """Base exception for the signal engine."""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        d = {"error": type(self).__name__, "message": self.message}
        if self.details:
            d["details"] = self.details
        return d


class InputError(SignalEngineError):
    """Post cannot be analysed (empty text, missing id, bad platform)."""

    def __init__(self, message: str, *, item_id: Optional[str] = None, **details: Any):
        if item_id is not None:
            details["item_id"] = item_id
        super().__init__(message, details=details)
        self.item_id = item_id


class DecodeError(SignalEngineError):
    """Image buffer could not be decoded into pixel statistics."""

    def __init__(self, message: str, *, mime_type: Optional[str] = None, **details: Any):
        if mime_type is not None:
            details["mime_type"] = mime_type
        super().__init__(message, details=details)
        self.mime_type = mime_type


class AggregationError(SignalEngineError):
    """Signal cannot be turned into a valid (disaster_type, location) key."""

    def __init__(self, message: str, *, disaster_type: Optional[str] = None, location: Optional[str] = None):
        super().__init__(message, details={"disaster_type": disaster_type, "location": location})
        self.disaster_type = disaster_type
        self.location = location
