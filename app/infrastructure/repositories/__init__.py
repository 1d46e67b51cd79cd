"""Repository implementations for infrastructure layer."""

from .like_event_repository import FALLBACK_USERNAME, LikeEventRepository
from .read_watermark_repository import ReadWatermarkRepository

__all__ = [
    "FALLBACK_USERNAME",
    "LikeEventRepository",
    "ReadWatermarkRepository",
]
