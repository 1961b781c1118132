"""
Cache Compression Utilities

Uses LZ4 for fast compression with good ratios.
Compression is applied automatically for entries larger than threshold.
"""

import json
import logging
from typing import Any, Tuple, Optional
from dataclasses import dataclass
from uuid import UUID

import lz4.frame


logger = logging.getLogger(__name__)


# Compression type markers (1-byte prefix)
MARKER_UNCOMPRESSED = b'\x00'
MARKER_LZ4 = b'\x01'


@dataclass
class CompressionStats:
    """Track compression statistics."""
    original_size: int
    compressed_size: int
    compression_ratio: float

    @property
    def savings_percent(self) -> float:
        """Calculate space savings percentage."""
        if self.original_size == 0:
            return 0.0
        return (1 - self.compressed_size / self.original_size) * 100


class CacheCompressor:
    """
    Handles compression/decompression of cache entries.

    Response envelopes are JSON; list pages of blog posts compress ~2-3x.
    Small entries (single items, the analytics summary) are stored as-is.
    """

    def __init__(
        self,
        enabled: bool = True,
        threshold: int = 1024,  # 1KB minimum for compression
    ):
        self.enabled = enabled
        self.threshold = threshold

    def compress(self, data: bytes) -> Tuple[bytes, Optional[CompressionStats]]:
        """
        Compress data if beneficial.

        Returns:
            Tuple of (marked_data, stats) or (marked_original, None)
        """
        if not self.enabled or len(data) < self.threshold:
            return MARKER_UNCOMPRESSED + data, None

        try:
            compressed = lz4.frame.compress(data)
        except Exception as e:
            logger.warning(f"Compression failed: {e}, storing uncompressed")
            return MARKER_UNCOMPRESSED + data, None

        # Only use compression if it actually saves space
        if len(compressed) < len(data):
            stats = CompressionStats(
                original_size=len(data),
                compressed_size=len(compressed) + 1,  # +1 for marker
                compression_ratio=len(data) / len(compressed),
            )
            return MARKER_LZ4 + compressed, stats

        return MARKER_UNCOMPRESSED + data, None

    def decompress(self, data: bytes) -> bytes:
        """
        Strip the marker and decompress if needed.

        Raises ValueError on an unknown marker; the cache treats that entry as
        a miss.
        """
        if not data:
            return data

        marker = data[0:1]
        payload = data[1:]

        if marker == MARKER_UNCOMPRESSED:
            return payload
        if marker == MARKER_LZ4:
            return lz4.frame.decompress(payload)
        raise ValueError(f"Unknown compression marker: {marker!r}")


def serialize_value(value: Any) -> bytes:
    """
    Serialize a Python value to bytes for caching.

    Uses JSON with default handler for datetimes and UUIDs.
    """
    def default_handler(obj):
        if hasattr(obj, 'isoformat'):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if hasattr(obj, 'model_dump'):
            return obj.model_dump(mode="json")
        return str(obj)

    json_str = json.dumps(value, default=default_handler, ensure_ascii=False)
    return json_str.encode('utf-8')


def deserialize_value(data: bytes) -> Any:
    """
    Deserialize bytes back to Python value.
    """
    if not data:
        return None
    return json.loads(data.decode('utf-8'))
