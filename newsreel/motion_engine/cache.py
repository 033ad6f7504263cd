"""
Export Cache

Deterministic cache keys and on-disk storage for finished captures, so
re-running an export with identical inputs returns the stored result
instead of recording again. The cache is an explicit object owned by the
caller; nothing is memoized globally.
"""

import hashlib
import io
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from PIL import Image

from ..core.config import Settings, get_settings
from ..schemas.capture import CaptureResult

logger = logging.getLogger(__name__)

DATA_SUFFIX = ".bin"
META_SUFFIX = ".json"


def generate_cache_key(kind: str, params: Dict[str, Any], background: Any = None) -> str:
    """
    Generate deterministic cache key for an export.

    The key is a SHA-256 hash of every input that affects the rendered
    output: the export kind, its parameters and the background content.

    Args:
        kind: Export kind ("reveal" or "map")
        params: JSON-serializable render parameters
        background: Data URI, file path, raw bytes, PIL image or None

    Returns:
        SHA-256 hash string (64 characters)
    """
    payload = {
        "kind": kind,
        "params": params,
        "background": _hash_background(background),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _hash_background(background: Any) -> Optional[str]:
    if background is None:
        return None
    if isinstance(background, Image.Image):
        buffer = io.BytesIO()
        background.save(buffer, format="PNG")
        return hashlib.sha256(buffer.getvalue()).hexdigest()[:16]
    if isinstance(background, (bytes, bytearray)):
        return hashlib.sha256(bytes(background)).hexdigest()[:16]
    text = str(background)
    if text.startswith("data:"):
        return hashlib.sha256(text.encode()).hexdigest()[:16]
    return _hash_file_partial(text)


def _hash_file_partial(file_path: str, chunk_size: int = 65536) -> str:
    """
    Generate partial hash of file for cache key.

    Uses first chunk + file size for fast hashing.

    Args:
        file_path: Path to file
        chunk_size: Bytes to read for hashing

    Returns:
        SHA-256 hash of first chunk concatenated with file size
    """
    try:
        file_size = os.path.getsize(file_path)
        with open(file_path, "rb") as f:
            first_chunk = f.read(chunk_size)
        content = first_chunk + str(file_size).encode()
        return hashlib.sha256(content).hexdigest()[:16]
    except (IOError, OSError) as e:
        logger.warning(f"Failed to hash file {file_path}: {e}")
        # path-based hash keeps the key deterministic for a missing file
        return hashlib.sha256(file_path.encode()).hexdigest()[:16]


class ExportCache:
    """
    Cache manager for finished captures.

    Stores each result as a payload file plus a JSON metadata file in a
    sharded directory structure:
    {cache_root}/{key[:2]}/{key}.bin
    {cache_root}/{key[:2]}/{key}.json

    Entries older than max_age_hours are ignored on lookup; storing beyond
    max_entries evicts the oldest entries.

    Usage:
        cache = ExportCache()
        key = generate_cache_key("reveal", spec.model_dump(mode="json"), background)
        result = cache.get(key)
        if result is None:
            result = export_reveal(spec, background)
            cache.store(key, result)
    """

    def __init__(
        self,
        cache_root: Optional[Path] = None,
        max_age_hours: Optional[float] = None,
        max_entries: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.cache_root = Path(cache_root or settings.cache_root).expanduser()
        self.max_age_hours = settings.cache_max_age_hours if max_age_hours is None else max_age_hours
        self.max_entries = settings.cache_max_entries if max_entries is None else max_entries
        self.cache_root.mkdir(parents=True, exist_ok=True)

    def _get_cache_paths(self, cache_key: str) -> Tuple[Path, Path]:
        shard = self.cache_root / cache_key[:2]
        return shard / f"{cache_key}{DATA_SUFFIX}", shard / f"{cache_key}{META_SUFFIX}"

    def _entries(self) -> Iterator[Path]:
        for shard_dir in self.cache_root.iterdir():
            if shard_dir.is_dir():
                yield from shard_dir.glob(f"*{DATA_SUFFIX}")

    def _is_expired(self, path: Path) -> bool:
        return time.time() - path.stat().st_mtime > self.max_age_hours * 3600

    def get(self, cache_key: str) -> Optional[CaptureResult]:
        """
        Get cached result if present and not expired.

        Args:
            cache_key: SHA-256 hash string

        Returns:
            The stored CaptureResult, or None on a miss
        """
        data_path, meta_path = self._get_cache_paths(cache_key)
        if not data_path.exists() or not meta_path.exists():
            return None
        if self._is_expired(data_path):
            logger.debug(f"Cache expired: {cache_key[:16]}...")
            self.delete(cache_key)
            return None

        try:
            meta = json.loads(meta_path.read_text())
            result = CaptureResult(data=data_path.read_bytes(), **meta)
        except (IOError, OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable cache entry {cache_key[:16]}...: {e}")
            self.delete(cache_key)
            return None

        logger.debug(f"Cache hit: {cache_key[:16]}...")
        return result

    def store(self, cache_key: str, result: CaptureResult) -> Optional[Path]:
        """
        Store a capture result.

        Still-frame fallbacks are not stored, so the next identical export
        records again.

        Args:
            cache_key: SHA-256 hash string
            result: Result to store

        Returns:
            Path to the cached payload, or None if the result was not cached

        Raises:
            IOError: If writing fails
        """
        if result.still_frame:
            logger.info(f"Not caching still-frame fallback for {cache_key[:16]}...")
            return None

        data_path, meta_path = self._get_cache_paths(cache_key)
        data_path.parent.mkdir(parents=True, exist_ok=True)

        # write via temp files so a reader never sees a partial entry
        temp_data = data_path.with_suffix(".tmp")
        temp_meta = meta_path.with_suffix(".jsontmp")
        try:
            temp_data.write_bytes(result.data)
            temp_meta.write_text(result.model_dump_json(exclude={"data"}))
            temp_meta.rename(meta_path)
            temp_data.rename(data_path)
        except Exception as e:
            for temp in (temp_data, temp_meta):
                if temp.exists():
                    temp.unlink()
            raise IOError(f"Failed to cache export: {e}") from e

        logger.debug(f"Cached: {cache_key[:16]}... ({result.size} bytes)")
        self._evict_excess()
        return data_path

    def delete(self, cache_key: str) -> bool:
        """
        Delete a cached entry.

        Returns:
            True if deleted, False if not found
        """
        found = False
        for path in self._get_cache_paths(cache_key):
            if path.exists():
                path.unlink()
                found = True
        if found:
            logger.debug(f"Deleted: {cache_key[:16]}...")
        return found

    def _evict_excess(self) -> int:
        entries = sorted(self._entries(), key=lambda p: p.stat().st_mtime)
        excess = len(entries) - self.max_entries
        removed = 0
        for data_path in entries[:max(0, excess)]:
            if self.delete(data_path.stem):
                removed += 1
        if removed:
            logger.info(f"Cache eviction: removed {removed} entries")
        return removed

    def cleanup_old(self, max_age_hours: Optional[float] = None) -> int:
        """
        Remove cached entries older than max_age_hours.

        Args:
            max_age_hours: Maximum age in hours (defaults to the cache TTL)

        Returns:
            Number of entries removed
        """
        max_age = self.max_age_hours if max_age_hours is None else max_age_hours
        cutoff_time = time.time() - max_age * 3600
        removed = 0

        for data_path in list(self._entries()):
            try:
                if data_path.stat().st_mtime < cutoff_time and self.delete(data_path.stem):
                    removed += 1
            except (IOError, OSError) as e:
                logger.warning(f"Failed to clean up {data_path}: {e}")

        if removed > 0:
            logger.info(f"Cache cleanup: removed {removed} old entries")

        return removed

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dict with total_entries, total_size_mb, oldest_hours
        """
        total_entries = 0
        total_size = 0
        oldest_mtime = time.time()

        for data_path in self._entries():
            try:
                stat = data_path.stat()
                total_entries += 1
                total_size += stat.st_size
                oldest_mtime = min(oldest_mtime, stat.st_mtime)
            except (IOError, OSError):
                pass

        oldest_hours = (time.time() - oldest_mtime) / 3600 if total_entries > 0 else 0

        return {
            "total_entries": total_entries,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "oldest_hours": round(oldest_hours, 1),
        }
