"""
Utility Functions
=================

Common utilities used across the TasteGen system.
"""

import json
import hashlib
import random
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional


class Cache:
    """Simple file-based cache with TTL support."""

    def __init__(self, cache_dir: str = ".cache", ttl_hours: int = 24):
        """
        Initialize cache.

        Args:
            cache_dir: Directory for cache files
            ttl_hours: Time-to-live in hours
        """
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_hours * 3600
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def make_key(self, prefix: str, data: Any) -> str:
        """Generate cache key from a prefix and JSON-serializable data."""
        data_str = json.dumps(data, sort_keys=True, default=str)
        return f"{prefix}_{hashlib.md5(data_str.encode()).hexdigest()[:12]}"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        cache_file = self.cache_dir / f"{key}.json"

        if not cache_file.exists():
            return None

        try:
            with open(cache_file, 'r', encoding='utf-8') as f:
                cached = json.load(f)
        except (json.JSONDecodeError, IOError):
            return None

        # Check TTL
        if time.time() - cached.get('timestamp', 0) > self.ttl_seconds:
            cache_file.unlink()
            return None

        return cached.get('data')

    def set(self, key: str, data: Any) -> None:
        """Set value in cache."""
        cache_file = self.cache_dir / f"{key}.json"

        try:
            with open(cache_file, 'w', encoding='utf-8') as f:
                json.dump({
                    'timestamp': time.time(),
                    'data': data
                }, f)
        except IOError:
            pass  # a cache miss next time is acceptable


def batch_process(items: list, batch_size: int, processor: Callable) -> list:
    """
    Process items in batches.

    Args:
        items: Items to process
        batch_size: Size of each batch
        processor: Function to call on each batch

    Returns:
        Flattened list of results
    """
    results = []

    for i in range(0, len(items), batch_size):
        batch = items[i:i + batch_size]
        batch_result = processor(batch)
        if isinstance(batch_result, list):
            results.extend(batch_result)
        elif batch_result is not None:
            results.append(batch_result)

    return results


def unique_ids(ids: Iterable[Optional[str]]) -> List[str]:
    """Deduplicate ids, keeping first-seen order and dropping empties."""
    seen = set()
    result = []
    for item_id in ids:
        if item_id and item_id not in seen:
            seen.add(item_id)
            result.append(item_id)
    return result


def shuffled(items: List[Any], rng: random.Random) -> List[Any]:
    """Return a shuffled copy of items using the given random source."""
    result = list(items)
    rng.shuffle(result)
    return result


def total_duration_ms(tracks: List[Dict]) -> int:
    """Sum of track durations in milliseconds."""
    return sum(t.get('duration_ms', 0) or 0 for t in tracks)


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as m:ss."""
    seconds = int(duration_ms // 1000)
    return f"{seconds // 60}:{seconds % 60:02d}"


def artist_names(track: Dict) -> List[str]:
    """Names of a track's artists."""
    return [a.get('name', '') for a in track.get('artists', []) if a]
