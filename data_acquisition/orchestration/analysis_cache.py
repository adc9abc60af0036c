"""
Analysis Cache - file-backed JSON cache with freshness windows.

Each entry is one JSON file ``{"timestamp": <epoch seconds>, "data": ...}``.
A read is a hit only while ``now - timestamp < max_age``; stale or corrupt
entries are misses. Writes go through a temp file and ``os.replace`` so a
concurrent reader never sees a half-written file.
"""

import json
import os
import re
import tempfile
import time
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Optional

from config.constants import DATA_CACHE_ANALYSIS
from utils.logger import setup_logger

logger = setup_logger('analysis_cache')

project_root = Path(__file__).resolve().parent.parent.parent


def analysis_key(symbol: str) -> str:
    return f"analysis_{symbol.upper()}"


def chart_key(symbol: str, time_range: str) -> str:
    return f"chart_{symbol.upper()}_{time_range.upper()}"


class AnalysisCache:
    """Per-key JSON files under one directory."""

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        clock: Callable[[], float] = time.time
    ):
        self.cache_dir = Path(cache_dir) if cache_dir else project_root / DATA_CACHE_ANALYSIS
        self._clock = clock
        self._lock = Lock()

    def _path(self, key: str) -> Path:
        # M&M -> M_M ; keeps file names portable
        safe = re.sub(r'[^A-Za-z0-9_.-]', '_', key)
        return self.cache_dir / f"{safe}.json"

    def get(self, key: str, max_age_seconds: float) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                entry = json.load(f)
            stored_at = float(entry['timestamp'])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cache entry {path.name}: {e}")
            return None

        age = self._clock() - stored_at
        if age < 0 or age >= max_age_seconds:
            logger.debug(f"Cache stale for {key} ({age:.0f}s old)")
            return None
        logger.debug(f"Cache hit for {key} ({age:.0f}s old)")
        return entry.get('data')

    def set(self, key: str, data: Any) -> None:
        entry = {'timestamp': self._clock(), 'data': data}
        with self._lock:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(entry, f, ensure_ascii=False)
                os.replace(tmp_path, self._path(key))
            except OSError:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def clear(self) -> int:
        """Remove every cache entry. Returns the number of files deleted."""
        if not self.cache_dir.exists():
            return 0
        removed = 0
        with self._lock:
            for path in self.cache_dir.glob('*.json'):
                path.unlink()
                removed += 1
        logger.info(f"Cleared {removed} cache entries from {self.cache_dir}")
        return removed
