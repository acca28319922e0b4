import os
import json
from datetime import date, datetime
import logging
from typing import Any, Optional
import hashlib

logger = logging.getLogger(__name__)


class CacheHelper:
    DEFAULT_CACHE_DIR = "~/.ramadhan_tracker/cache"

    def __init__(self, cache_dir: Optional[str] = None, namespace: str = ""):
        """Initialize cache helper with specific cache directory
        Args:
            cache_dir: Base cache directory from config, if None uses DEFAULT_CACHE_DIR
            namespace: Subdirectory for one kind of cached data (e.g. "prayer_times")
        """
        base_dir = os.path.expanduser(cache_dir or self.DEFAULT_CACHE_DIR)
        self.cache_dir = os.path.join(base_dir, namespace) if namespace else base_dir
        os.makedirs(self.cache_dir, exist_ok=True)

    def _get_cache_file(self, key: str) -> str:
        key_hash = hashlib.md5(key.encode()).hexdigest()
        return os.path.join(self.cache_dir, f"{key_hash}.json")

    def get_cached(self, key: str, valid_for: Optional[date] = None) -> Optional[Any]:
        """Return cached content for key.

        If valid_for is given, content saved for any other date is treated as stale.
        Unreadable cache files are logged and ignored.
        """
        cache_file = self._get_cache_file(key)
        if not os.path.exists(cache_file):
            return None
        try:
            with open(cache_file, 'r') as f:
                cached = json.load(f)
            if valid_for is not None:
                cache_date = datetime.strptime(cached['date'], '%Y-%m-%d').date()
                if cache_date != valid_for:
                    return None
            return cached['content']
        except Exception as e:
            logger.error(f"Error reading cache {cache_file}: {e}")
            return None

    def save(self, key: str, content: Any, for_date: Optional[date] = None) -> None:
        """Save JSON-serializable content under key, stamped with for_date (default today)."""
        try:
            cache_data = {
                'date': (for_date or datetime.now().date()).strftime('%Y-%m-%d'),
                'content': content,
            }
            with open(self._get_cache_file(key), 'w') as f:
                json.dump(cache_data, f)
        except Exception as e:
            logger.error(f"Error saving to cache: {e}")
