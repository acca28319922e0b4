"""
Entry store: date key -> DailyEntry, persisted as one JSON document.

The store is loaded once and mirrored to storage after every update. Reads
never create entries; update_entry() is the only mutation.
"""
import json
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from ramadhan_tracker.tracker.models import DailyEntry, QuranProgress

STORE_KEY = "ramadan_tracker_v1"
THEME_KEY = "ramadan_theme"

# Top-level fields whose sub-objects are merged key by key
_NESTED_FIELDS = ("prayers", "quran")
_QURAN_ALIASES = {"surahIndex": "surah_index"}


def _normalize_nested(field: str, value: Mapping[str, Any]) -> Dict[str, Any]:
    if field != "quran":
        return dict(value)
    # Extra quran keys are ignored on load but rejected on update
    normalized = {_QURAN_ALIASES.get(k, k): v for k, v in value.items()}
    unknown = sorted(set(normalized) - set(QuranProgress.model_fields))
    if unknown:
        raise ValueError(f"Unknown quran field(s): {', '.join(unknown)}")
    return normalized


class EntryStore:
    def __init__(self, storage):
        """storage: any object with get(key) -> Optional[str] and set(key, value)."""
        self.storage = storage
        self.entries: Dict[str, DailyEntry] = {}
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_all(self) -> Dict[str, DailyEntry]:
        """Replace in-memory entries with persisted state. Missing or malformed data yields an empty store."""
        try:
            text = self.storage.get(STORE_KEY)
        except Exception as e:
            self.logger.error(f"Error reading persisted entries: {e}")
            text = None
        self.entries = self._parse(text)
        self.logger.info(f"Loaded {len(self.entries)} entries")
        return self.entries

    def _parse(self, text: Optional[str]) -> Dict[str, DailyEntry]:
        if not text:
            return {}
        try:
            raw = json.loads(text)
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Persisted entries are not valid JSON, starting empty: {e}")
            return {}
        if not isinstance(raw, dict):
            self.logger.warning(f"Persisted entries must be a JSON object, got {type(raw).__name__}")
            return {}

        entries = {}
        for key, value in raw.items():
            if not isinstance(value, dict):
                self.logger.warning(f"Skipping malformed entry {key!r}")
                continue
            try:
                entry = DailyEntry.model_validate({**value, "date": key})
            except ValidationError as e:
                self.logger.warning(f"Skipping malformed entry {key!r}: {e.error_count()} error(s)")
                continue
            entries[key] = entry
        return entries

    def persist_all(self) -> bool:
        """Write every entry. An empty store is never written so it cannot clobber saved data."""
        if not self.entries:
            self.logger.debug("Store is empty, skipping persist")
            return False
        payload = {key: entry.to_storage() for key, entry in self.entries.items()}
        try:
            self.storage.set(STORE_KEY, json.dumps(payload, ensure_ascii=False))
        except Exception as e:
            self.logger.error(f"Error persisting {len(payload)} entries: {e}")
            return False
        return True

    def get_entry(self, date_key: str) -> DailyEntry:
        entry = self.entries.get(date_key)
        if entry is None:
            return DailyEntry.default(date_key)
        return entry.model_copy(deep=True)

    def update_entry(self, date_key: str, changes: Optional[Mapping[str, Any]] = None) -> DailyEntry:
        """Merge changes onto the entry for date_key, store it and persist.

        prayers and quran are merged key by key; other fields are replaced.
        Raises ValueError for unknown fields or values the model rejects.
        """
        merged = self.get_entry(date_key).model_dump()
        for field, value in (changes or {}).items():
            if field not in DailyEntry.model_fields or field == "date":
                raise ValueError(f"Unknown entry field: {field!r}")
            if field in _NESTED_FIELDS and isinstance(value, Mapping):
                merged[field] = {**merged[field], **_normalize_nested(field, value)}
            else:
                merged[field] = value
        merged["date"] = date_key

        entry = DailyEntry.model_validate(merged)
        self.entries[date_key] = entry
        self.persist_all()
        self.logger.debug(f"Updated entry {date_key}: {dict(changes or {})}")
        return entry.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self.entries)


class ThemePreference:
    """Light/dark preference stored beside the entries."""
    LIGHT = "light"
    DARK = "dark"

    def __init__(self, storage):
        self.storage = storage
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(self) -> str:
        try:
            value = self.storage.get(THEME_KEY)
        except Exception as e:
            self.logger.error(f"Error reading theme: {e}")
            return self.LIGHT
        return value if value in (self.LIGHT, self.DARK) else self.LIGHT

    def set(self, theme: str) -> str:
        if theme not in (self.LIGHT, self.DARK):
            raise ValueError(f"Unknown theme: {theme!r}")
        self.storage.set(THEME_KEY, theme)
        return theme

    def toggle(self) -> str:
        return self.set(self.DARK if self.get() == self.LIGHT else self.LIGHT)
