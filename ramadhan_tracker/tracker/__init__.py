from .day_resolver import DayInfo, Phase, observance_day, resolve
from .models import PRAYER_SLOTS, DailyEntry, DailyPrayerRecord, PrayerStatus, QuranProgress
from .reference import ImsakiyahTime, ReferenceDataError, Surah, chapter_by_index
from .store import EntryStore, ThemePreference

__all__ = [
    "DayInfo",
    "Phase",
    "observance_day",
    "resolve",
    "PRAYER_SLOTS",
    "DailyEntry",
    "DailyPrayerRecord",
    "PrayerStatus",
    "QuranProgress",
    "ImsakiyahTime",
    "ReferenceDataError",
    "Surah",
    "chapter_by_index",
    "EntryStore",
    "ThemePreference",
]
