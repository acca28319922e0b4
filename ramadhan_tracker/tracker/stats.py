"""
Read-only summaries over one entry or the whole store.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ramadhan_tracker.tracker.models import DailyEntry, PrayerStatus
from ramadhan_tracker.tracker.reference import RAMADAN_DAYS, SURAH_COUNT, Surah, surahs as load_surahs


def congregation_count(entry: DailyEntry) -> int:
    return sum(1 for status in entry.prayers.statuses() if status == PrayerStatus.JAMAAH)


def total_prayers_marked(entry: DailyEntry) -> int:
    return sum(1 for status in entry.prayers.statuses() if status != PrayerStatus.NONE)


def remaining_days(day: int) -> int:
    return max(0, RAMADAN_DAYS - day)


def verses_read_today(entry: DailyEntry) -> int:
    # Last ayah reached, not a running total across days
    return entry.quran.ayah


def progress_percent(entry: DailyEntry) -> int:
    """Position of the current surah within the mushaf, as a percentage."""
    return round((entry.quran.surah_index + 1) / SURAH_COUNT * 100)


def daily_summary(entry: DailyEntry, day: int) -> Dict[str, int]:
    return {
        "congregation_count": congregation_count(entry),
        "total_prayers_marked": total_prayers_marked(entry),
        "verses_read_today": verses_read_today(entry),
        "infaq": entry.infaq,
        "remaining_days": remaining_days(day),
        "progress_percent": progress_percent(entry),
    }


def history(entries: Mapping[str, DailyEntry]) -> List[DailyEntry]:
    """All stored entries, newest first."""
    return [entries[key] for key in sorted(entries, reverse=True)]


def prayer_summary(entry: DailyEntry) -> str:
    return f"{congregation_count(entry)}/{total_prayers_marked(entry)} Jamaah"


def quran_summary(entry: DailyEntry, surahs: Optional[Sequence[Surah]] = None) -> str:
    surahs = surahs or load_surahs()
    return f"{surahs[entry.quran.surah_index].name} : {entry.quran.ayah}"


def overall_summary(entries: Mapping[str, DailyEntry]) -> Dict[str, Any]:
    values = list(entries.values())
    return {
        "days_recorded": len(values),
        "congregation_count": sum(congregation_count(e) for e in values),
        "total_prayers_marked": sum(total_prayers_marked(e) for e in values),
        "total_infaq": sum(e.infaq for e in values),
    }
