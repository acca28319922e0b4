"""
User actions. Every change a user can make funnels through EntryStore.update_entry;
free-form numeric input is coerced here rather than rejected.
"""
import math
from typing import Any, Optional

from ramadhan_tracker.tracker.models import PRAYER_SLOTS, DailyEntry, PrayerStatus
from ramadhan_tracker.tracker.reference import chapter_by_index
from ramadhan_tracker.tracker.store import EntryStore

INFAQ_PRESETS = (10000, 25000, 50000, 100000)


def coerce_int(value: Any, default: int) -> int:
    """Integer value of user input, or default when it is not a number."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_slot(slot: str) -> str:
    slot = str(slot).strip().lower()
    if slot not in PRAYER_SLOTS:
        raise ValueError(f"Unknown prayer {slot!r}; expected one of {', '.join(PRAYER_SLOTS)}")
    return slot


def parse_status(status: Any) -> PrayerStatus:
    if isinstance(status, PrayerStatus):
        return status
    try:
        return PrayerStatus(str(status).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in PrayerStatus)
        raise ValueError(f"Unknown prayer status {status!r}; expected one of {allowed}") from None


def set_prayer(store: EntryStore, date_key: str, slot: str, status: Any) -> DailyEntry:
    return store.update_entry(date_key, {"prayers": {parse_slot(slot): parse_status(status)}})


def toggle_prayer(store: EntryStore, date_key: str, slot: str, status: Any) -> DailyEntry:
    """Set a prayer status; choosing the status it already has clears it back to none."""
    slot = parse_slot(slot)
    status = parse_status(status)
    current = getattr(store.get_entry(date_key).prayers, slot)
    new_status = PrayerStatus.NONE if current == status else status
    return store.update_entry(date_key, {"prayers": {slot: new_status}})


def clamp_ayah(surah_index: int, value: Any) -> int:
    limit = chapter_by_index(surah_index).verses
    return min(max(coerce_int(value, 1), 1), limit)


def update_quran(
    store: EntryStore,
    date_key: str,
    surah_index: Optional[int] = None,
    ayah: Any = None,
) -> DailyEntry:
    """Record reading progress.

    Selecting a surah starts it again at ayah 1. An ayah given in the same call
    is applied after that, clamped to the selected surah's verse count.
    An out-of-range surah_index raises IndexError.
    """
    current = store.get_entry(date_key).quran
    changes = {}
    index = current.surah_index
    if surah_index is not None:
        index = int(surah_index)
        chapter_by_index(index)
        changes = {"surah_index": index, "ayah": 1}
    if ayah is not None:
        changes["ayah"] = clamp_ayah(index, ayah)
    return store.update_entry(date_key, {"quran": changes})


def set_infaq(store: EntryStore, date_key: str, amount: Any) -> DailyEntry:
    return store.update_entry(date_key, {"infaq": max(0, coerce_int(amount, 0))})


def add_infaq(store: EntryStore, date_key: str, amount: Any) -> DailyEntry:
    current = store.get_entry(date_key).infaq
    return store.update_entry(date_key, {"infaq": current + max(0, coerce_int(amount, 0))})


def reset_infaq(store: EntryStore, date_key: str) -> DailyEntry:
    return store.update_entry(date_key, {"infaq": 0})
