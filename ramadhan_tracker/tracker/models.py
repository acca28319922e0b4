"""
Daily entry models. Field aliases match the persisted JSON layout
(quran.surahIndex), so entries round-trip through model_dump(by_alias=True).
"""
from datetime import date as Date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ramadhan_tracker.tracker.reference import SURAH_COUNT, verse_count

PRAYER_SLOTS = ("subuh", "dzuhur", "ashar", "maghrib", "isya", "tarawih")


class PrayerStatus(str, Enum):
    JAMAAH = "jamaah"    # in congregation
    SENDIRI = "sendiri"  # alone
    MISSED = "missed"
    NONE = "none"        # not recorded yet


class DailyPrayerRecord(BaseModel):
    """Five daily prayers plus tarawih. Every slot is always present."""

    model_config = ConfigDict(extra="forbid")

    subuh: PrayerStatus = PrayerStatus.NONE
    dzuhur: PrayerStatus = PrayerStatus.NONE
    ashar: PrayerStatus = PrayerStatus.NONE
    maghrib: PrayerStatus = PrayerStatus.NONE
    isya: PrayerStatus = PrayerStatus.NONE
    tarawih: PrayerStatus = PrayerStatus.NONE

    def statuses(self):
        return [getattr(self, slot) for slot in PRAYER_SLOTS]


class QuranProgress(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    surah_index: int = Field(0, ge=0, le=SURAH_COUNT - 1, alias="surahIndex")
    ayah: int = Field(1, ge=1)

    @model_validator(mode="after")
    def _ayah_within_surah(self):
        limit = verse_count(self.surah_index)
        if self.ayah > limit:
            self.ayah = limit
        return self


class DailyEntry(BaseModel):
    """One day's record. date (YYYY-MM-DD) is the identity."""

    model_config = ConfigDict(extra="ignore")

    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    prayers: DailyPrayerRecord = Field(default_factory=DailyPrayerRecord)
    quran: QuranProgress = Field(default_factory=QuranProgress)
    infaq: int = Field(0, ge=0)

    @field_validator("date")
    @classmethod
    def _real_calendar_date(cls, value: str) -> str:
        try:
            Date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"{value!r} is not a calendar date") from None
        return value

    @classmethod
    def default(cls, date_key: str) -> "DailyEntry":
        return cls(date=date_key)

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
