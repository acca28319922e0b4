"""
Fixed reference data: surah registry, Ramadhan imsakiyah table and the start date.

Both tables ship as YAML under tracker/data and are validated on first load.
A table that fails validation is a packaging bug, so loading raises
ReferenceDataError instead of falling back.
"""
import logging
import re
from collections import namedtuple
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Tuple

import yaml
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

SURAH_COUNT = 114
RAMADAN_DAYS = 30

Surah = namedtuple("Surah", ["number", "name", "english_name", "verses"])

ImsakiyahTime = namedtuple(
    "ImsakiyahTime",
    [
        "day",      # observance day 1-30
        "imsak",    # pre-dawn marker, "HH:MM"
        "subuh",
        "dzuhur",
        "ashar",
        "maghrib",
        "isya",
    ],
)

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ReferenceDataError(Exception):
    """Shipped reference data is missing or inconsistent."""


def _read_yaml(path: Path, root_key: str) -> list:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ReferenceDataError(f"Cannot read {path}: {e}") from e
    rows = data.get(root_key) if isinstance(data, dict) else None
    if not isinstance(rows, list):
        raise ReferenceDataError(f"{path}: '{root_key}' must be a list")
    return rows


def load_surahs(path: Optional[Path] = None) -> Tuple[Surah, ...]:
    """Load and validate the surah registry. Index i holds surah number i + 1."""
    path = path or DATA_DIR / "surahs.yaml"
    rows = _read_yaml(path, "surahs")
    if len(rows) != SURAH_COUNT:
        raise ReferenceDataError(f"{path}: expected {SURAH_COUNT} surahs, found {len(rows)}")

    result = []
    for i, row in enumerate(rows):
        try:
            surah = Surah(
                number=int(row["number"]),
                name=str(row["name"]).strip(),
                english_name=str(row.get("english_name", "")).strip(),
                verses=int(row["verses"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ReferenceDataError(f"{path}: surah row {i} is malformed: {e}") from e
        if surah.number != i + 1:
            raise ReferenceDataError(f"{path}: row {i} has number {surah.number}, expected {i + 1}")
        if surah.verses < 1:
            raise ReferenceDataError(f"{path}: surah {surah.number} has no verses")
        # Names go into the CSV export unquoted
        if not surah.name or "," in surah.name:
            raise ReferenceDataError(f"{path}: surah {surah.number} has an unusable name {surah.name!r}")
        result.append(surah)

    logger.debug(f"Loaded {len(result)} surahs from {path}")
    return tuple(result)


def load_imsakiyah(path: Optional[Path] = None) -> Tuple[ImsakiyahTime, ...]:
    """Load and validate the 30-day imsakiyah table. Index i holds day i + 1."""
    path = path or DATA_DIR / "imsakiyah.yaml"
    rows = _read_yaml(path, "days")
    if len(rows) != RAMADAN_DAYS:
        raise ReferenceDataError(f"{path}: expected {RAMADAN_DAYS} days, found {len(rows)}")

    result = []
    for i, row in enumerate(rows):
        try:
            values = {field: str(row[field]).strip() for field in ImsakiyahTime._fields if field != "day"}
            entry = ImsakiyahTime(day=int(row["day"]), **values)
        except (KeyError, TypeError, ValueError) as e:
            raise ReferenceDataError(f"{path}: day row {i} is malformed: {e}") from e
        if entry.day != i + 1:
            raise ReferenceDataError(f"{path}: row {i} has day {entry.day}, expected {i + 1}")
        bad = [field for field, value in values.items() if not _CLOCK_RE.match(value)]
        if bad:
            raise ReferenceDataError(f"{path}: day {entry.day} has invalid times for {', '.join(bad)}")
        result.append(entry)

    logger.debug(f"Loaded {len(result)} imsakiyah rows from {path}")
    return tuple(result)


@lru_cache(maxsize=1)
def surahs() -> Tuple[Surah, ...]:
    return load_surahs()


@lru_cache(maxsize=1)
def imsakiyah_table() -> Tuple[ImsakiyahTime, ...]:
    return load_imsakiyah()


def chapter_by_index(index: int) -> Surah:
    """Return the surah at 0-based index. Raises IndexError outside [0, 113]."""
    if not 0 <= index < SURAH_COUNT:
        raise IndexError(f"Surah index {index} out of range [0, {SURAH_COUNT - 1}]")
    return surahs()[index]


def verse_count(index: int) -> int:
    return chapter_by_index(index).verses


def imsakiyah_for_day(day: int) -> ImsakiyahTime:
    """Static times for an observance day; days outside 1-30 use the nearest row."""
    table = imsakiyah_table()
    return table[max(0, min(RAMADAN_DAYS - 1, day - 1))]


def parse_start_date(value: Any) -> date:
    """Parse the configured start date (date, datetime or any string dateutil understands)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid Ramadhan start date: {value!r}")
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        pass
    try:
        return dateutil_parser.parse(value).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid Ramadhan start date: {value!r}") from e
