"""
CSV export of the whole store, oldest day first.

Fields are joined without quoting; every value is a status keyword, an integer,
an ISO date or a surah name (checked comma-free when the registry loads).
"""
import logging
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from ramadhan_tracker.tracker.models import DailyEntry
from ramadhan_tracker.tracker.reference import Surah, surahs as load_surahs

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "Ramadhan_Tracker_2026_Export.csv"
DELIMITER = ","
CSV_HEADER = (
    "Tanggal",
    "Maghrib",
    "Isya",
    "Tarawih",
    "Subuh",
    "Dzuhur",
    "Ashar",
    "Surah Terakhir",
    "Ayat",
    "Infaq (Rp)",
)
# Column order follows the evening-first Islamic day
EXPORT_SLOTS = ("maghrib", "isya", "tarawih", "subuh", "dzuhur", "ashar")


def export_rows(entries: Mapping[str, DailyEntry], surahs: Optional[Sequence[Surah]] = None) -> List[List[str]]:
    surahs = surahs or load_surahs()
    rows = [list(CSV_HEADER)]
    for key in sorted(entries):
        entry = entries[key]
        row = [key]
        row.extend(getattr(entry.prayers, slot).value for slot in EXPORT_SLOTS)
        row.append(surahs[entry.quran.surah_index].name)
        row.append(str(entry.quran.ayah))
        row.append(str(entry.infaq))
        rows.append(row)
    return rows


def export_csv(entries: Mapping[str, DailyEntry], surahs: Optional[Sequence[Surah]] = None) -> str:
    return "\n".join(DELIMITER.join(row) for row in export_rows(entries, surahs))


def write_export(
    entries: Mapping[str, DailyEntry],
    destination: Union[str, Path],
    surahs: Optional[Sequence[Surah]] = None,
) -> Path:
    """Write the export. destination may be a directory (EXPORT_FILENAME is used) or a file path."""
    path = Path(destination).expanduser()
    if path.is_dir():
        path = path / EXPORT_FILENAME
    path.write_text(export_csv(entries, surahs), encoding="utf-8")
    logger.info(f"Exported {len(entries)} entries to {path}")
    return path
