from datetime import date, datetime

import pytest

from ramadhan_tracker.tracker.reference import (
    RAMADAN_DAYS,
    SURAH_COUNT,
    ReferenceDataError,
    chapter_by_index,
    imsakiyah_for_day,
    imsakiyah_table,
    load_imsakiyah,
    load_surahs,
    parse_start_date,
    surahs,
    verse_count,
)


def test_surah_registry_is_complete():
    registry = surahs()
    assert len(registry) == SURAH_COUNT
    assert sum(s.verses for s in registry) == 6236
    assert [s.number for s in registry] == list(range(1, SURAH_COUNT + 1))


def test_chapter_lookup_is_zero_based():
    assert chapter_by_index(0).name == "Al-Fatihah"
    assert chapter_by_index(1).verses == 286
    assert chapter_by_index(113).name == "An-Nas"
    assert verse_count(0) == 7


@pytest.mark.parametrize("index", [-1, 114, 500])
def test_chapter_lookup_out_of_range(index):
    with pytest.raises(IndexError):
        chapter_by_index(index)


def test_imsakiyah_table_has_thirty_days():
    table = imsakiyah_table()
    assert len(table) == RAMADAN_DAYS
    assert [row.day for row in table] == list(range(1, RAMADAN_DAYS + 1))
    assert all(row.imsak < row.subuh < row.dzuhur < row.ashar < row.maghrib < row.isya for row in table)


def test_imsakiyah_for_day_uses_nearest_row_outside_ramadhan():
    assert imsakiyah_for_day(0) == imsakiyah_for_day(1)
    assert imsakiyah_for_day(-5).day == 1
    assert imsakiyah_for_day(31).day == 30
    assert imsakiyah_for_day(15).day == 15


def test_wrong_surah_count_is_rejected(tmp_path):
    path = tmp_path / "surahs.yaml"
    path.write_text("surahs:\n  - {number: 1, name: Al-Fatihah, english_name: The Opening, verses: 7}\n")
    with pytest.raises(ReferenceDataError, match="expected 114"):
        load_surahs(path)


def test_surah_name_with_delimiter_is_rejected(tmp_path):
    rows = "\n".join(
        f'  - {{number: {n}, name: "Surah {n}{"," if n == 3 else ""}", verses: 5}}'
        for n in range(1, SURAH_COUNT + 1)
    )
    path = tmp_path / "surahs.yaml"
    path.write_text("surahs:\n" + rows + "\n")
    with pytest.raises(ReferenceDataError, match="surah 3"):
        load_surahs(path)


def test_bad_clock_time_is_rejected(tmp_path):
    rows = "\n".join(
        f'  - {{day: {d}, imsak: "04:29", subuh: "04:39", dzuhur: "12:09", ashar: "15:16", '
        f'maghrib: "{"25:00" if d == 7 else "18:18"}", isya: "19:28"}}'
        for d in range(1, RAMADAN_DAYS + 1)
    )
    path = tmp_path / "imsakiyah.yaml"
    path.write_text("days:\n" + rows + "\n")
    with pytest.raises(ReferenceDataError, match="day 7"):
        load_imsakiyah(path)


def test_missing_file_is_reported(tmp_path):
    with pytest.raises(ReferenceDataError):
        load_imsakiyah(tmp_path / "missing.yaml")


@pytest.mark.parametrize("value", [
    "2026-02-19",
    "19 February 2026",
    "Feb 19, 2026",
    date(2026, 2, 19),
    datetime(2026, 2, 19, 15, 0),
])
def test_parse_start_date(value):
    assert parse_start_date(value) == date(2026, 2, 19)


@pytest.mark.parametrize("value", ["", "not a date", None, 20260219])
def test_parse_start_date_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_start_date(value)
