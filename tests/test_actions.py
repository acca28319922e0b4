import pytest

from ramadhan_tracker.tracker import actions
from ramadhan_tracker.tracker.models import PrayerStatus

KEY = "2026-02-22"


@pytest.mark.parametrize("value,expected", [
    (12, 12),
    ("25000", 25000),
    (" 7 ", 7),
    (3.9, 3),
    ("abc", 0),
    ("", 0),
    (None, 0),
    (True, 0),
    (float("nan"), 0),
])
def test_coerce_int(value, expected):
    assert actions.coerce_int(value, 0) == expected


def test_parse_slot_is_case_insensitive():
    assert actions.parse_slot(" Tarawih ") == "tarawih"


def test_parse_slot_rejects_unknown():
    with pytest.raises(ValueError, match="witir"):
        actions.parse_slot("witir")


def test_parse_status():
    assert actions.parse_status("JAMAAH") == PrayerStatus.JAMAAH
    assert actions.parse_status(PrayerStatus.MISSED) == PrayerStatus.MISSED
    with pytest.raises(ValueError):
        actions.parse_status("late")


def test_set_prayer(store):
    entry = actions.set_prayer(store, KEY, "isya", "sendiri")
    assert entry.prayers.isya == PrayerStatus.SENDIRI
    assert store.get_entry(KEY).prayers.isya == PrayerStatus.SENDIRI


def test_toggle_prayer_same_status_clears(store):
    actions.toggle_prayer(store, KEY, "subuh", "jamaah")
    entry = actions.toggle_prayer(store, KEY, "subuh", "jamaah")
    assert entry.prayers.subuh == PrayerStatus.NONE


def test_toggle_prayer_other_status_replaces(store):
    actions.toggle_prayer(store, KEY, "ashar", "jamaah")
    entry = actions.toggle_prayer(store, KEY, "ashar", "missed")
    assert entry.prayers.ashar == PrayerStatus.MISSED


def test_selecting_surah_resets_ayah(store):
    actions.update_quran(store, KEY, surah_index=1, ayah=150)
    entry = actions.update_quran(store, KEY, surah_index=2)
    assert entry.quran.surah_index == 2
    assert entry.quran.ayah == 1


def test_ayah_clamped_to_selected_surah(store):
    entry = actions.update_quran(store, KEY, surah_index=0, ayah=99)
    assert entry.quran.ayah == 7


def test_ayah_only_update_keeps_surah(store):
    actions.update_quran(store, KEY, surah_index=35)
    entry = actions.update_quran(store, KEY, ayah="12")
    assert entry.quran.surah_index == 35
    assert entry.quran.ayah == 12


@pytest.mark.parametrize("ayah", ["", "abc", 0, -4])
def test_bad_ayah_falls_back_to_one(store, ayah):
    actions.update_quran(store, KEY, surah_index=1, ayah=20)
    entry = actions.update_quran(store, KEY, ayah=ayah)
    assert entry.quran.ayah == 1


@pytest.mark.parametrize("index", [-1, 114])
def test_unknown_surah_raises(store, index):
    with pytest.raises(IndexError):
        actions.update_quran(store, KEY, surah_index=index)
    assert len(store) == 0


def test_set_infaq(store):
    assert actions.set_infaq(store, KEY, "50000").infaq == 50000
    assert actions.set_infaq(store, KEY, "lots").infaq == 0
    assert actions.set_infaq(store, KEY, -100).infaq == 0


def test_add_infaq_accumulates_presets(store):
    for amount in actions.INFAQ_PRESETS[:2]:
        actions.add_infaq(store, KEY, amount)
    assert store.get_entry(KEY).infaq == 35000


def test_add_infaq_ignores_negative(store):
    actions.set_infaq(store, KEY, 10000)
    assert actions.add_infaq(store, KEY, -5000).infaq == 10000


def test_reset_infaq(store):
    actions.set_infaq(store, KEY, 10000)
    assert actions.reset_infaq(store, KEY).infaq == 0
