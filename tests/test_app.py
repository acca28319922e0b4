import threading
from datetime import datetime

import pytest

from ramadhan_tracker.core.app import TrackerApp
from ramadhan_tracker.tracker.day_resolver import Phase
from ramadhan_tracker.tracker.export import CSV_HEADER, EXPORT_FILENAME
from ramadhan_tracker.tracker.models import PrayerStatus
from ramadhan_tracker.tracker.prayer_times import PrayerTimesService
from ramadhan_tracker.tracker.reference import imsakiyah_for_day

from conftest import FakeClock


def test_resolves_current_day(tracker_app):
    assert tracker_app.current.day == 3
    assert tracker_app.current.date_key == "2026-02-21"
    assert tracker_app.current.phase == Phase.ACTIVE


def test_snapshot(tracker_app):
    tracker_app.toggle_prayer("subuh", "jamaah")
    snapshot = tracker_app.snapshot()
    assert snapshot["day"] == 3
    assert snapshot["date_key"] == "2026-02-21"
    assert snapshot["active"] is True
    assert snapshot["entry"].prayers.subuh == PrayerStatus.JAMAAH
    assert snapshot["stats"]["congregation_count"] == 1
    assert snapshot["stats"]["remaining_days"] == 27
    assert snapshot["imsakiyah"] == imsakiyah_for_day(3)
    assert snapshot["times_source"] == PrayerTimesService.SOURCE_STATIC
    assert snapshot["insight"]
    assert snapshot["theme"] == "light"
    assert snapshot["location"] == "Bandung"


def test_evening_mutation_lands_on_next_date(tracker_app, clock):
    clock.now = datetime(2026, 2, 21, 19, 5)
    tracker_app.set_infaq(10000)
    assert tracker_app.store.get_entry("2026-02-22").infaq == 10000
    assert "2026-02-21" not in tracker_app.store.entries
    assert tracker_app.current.day == 4


def test_day_change_callback(tracker_app, clock):
    changes = []
    tracker_app.register_day_change_callback(lambda previous, current: changes.append((previous.day, current.day)))

    tracker_app.tick()
    assert changes == []

    clock.now = datetime(2026, 2, 21, 18, 0)
    tracker_app.tick()
    assert changes == [(3, 4)]


def test_failing_callback_does_not_break_tick(tracker_app, clock):
    def broken(previous, current):
        raise RuntimeError("boom")

    tracker_app.register_day_change_callback(broken)
    clock.now = datetime(2026, 2, 22, 10, 0)
    assert tracker_app.tick().day == 4


def test_entries_survive_restart(config_file):
    clock = FakeClock(datetime(2026, 2, 21, 9, 30))
    app = TrackerApp(config_path=str(config_file), clock=clock)
    app.toggle_prayer("tarawih", "jamaah")
    app.update_quran(surah_index=1, ayah=255)
    app.add_infaq(25000)
    app.theme.toggle()
    app.stop()

    reopened = TrackerApp(config_path=str(config_file), clock=clock)
    try:
        entry = reopened.current_entry()
        assert entry.prayers.tarawih == PrayerStatus.JAMAAH
        assert entry.quran.surah_index == 1
        assert entry.quran.ayah == 255
        assert entry.infaq == 25000
        assert reopened.theme.get() == "dark"
    finally:
        reopened.stop()


def test_history_and_export(tracker_app, clock, tmp_path):
    tracker_app.set_infaq(5000)
    clock.now = datetime(2026, 2, 22, 8, 0)
    tracker_app.set_infaq(7000)

    assert [e.date for e in tracker_app.history()] == ["2026-02-22", "2026-02-21"]
    assert tracker_app.overall_summary()["total_infaq"] == 12000

    lines = tracker_app.export_csv().split("\n")
    assert lines[0] == ",".join(CSV_HEADER)
    assert lines[1].startswith("2026-02-21,")
    assert lines[2].endswith(",7000")

    out_dir = tmp_path / "exports"
    out_dir.mkdir()
    path = tracker_app.write_export(str(out_dir))
    assert path.name == EXPORT_FILENAME
    assert path.read_text(encoding="utf-8") == tracker_app.export_csv()


def test_config_change_moves_start_date(tracker_app):
    new_config = dict(tracker_app.config.data)
    new_config["ramadan"] = {"start_date": "2026-02-20"}
    tracker_app.handle_config_change(new_config)
    assert tracker_app.current.day == 2


def test_invalid_start_date_uses_default(tracker_app):
    new_config = dict(tracker_app.config.data)
    new_config["ramadan"] = {"start_date": "someday"}
    tracker_app.handle_config_change(new_config)
    assert tracker_app.current.day == 3


def test_live_times_replace_table(tracker_app, monkeypatch):
    class Response:
        def raise_for_status(self):
            pass

        def json(self):
            return {"data": {"timings": {
                "Imsak": "04:30", "Fajr": "04:40", "Dhuhr": "12:05",
                "Asr": "15:12", "Maghrib": "18:10", "Isha": "19:20",
            }}}

    monkeypatch.setattr(
        "ramadhan_tracker.tracker.prayer_times.requests.get",
        lambda url, params=None, timeout=None: Response(),
    )
    config = dict(tracker_app.config.data)
    config["location"] = {"name": "Bandung", "lat": -6.9, "lon": 107.6}
    tracker_app.prayer_times.configure(config)

    assert tracker_app.refresh_prayer_times(force_fetch=True) is not None
    times, source = tracker_app.imsakiyah()
    assert source == PrayerTimesService.SOURCE_LIVE
    assert times.maghrib == "18:10"
    assert times.day == 3


def test_unknown_quran_surah_rejected(tracker_app):
    with pytest.raises(IndexError):
        tracker_app.update_quran(surah_index=200)


def test_history_waits_for_in_flight_update(tracker_app):
    finished = threading.Event()

    def read_history():
        tracker_app.history()
        tracker_app.export_csv()
        finished.set()

    with tracker_app._lock:
        reader = threading.Thread(target=read_history)
        reader.start()
        assert not finished.wait(0.2)
        tracker_app.store.update_entry("2026-02-21", {"infaq": 1000})
    reader.join(2)
    assert finished.is_set()
