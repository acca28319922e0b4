import logging
import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import Config, DEFAULT_START_DATE
from .db import init_db, dispose_db
from .models import KeyValueStorage
from .task_manager import TaskManager
from ramadhan_tracker.tracker import actions, stats
from ramadhan_tracker.tracker.day_resolver import DayInfo, is_active, resolve
from ramadhan_tracker.tracker.export import export_csv, write_export
from ramadhan_tracker.tracker.insight import get_insight
from ramadhan_tracker.tracker.models import DailyEntry
from ramadhan_tracker.tracker.prayer_times import PrayerTimesService
from ramadhan_tracker.tracker.reference import ImsakiyahTime, parse_start_date, surahs
from ramadhan_tracker.tracker.store import EntryStore, ThemePreference

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'

DAY_TICK_TASK = "day_tick"
PRAYER_TIMES_TASK = "prayer_times"


class TrackerApp:
    """Owns the tracker state: config, entry store, theme and the prayer-time service.

    Every mutation re-resolves the current day first, so it always lands on the
    date key that is current at that moment. A single lock serializes mutations,
    timer ticks and background fetch results.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        db_url: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        watch_config: bool = False,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        self._lock = threading.RLock()
        self._clock = clock or self._local_now
        self.day_change_callbacks: List[Callable[[DayInfo, DayInfo], None]] = []

        init_db(self.config.data, db_url=db_url)
        storage = KeyValueStorage()
        self.store = EntryStore(storage)
        self.store.load_all()
        self.theme = ThemePreference(storage)

        self.surahs = surahs()
        self.start_date = self._start_date_from_config(self.config.data)
        self.prayer_times = PrayerTimesService(self.config.data)
        self.live_times: Dict[str, ImsakiyahTime] = {}
        self.task_manager = TaskManager()

        self.current = resolve(self._clock(), self.start_date)
        self.logger.info(
            f"Tracking {self.current.date_key} as day {self.current.day} ({self.current.phase})"
        )

    def setup_logging(self) -> None:
        """Configure logging to write to both file and stdout"""
        logging_config = self.config.get_section("logging")
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = logging_config.get("file")
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Ramadhan tracker starting...")

    def _start_date_from_config(self, config_data: Dict[str, Any]):
        value = (config_data.get("ramadan") or {}).get("start_date", DEFAULT_START_DATE)
        try:
            return parse_start_date(value)
        except ValueError as e:
            self.logger.error(f"{e}; using {DEFAULT_START_DATE}")
            return parse_start_date(DEFAULT_START_DATE)

    def _local_now(self) -> datetime:
        """Wall-clock time, in the configured timezone if any, as a naive datetime."""
        tz_name = self.config.get_section("ramadan").get("timezone")
        if tz_name:
            try:
                return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
            except (ZoneInfoNotFoundError, ValueError) as e:
                self.logger.warning(f"Unknown timezone {tz_name!r}, using local time: {e}")
        return datetime.now()

    # Day tracking

    def register_day_change_callback(self, callback: Callable[[DayInfo, DayInfo], None]) -> None:
        """callback(previous, current) runs when the tracked date key changes"""
        self.day_change_callbacks.append(callback)

    def tick(self) -> DayInfo:
        """Re-resolve the current day; notify listeners and refresh times when the date key changed."""
        with self._lock:
            info = resolve(self._clock(), self.start_date)
            previous, self.current = self.current, info
        if info.date_key != previous.date_key:
            self.logger.info(f"Date changed {previous.date_key} -> {info.date_key} (day {info.day})")
            for callback in self.day_change_callbacks:
                try:
                    callback(previous, info)
                except Exception as e:
                    self.logger.error(f"Error in day change callback: {e}", exc_info=True)
            self.schedule_prayer_times_refresh()
        return info

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Apply a reloaded config: start date, location and prayer time settings"""
        self.logger.info("Handling config change")
        with self._lock:
            self.start_date = self._start_date_from_config(new_config)
            self.prayer_times.configure(new_config)
            self.live_times.clear()
        self.tick()
        self.schedule_prayer_times_refresh()

    # Prayer times

    def refresh_prayer_times(self, force_fetch: bool = False) -> Optional[ImsakiyahTime]:
        """Fetch live times for the current day; keeps the static table on failure."""
        info = self.current
        times = self.prayer_times.fetch_live(info.tracked_date, info.day, force_fetch=force_fetch)
        if times is not None:
            with self._lock:
                self.live_times[info.date_key] = times
            self.logger.info(f"Live prayer times loaded for {info.date_key}")
        return times

    def schedule_prayer_times_refresh(self) -> None:
        self.task_manager.schedule_task(PRAYER_TIMES_TASK, self.refresh_prayer_times, 0)

    def imsakiyah(self) -> Tuple[ImsakiyahTime, str]:
        info = self.current
        live = self.live_times.get(info.date_key)
        if live is not None:
            return live, PrayerTimesService.SOURCE_LIVE
        return self.prayer_times.static_times(info.day), PrayerTimesService.SOURCE_STATIC

    # Entries

    def current_entry(self) -> DailyEntry:
        return self.store.get_entry(self.tick().date_key)

    def toggle_prayer(self, slot: str, status: str) -> DailyEntry:
        with self._lock:
            return actions.toggle_prayer(self.store, self.tick().date_key, slot, status)

    def update_quran(self, surah_index: Optional[int] = None, ayah: Any = None) -> DailyEntry:
        with self._lock:
            return actions.update_quran(self.store, self.tick().date_key, surah_index=surah_index, ayah=ayah)

    def set_infaq(self, amount: Any) -> DailyEntry:
        with self._lock:
            return actions.set_infaq(self.store, self.tick().date_key, amount)

    def add_infaq(self, amount: Any) -> DailyEntry:
        with self._lock:
            return actions.add_infaq(self.store, self.tick().date_key, amount)

    def reset_infaq(self) -> DailyEntry:
        with self._lock:
            return actions.reset_infaq(self.store, self.tick().date_key)

    def snapshot(self) -> Dict[str, Any]:
        """Everything a screen needs for the current day"""
        info = self.tick()
        entry = self.store.get_entry(info.date_key)
        times, source = self.imsakiyah()
        return {
            "day": info.day,
            "date_key": info.date_key,
            "phase": info.phase,
            "active": is_active(info.day),
            "entry": entry,
            "stats": stats.daily_summary(entry, info.day),
            "imsakiyah": times,
            "times_source": source,
            "insight": get_insight(info.day),
            "theme": self.theme.get(),
            "location": self.config.get_section("location").get("name") or "Jakarta (Default)",
        }

    def _entries(self) -> Dict[str, DailyEntry]:
        """Copy of the stored entries, taken under the lock so readers never see a mid-update dict."""
        with self._lock:
            return dict(self.store.entries)

    def history(self) -> List[DailyEntry]:
        return stats.history(self._entries())

    def overall_summary(self) -> Dict[str, Any]:
        return stats.overall_summary(self._entries())

    def export_csv(self) -> str:
        return export_csv(self._entries(), self.surahs)

    def write_export(self, destination: str) -> Path:
        return write_export(self._entries(), destination, self.surahs)

    # Lifecycle

    def start(self) -> None:
        """Start the periodic day check, the first prayer-time fetch and the API server if enabled"""
        interval = float(self.config.data.get("tick_interval", 60))
        self.task_manager.schedule_task(DAY_TICK_TASK, self.tick, interval, one_time=False)
        self.schedule_prayer_times_refresh()

        from ramadhan_tracker.api import run_api_server
        run_api_server(self)

    def run(self) -> None:
        try:
            self.start()
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down")
        finally:
            self.stop()

    def stop(self) -> None:
        self.task_manager.stop()
        self.config.cleanup()
        dispose_db()
