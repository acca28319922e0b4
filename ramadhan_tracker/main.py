import argparse
import logging
import sys
from typing import List, Optional

from ramadhan_tracker.core.app import TrackerApp, LOG_FORMAT
from ramadhan_tracker.tracker.actions import INFAQ_PRESETS
from ramadhan_tracker.tracker.export import EXPORT_FILENAME
from ramadhan_tracker.tracker.models import PRAYER_SLOTS, PrayerStatus
from ramadhan_tracker.tracker.reference import SURAH_COUNT
from ramadhan_tracker.tracker.stats import prayer_summary, quran_summary

# Shown beside tarawih; it has no entry in the imsakiyah table
TARAWIH_TIME = "19:45"

PHASE_LABELS = {
    "not_started": "Ramadhan belum dimulai",
    "active": "Ramadhan",
    "finished": "Ramadhan telah berakhir",
}


def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ramadhan-tracker", description="Ramadhan Tracker")
    parser.add_argument('--config',
                        help='Path to config file (default: ~/.ramadhan_tracker/config.yaml)')
    parser.add_argument('--db-url', help='SQLAlchemy URL overriding database.path')

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("status", help="Show today's entry, prayer times and summary")

    prayer = sub.add_parser("prayer", help="Toggle a prayer status (repeating a status clears it)")
    prayer.add_argument("slot", choices=PRAYER_SLOTS)
    prayer.add_argument("status", choices=[s.value for s in PrayerStatus if s != PrayerStatus.NONE])

    quran = sub.add_parser("quran", help="Record Quran reading progress")
    quran.add_argument("--surah", type=int, choices=range(1, SURAH_COUNT + 1), metavar="N",
                       help="Surah number 1-114 (restarts at ayah 1)")
    quran.add_argument("--ayah", help="Last ayah read")

    infaq = sub.add_parser("infaq", help="Record today's infaq")
    infaq.add_argument("action", choices=["set", "add", "reset"])
    infaq.add_argument("amount", nargs="?", help=f"Rupiah; presets: {', '.join(map(str, INFAQ_PRESETS))}")

    sub.add_parser("history", help="List all recorded days")

    export = sub.add_parser("export", help="Export all days to CSV")
    export.add_argument("--output", default=".", help=f"File or directory (default: ./{EXPORT_FILENAME})")

    theme = sub.add_parser("theme", help="Show or change the theme")
    theme.add_argument("value", nargs="?", choices=["light", "dark", "toggle"])

    sub.add_parser("serve", help="Run the day watcher and HTTP API until interrupted")
    return parser


def print_status(app: TrackerApp) -> None:
    app.refresh_prayer_times()
    snap = app.snapshot()
    entry = snap["entry"]
    times = snap["imsakiyah"]
    summary = snap["stats"]

    print(f"{PHASE_LABELS[snap['phase']]} - Hari ke-{snap['day']} ({snap['date_key']})")
    print(f"Mutiara Hikmah: {snap['insight']}")
    print(f"Jadwal {snap['location']} [{snap['times_source']}]: imsak {times.imsak}")
    for slot in PRAYER_SLOTS:
        clock = getattr(times, slot, TARAWIH_TIME)
        print(f"  {slot:<8} {clock:>5}  {getattr(entry.prayers, slot).value}")
    print(f"Quran: {quran_summary(entry, app.surahs)} ({summary['progress_percent']}%)")
    print(f"Infaq: Rp {entry.infaq:,}".replace(",", "."))
    print(
        f"Ringkasan: {summary['congregation_count']} jamaah, "
        f"{summary['total_prayers_marked']} tercatat, "
        f"{summary['remaining_days']} hari tersisa"
    )


def print_history(app: TrackerApp) -> None:
    entries = app.history()
    if not entries:
        print("Belum ada data tersimpan.")
        return
    for entry in entries:
        print(f"{entry.date}  {prayer_summary(entry):<12}  {quran_summary(entry, app.surahs):<24}  Rp {entry.infaq}")
    total = app.overall_summary()
    print(f"Total Data: {total['days_recorded']} hari, infaq Rp {total['total_infaq']}")


def run_command(app: TrackerApp, args: argparse.Namespace) -> int:
    command = args.command or "status"
    if command == "status":
        print_status(app)
    elif command == "prayer":
        entry = app.toggle_prayer(args.slot, args.status)
        print(f"{args.slot}: {getattr(entry.prayers, args.slot).value}")
    elif command == "quran":
        surah_index = args.surah - 1 if args.surah is not None else None
        entry = app.update_quran(surah_index=surah_index, ayah=args.ayah)
        print(f"Quran: {quran_summary(entry, app.surahs)}")
    elif command == "infaq":
        if args.action == "reset":
            entry = app.reset_infaq()
        elif args.action == "add":
            entry = app.add_infaq(args.amount)
        else:
            entry = app.set_infaq(args.amount)
        print(f"Infaq: Rp {entry.infaq}")
    elif command == "history":
        print_history(app)
    elif command == "export":
        path = app.write_export(args.output)
        print(f"Exported to {path}")
    elif command == "theme":
        if args.value == "toggle":
            theme = app.theme.toggle()
        elif args.value:
            theme = app.theme.set(args.value)
        else:
            theme = app.theme.get()
        print(f"Theme: {theme}")
    elif command == "serve":
        app.setup_logging()
        app.run()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    setup_basic_logging()
    args = build_parser().parse_args(argv)

    app = TrackerApp(config_path=args.config, db_url=args.db_url, watch_config=args.command == "serve")
    try:
        return run_command(app, args)
    finally:
        if args.command != "serve":
            app.stop()


if __name__ == "__main__":
    sys.exit(main())
