"""
FastAPI server for the tracker. Run with run_api_server(app) in a background thread.
Every route works against the TrackerApp it was created with; mutations land on
the date key that is current when the request arrives.
Docs when enabled: http://<host>:<port>/docs
"""
import logging
import threading
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from ramadhan_tracker.tracker.export import EXPORT_FILENAME
from ramadhan_tracker.tracker.models import DailyEntry
from ramadhan_tracker.tracker.reference import SURAH_COUNT
from ramadhan_tracker.tracker.stats import prayer_summary, quran_summary

logger = logging.getLogger(__name__)


class StatsResponse(BaseModel):
    congregation_count: int
    total_prayers_marked: int
    verses_read_today: int
    infaq: int
    remaining_days: int
    progress_percent: int


class ImsakiyahResponse(BaseModel):
    day: int
    imsak: str
    subuh: str
    dzuhur: str
    ashar: str
    maghrib: str
    isya: str


class TodayResponse(BaseModel):
    """Response for GET /api/today."""

    day: int
    date_key: str
    phase: str
    active: bool
    entry: DailyEntry
    stats: StatsResponse
    imsakiyah: ImsakiyahResponse
    times_source: str
    insight: str
    theme: str
    location: str


class PrayerRequest(BaseModel):
    status: str


class QuranRequest(BaseModel):
    surah_index: Optional[int] = Field(None, ge=0, le=SURAH_COUNT - 1)
    # Free-form; coerced and clamped to the surah's verse count
    ayah: Optional[Any] = None


class InfaqRequest(BaseModel):
    action: str = "set"  # set | add | reset
    amount: Optional[Any] = None


class ThemeRequest(BaseModel):
    theme: Optional[str] = None  # None toggles


class HistoryRow(BaseModel):
    date: date
    prayers: str
    quran: str
    infaq: int


class HistoryResponse(BaseModel):
    """Response for GET /api/history."""

    entries: List[HistoryRow]
    summary: Dict[str, int]


class SurahResponse(BaseModel):
    index: int
    number: int
    name: str
    english_name: str
    verses: int


class TimerResponse(BaseModel):
    name: str
    next_run_at: datetime


def create_app(tracker_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given TrackerApp instance."""
    app = FastAPI(title="Ramadhan Tracker API", description="Daily prayers, Quran progress and infaq")

    @app.get("/api/today", response_model=TodayResponse)
    def get_today() -> TodayResponse:
        """Current observance day, its entry and derived stats."""
        snapshot = tracker_app.snapshot()
        snapshot["imsakiyah"] = ImsakiyahResponse(**snapshot["imsakiyah"]._asdict())
        return TodayResponse(**snapshot)

    @app.post("/api/prayers/{slot}", response_model=DailyEntry)
    def toggle_prayer(slot: str, request: PrayerRequest) -> DailyEntry:
        """Set a prayer status; posting the current status clears it."""
        try:
            return tracker_app.toggle_prayer(slot, request.status)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    @app.post("/api/quran", response_model=DailyEntry)
    def update_quran(request: QuranRequest) -> DailyEntry:
        return tracker_app.update_quran(surah_index=request.surah_index, ayah=request.ayah)

    @app.post("/api/infaq", response_model=DailyEntry)
    def update_infaq(request: InfaqRequest) -> DailyEntry:
        if request.action == "set":
            return tracker_app.set_infaq(request.amount)
        if request.action == "add":
            return tracker_app.add_infaq(request.amount)
        if request.action == "reset":
            return tracker_app.reset_infaq()
        raise HTTPException(status_code=422, detail=f"Unknown infaq action: {request.action!r}")

    @app.get("/api/history", response_model=HistoryResponse)
    def get_history() -> HistoryResponse:
        """All recorded days, newest first."""
        rows = [
            HistoryRow(
                date=entry.date,
                prayers=prayer_summary(entry),
                quran=quran_summary(entry, tracker_app.surahs),
                infaq=entry.infaq,
            )
            for entry in tracker_app.history()
        ]
        return HistoryResponse(entries=rows, summary=tracker_app.overall_summary())

    @app.get("/api/export", response_class=PlainTextResponse)
    def export() -> PlainTextResponse:
        return PlainTextResponse(
            tracker_app.export_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
        )

    @app.get("/api/surahs", response_model=List[SurahResponse])
    def list_surahs() -> List[SurahResponse]:
        return [SurahResponse(index=i, **s._asdict()) for i, s in enumerate(tracker_app.surahs)]

    @app.get("/api/tasks", response_model=List[TimerResponse])
    def list_tasks() -> List[TimerResponse]:
        """Pending background timers (day tick, prayer-time fetch)."""
        return [TimerResponse(**timer) for timer in tracker_app.task_manager.get_active_timers()]

    @app.get("/api/theme")
    def get_theme() -> Dict[str, str]:
        return {"theme": tracker_app.theme.get()}

    @app.post("/api/theme")
    def set_theme(request: ThemeRequest) -> Dict[str, str]:
        try:
            theme = tracker_app.theme.toggle() if request.theme is None else tracker_app.theme.set(request.theme)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return {"theme": theme}

    return app


def run_api_server(tracker_app: Any) -> None:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = tracker_app.config.get_section("api")
    if not api_config.get("enabled", False):
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(tracker_app)

    def run_uvicorn():
        try:
            import uvicorn
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, daemon=True)
    thread.start()
    logger.info("API server thread started.")
