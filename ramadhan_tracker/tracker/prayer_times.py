import requests
import re
from datetime import date
from typing import Dict, Any, Optional, Tuple
import logging
from abc import ABC, abstractmethod
from ramadhan_tracker.core.cache_helper import CacheHelper
from ramadhan_tracker.tracker.reference import ImsakiyahTime, imsakiyah_for_day

_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")


class PrayerTimesBackend(ABC):
    """Base class for prayer time sources"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_times(self, target_date: date, day: int, force_fetch: bool = False) -> Optional[ImsakiyahTime]:
        """Get prayer times
        Args:
            target_date: Calendar date the times are for
            day: Observance day number, carried into the result
            force_fetch: If True, bypass any cache
        Returns:
            ImsakiyahTime or None when unavailable
        """
        pass


class StaticTableBackend(PrayerTimesBackend):
    """Bundled imsakiyah table"""

    def get_times(self, target_date: date, day: int, force_fetch: bool = False) -> Optional[ImsakiyahTime]:
        return imsakiyah_for_day(day)


class AladhanBackend(PrayerTimesBackend):
    """Prayer times backend using api.aladhan.com"""

    BASE_URL = "https://api.aladhan.com/v1/timings"

    TIMING_KEYS = {
        'imsak': 'Imsak',
        'subuh': 'Fajr',
        'dzuhur': 'Dhuhr',
        'ashar': 'Asr',
        'maghrib': 'Maghrib',
        'isya': 'Isha',
    }

    def __init__(self, config: Dict[str, Any], cache_dir: Optional[str] = None):
        super().__init__(config)
        self.cache_helper = CacheHelper(cache_dir, "prayer_times")

    @property
    def coordinates(self) -> Optional[Tuple[float, float]]:
        lat = self.config.get('lat')
        lon = self.config.get('lon')
        if lat is None or lon is None:
            return None
        try:
            lat, lon = float(lat), float(lon)
        except (TypeError, ValueError):
            self.logger.warning(f"Invalid coordinates lat={lat!r} lon={lon!r}")
            return None
        if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
            self.logger.warning(f"Coordinates out of range: {lat}, {lon}")
            return None
        return lat, lon

    def get_times(self, target_date: date, day: int, force_fetch: bool = False) -> Optional[ImsakiyahTime]:
        coords = self.coordinates
        if coords is None:
            self.logger.debug("No coordinates configured, skipping live prayer times")
            return None

        method = self.config.get('calculation_method', 20)
        cache_key = f"prayer_times_{target_date.isoformat()}_{coords[0]:.4f}_{coords[1]:.4f}_{method}"
        try:
            if not force_fetch:
                cached = self.cache_helper.get_cached(cache_key, valid_for=target_date)
                if cached:
                    self.logger.debug(f"Got prayer times from cache: {cache_key}")
                    return ImsakiyahTime(day=day, **cached)

            timings = self._fetch_timings(target_date, coords, method)
            values = self._parse_timings(timings)
            self.cache_helper.save(cache_key, values, for_date=target_date)
            return ImsakiyahTime(day=day, **values)

        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Error fetching prayer times for {target_date}: {e}")
            return None

    def _fetch_timings(self, target_date: date, coords: Tuple[float, float], method: Any) -> Dict[str, str]:
        url = f"{self.BASE_URL}/{target_date.strftime('%d-%m-%Y')}"
        params = {
            'latitude': coords[0],
            'longitude': coords[1],
            'method': method,
        }
        timeout = float(self.config.get('timeout', 10))

        self.logger.info(f"Making API request to {url} with params {params}")
        response = requests.get(url, params=params, timeout=timeout)
        response.raise_for_status()
        return response.json()['data']['timings']

    def _parse_timings(self, timings: Dict[str, str]) -> Dict[str, str]:
        """Map API timings ("04:36 (WIB)") to HH:MM strings keyed by ImsakiyahTime field."""
        values = {}
        for field, api_name in self.TIMING_KEYS.items():
            match = _CLOCK_RE.search(str(timings[api_name]))
            if not match:
                raise ValueError(f"Unrecognised time for {api_name}: {timings[api_name]!r}")
            values[field] = f"{int(match.group(1)):02d}:{match.group(2)}"
        return values


class PrayerTimesService:
    """Live times when available, bundled table otherwise. Both come back as ImsakiyahTime."""

    SOURCE_LIVE = "live"
    SOURCE_STATIC = "static"

    def __init__(self, config_data: Dict[str, Any]):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.static_backend = StaticTableBackend({})
        self.live_backend = None
        self.configure(config_data)

    def configure(self, config_data: Dict[str, Any]) -> None:
        prayer_config = dict(config_data.get("prayer_times") or {})
        location = config_data.get("location") or {}
        if not prayer_config.get("enabled", True):
            self.live_backend = None
            self.logger.info("Live prayer times disabled")
            return
        prayer_config.setdefault("lat", location.get("lat"))
        prayer_config.setdefault("lon", location.get("lon"))
        cache_dir = (config_data.get("cache") or {}).get("directory")
        self.live_backend = AladhanBackend(prayer_config, cache_dir=cache_dir)

    def fetch_live(self, target_date: date, day: int, force_fetch: bool = False) -> Optional[ImsakiyahTime]:
        if self.live_backend is None:
            return None
        return self.live_backend.get_times(target_date, day, force_fetch=force_fetch)

    def static_times(self, day: int) -> ImsakiyahTime:
        return self.static_backend.get_times(None, day)

    def resolve(self, target_date: date, day: int) -> Tuple[ImsakiyahTime, str]:
        live = self.fetch_live(target_date, day)
        if live is not None:
            return live, self.SOURCE_LIVE
        return self.static_times(day), self.SOURCE_STATIC
