"""
YAML configuration with defaults, .env support and optional live reload.

User values are merged over DEFAULTS section by section, so a config file only
needs the keys it changes. Strings of the form $VAR or ${VAR} are replaced from
the environment after loading.
"""
import copy
import logging
import os
import re
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import yaml
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".ramadhan_tracker"
DEFAULT_START_DATE = "2026-02-19"

_ENV_LINE_RE = re.compile(r'^([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$')
_ENV_REF_RE = re.compile(r'^\$\{?([A-Za-z_][A-Za-z0-9_]*)\}?$')


def default_config(config_dir: Path) -> Dict[str, Any]:
    return {
        "ramadan": {
            "start_date": DEFAULT_START_DATE,
            "timezone": None,  # IANA name, e.g. Asia/Jakarta; None uses local time
        },
        "location": {
            "name": "Jakarta (Default)",
            "lat": None,
            "lon": None,
        },
        "prayer_times": {
            "enabled": True,
            "calculation_method": 20,  # Kemenag RI
            "timeout": 10,
        },
        "cache": {"directory": str(config_dir / "cache")},
        "database": {"path": str(config_dir / "tracker.db")},
        "tick_interval": 60,  # seconds
        "api": {
            "enabled": False,
            "host": "127.0.0.1",
            "port": 8765,
        },
        "logging": {
            "level": "INFO",
            "file": str(config_dir / "tracker.log"),
        },
    }


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay override onto a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def expand_env(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: expand_env(value) for key, value in data.items()}
    if isinstance(data, list):
        return [expand_env(item) for item in data]
    if isinstance(data, str):
        match = _ENV_REF_RE.match(data)
        if match:
            return os.environ.get(match.group(1), data)
    return data


def load_env_file(candidates: List[Path]) -> Optional[Path]:
    """Export KEY=VALUE lines from the first existing file. Variables already set win."""
    env_file = next((path for path in candidates if path.is_file()), None)
    if env_file is None:
        return None

    logger.info(f"Loading environment variables from: {env_file}")
    try:
        for line in env_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            match = _ENV_LINE_RE.match(line)
            if match:
                key, value = match.groups()
                os.environ.setdefault(key, value.strip('"').strip("'"))
    except OSError as e:
        logger.warning(f"Error loading .env file: {e}")
    return env_file


def diff_config(old: Dict[str, Any], new: Dict[str, Any], prefix: str = "") -> Iterator[Tuple[str, Any, Any]]:
    """Yield (dotted.path, old, new) for every leaf that differs. Missing values are None."""
    for key in sorted(set(old) | set(new), key=str):
        path = f"{prefix}.{key}" if prefix else str(key)
        before, after = old.get(key), new.get(key)
        if isinstance(before, dict) and isinstance(after, dict):
            yield from diff_config(before, after, path)
        elif before != after:
            yield path, before, after


class ConfigFileWatcher(FileSystemEventHandler):
    """Calls config.reload() when the config file is written, at most once per cooldown."""

    def __init__(self, config: "Config", cooldown: float = 1.0):
        self.config = config
        self.cooldown = cooldown
        self._last_reload = 0.0

    def on_modified(self, event):
        if event.is_directory or Path(event.src_path) != self.config.config_file:
            return
        now = time.monotonic()
        if now - self._last_reload < self.cooldown:
            return
        self._last_reload = now
        self.config.reload()


class Config:
    def __init__(self, config_path: Optional[str] = None, watch: bool = False):
        if config_path:
            self.config_file = Path(config_path).expanduser().resolve()
        else:
            self.config_file = DEFAULT_CONFIG_DIR / "config.yaml"
        self.config_dir = self.config_file.parent
        logger.debug(f"Using config file: {self.config_file}")

        self.change_callbacks: List[Callable[[Dict[str, Any]], None]] = []
        self._reload_lock = threading.Lock()
        self.observer = None

        load_env_file([self.config_dir / ".env", Path.cwd() / ".env"])
        self._write_default_if_missing()
        self.data = self._read()

        if watch:
            self.observer = Observer()
            self.observer.schedule(ConfigFileWatcher(self), str(self.config_dir), recursive=False)
            self.observer.start()
            logger.info(f"Watching {self.config_file} for changes")

    def register_change_callback(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """callback(new_data) runs after every successful reload"""
        self.change_callbacks.append(callback)

    def get_section(self, name: str) -> Dict[str, Any]:
        """Return one top-level config section (empty dict if absent or not a mapping)."""
        section = self.data.get(name)
        return section if isinstance(section, dict) else {}

    def reload(self) -> None:
        if not self._reload_lock.acquire(blocking=False):
            return
        try:
            # Editors often truncate then write; give the write a moment to land
            time.sleep(0.1)
            old_data = self.data
            self.data = self._read(fallback=old_data)
            for path, before, after in diff_config(old_data, self.data):
                logger.info(f"Config changed: {path}: {before} -> {after}")

            for callback in self.change_callbacks:
                try:
                    callback(self.data)
                except Exception as e:
                    logger.error(f"Error in config change callback: {e}", exc_info=True)
        finally:
            self._reload_lock.release()

    def cleanup(self) -> None:
        """Stop the file observer"""
        if self.observer is not None:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    def _write_default_if_missing(self) -> None:
        if self.config_file.exists():
            return
        logger.info(f"Creating default config file: {self.config_file}")
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(yaml.safe_dump(default_config(self.config_dir), sort_keys=False))

    def _read(self, fallback: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Parse the file and overlay it on the defaults. On error return fallback (or the defaults)."""
        defaults = default_config(self.config_dir)
        try:
            with open(self.config_file) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ValueError("root must be a mapping")
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.error(f"Error loading config {self.config_file}: {e}")
            if fallback is not None:
                logger.info("Keeping previous configuration")
                return fallback
            return defaults

        data = merge_config(defaults, expand_env(loaded))
        log_file = data["logging"].get("file") if isinstance(data.get("logging"), dict) else None
        if log_file:
            data["logging"]["file"] = os.path.expanduser(log_file)
        return data
