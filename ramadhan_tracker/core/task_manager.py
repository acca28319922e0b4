"""
Named background timers: the periodic day tick and one-shot prayer-time fetches.
"""
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List


class TaskManager:
    def __init__(self):
        self.tasks: Dict[str, threading.Timer] = {}
        self.logger = logging.getLogger("TaskManager")
        self._lock = threading.Lock()
        self._stopped = False

    def schedule_task(self, name: str, callback: Callable[[], Any], delay: float, one_time: bool = True) -> None:
        """Run callback after delay seconds, then every delay seconds unless one_time.
        Scheduling a name that is already pending replaces it."""
        timer = threading.Timer(delay, self._run_task, args=(name, callback, delay, one_time))
        timer.daemon = True
        timer.scheduled_time = time.time() + delay
        with self._lock:
            if self._stopped:
                self.logger.debug(f"Task manager stopped, not scheduling {name}")
                return
            previous = self.tasks.get(name)
            if previous is not None:
                previous.cancel()
            self.tasks[name] = timer
        timer.start()
        self.logger.debug(f"Scheduled {name} in {delay}s")

    def _run_task(self, name: str, callback: Callable[[], Any], delay: float, one_time: bool) -> None:
        try:
            callback()
        except Exception as e:
            self.logger.exception(f"Error running task {name}: {e}")
        if not one_time:
            self.schedule_task(name, callback, delay, one_time)
            return
        with self._lock:
            # A newer timer may already own the name
            if self.tasks.get(name) is threading.current_thread():
                del self.tasks[name]

    def get_active_timers(self) -> List[Dict[str, Any]]:
        """Pending timers and when they fire (UTC)."""
        with self._lock:
            timers = list(self.tasks.items())
        return [
            {"name": name, "next_run_at": datetime.fromtimestamp(timer.scheduled_time, tz=timezone.utc)}
            for name, timer in timers
        ]

    def stop(self) -> None:
        """Cancel everything; later schedule_task calls are ignored."""
        with self._lock:
            self._stopped = True
            timers = list(self.tasks.values())
            self.tasks.clear()
        for timer in timers:
            timer.cancel()
