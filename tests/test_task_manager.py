import threading
from datetime import date

from ramadhan_tracker.core.cache_helper import CacheHelper
from ramadhan_tracker.core.task_manager import TaskManager


def test_one_time_task_runs_and_is_forgotten():
    manager = TaskManager()
    done = threading.Event()
    manager.schedule_task("once", done.set, 0.2)
    timer = manager.tasks["once"]
    timer.join(2)
    assert done.is_set()
    assert "once" not in manager.tasks
    manager.stop()


def test_repeating_task_reschedules():
    manager = TaskManager()
    calls = []
    twice = threading.Event()

    def tick():
        calls.append(1)
        if len(calls) >= 2:
            twice.set()

    manager.schedule_task("tick", tick, 0.01, one_time=False)
    assert twice.wait(2)
    manager.stop()
    assert manager.tasks == {}


def test_rescheduling_replaces_pending_timer():
    manager = TaskManager()
    ran = []
    manager.schedule_task("refresh", lambda: ran.append("old"), 60)
    first = manager.tasks["refresh"]
    manager.schedule_task("refresh", lambda: ran.append("new"), 60)
    assert manager.tasks["refresh"] is not first
    assert first.finished.is_set()
    assert [t["name"] for t in manager.get_active_timers()] == ["refresh"]
    manager.stop()
    assert ran == []


def test_failing_task_is_logged_not_raised():
    manager = TaskManager()
    after = threading.Event()

    def broken():
        after.set()
        raise RuntimeError("boom")

    manager.schedule_task("broken", broken, 0)
    assert after.wait(2)
    manager.stop()


def test_stopped_manager_ignores_new_tasks():
    manager = TaskManager()
    manager.stop()
    manager.schedule_task("late", lambda: None, 0)
    assert manager.tasks == {}


def test_cache_is_scoped_to_date(tmp_path):
    cache = CacheHelper(str(tmp_path), "prayer_times")
    cache.save("jakarta", {"maghrib": "18:12"}, for_date=date(2026, 2, 21))
    assert cache.get_cached("jakarta", valid_for=date(2026, 2, 21)) == {"maghrib": "18:12"}
    assert cache.get_cached("jakarta", valid_for=date(2026, 2, 22)) is None
    assert cache.get_cached("jakarta") == {"maghrib": "18:12"}
    assert cache.get_cached("bandung") is None


def test_corrupt_cache_file_is_ignored(tmp_path):
    cache = CacheHelper(str(tmp_path))
    cache.save("key", [1, 2])
    with open(cache._get_cache_file("key"), "w") as f:
        f.write("{broken")
    assert cache.get_cached("key") is None
