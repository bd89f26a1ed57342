"""
Shared pytest fixtures for Gallery tests.
"""
import os
import sys
from concurrent.futures import Future

# Ensure project root is on path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from core.event_system import EventSystem
from core.session_state import ImageRecord, SessionState


class MockConfigManager:
    """Minimal ConfigManager substitute that accepts a plain dict."""

    def __init__(self, overrides: dict | None = None):
        self._cfg: dict = dict(overrides or {})

    def get(self, key: str, default=None):
        keys = key.split(".")
        val = self._cfg
        for k in keys:
            if isinstance(val, dict):
                val = val.get(k)
            else:
                return default
        return val if val is not None else default


class ManualExecutor:
    """Executor whose futures complete only when a test resolves them.

    Lets a test decide the order in which concurrent backend calls finish.
    """

    def __init__(self):
        self.calls = []

    def submit(self, fn, *args):
        future = Future()
        self.calls.append((fn, args, future))
        return future

    def run(self, index: int):
        """Run the index-th submitted call and complete its future."""
        fn, args, future = self.calls[index]
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)

    @property
    def pending(self) -> int:
        return sum(1 for _, _, future in self.calls if not future.done())


class FakeTimer:
    """DebounceTimer stand-in; tests fire it explicitly."""

    def __init__(self):
        self.callback = None
        self.delay_ms = None
        self.arm_count = 0

    def arm(self, delay_ms, callback):
        self.delay_ms = delay_ms
        self.callback = callback
        self.arm_count += 1

    def cancel(self):
        self.callback = None

    @property
    def armed(self) -> bool:
        return self.callback is not None

    def fire(self):
        callback, self.callback = self.callback, None
        callback()


def make_record(name: str, index: int = 0, tags=(), folder: str = "/photos") -> ImageRecord:
    path = f"{folder}/{name}"
    return ImageRecord(
        id=f"img_{index}",
        source_path=path,
        display_ref=f"file://{path}",
        name=name,
        tags=tuple(tags),
    )


def make_state(names, selected=None, **kwargs) -> SessionState:
    """State holding one record per name, ids ``img_0``... in order."""
    images = tuple(make_record(name, i) for i, name in enumerate(names))
    selected_id = None
    if selected is not None:
        selected_id = next(r.id for r in images if r.name == selected)
    return SessionState(images=images, selected_id=selected_id, **kwargs)


@pytest.fixture()
def bus():
    """Private event bus so tests never leak subscribers into the singleton."""
    return EventSystem()


@pytest.fixture()
def executor():
    return ManualExecutor()


@pytest.fixture()
def fake_timer():
    return FakeTimer()
