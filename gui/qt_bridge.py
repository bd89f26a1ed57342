"""Qt glue for the session controller: main-thread posting and the debounce timer."""

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Qt, Signal


class MainThreadBridge(QObject):
    """Runs callables posted from worker threads on the Qt main thread."""

    _dispatch_to_main = Signal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._dispatch_to_main.connect(self._execute_on_main, Qt.QueuedConnection)

    def post(self, func: Callable[[], None]) -> None:
        """Thread-safe; *func* runs on the next main-loop iteration."""
        self._dispatch_to_main.emit(func)

    def _execute_on_main(self, func):
        func()


class QtDebounceTimer(QObject):
    """Single-shot QTimer where arming again replaces the pending callback."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._callback: Optional[Callable[[], None]] = None

    def arm(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self._callback = callback
        # start() on an active timer restarts it.
        self._timer.start(delay_ms)

    def cancel(self) -> None:
        self._timer.stop()
        self._callback = None

    def is_armed(self) -> bool:
        return self._timer.isActive()

    def _on_timeout(self):
        callback, self._callback = self._callback, None
        if callback is None:
            logging.debug("Debounce timer fired without a callback")
            return
        callback()
