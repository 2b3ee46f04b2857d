"""
Ctrl+C handling for the console compass loop.

The handler only sets an event; teardown of the compass stays in the main
loop's ``finally`` so the magnetometer subscription is released outside the
signal handler (the compass lock is not reentrant).

Usage:
    with CtrlCHandler() as ctrl:
        while not ctrl.wait(0.5):
            print(compass.get_snapshot())
"""

import signal
import threading
from typing import Optional


class CtrlCHandler:
    """SIGINT flag that also wakes a loop sleeping in ``wait``."""

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self._previous_handler = signal.signal(signal.SIGINT, self._signal_handler)

    @property
    def should_stop(self) -> bool:
        return self._stop_event.is_set()

    def wait(self, timeout: Optional[float]) -> bool:
        """Sleep up to ``timeout`` seconds; True as soon as Ctrl+C was pressed."""
        return self._stop_event.wait(timeout)

    def restore(self) -> None:
        """Reinstall the SIGINT handler that was active before this one."""
        if self._previous_handler is not None:
            signal.signal(signal.SIGINT, self._previous_handler)
            self._previous_handler = None

    def __enter__(self) -> "CtrlCHandler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def _signal_handler(self, sig, frame):
        print("\n[INFO] Interrupt signal detected, stopping compass...")
        self._stop_event.set()
