"""Session telemetry for the compass - JSONL event and heading logs."""

import json
import threading
import time
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from qibla_compass.core.imu.orientation_state import CompassSnapshot


@dataclass
class HeadingMetric:
    """One accepted magnetometer update."""
    timestamp: float
    heading_degrees: float
    direction_label: str
    target_bearing_degrees: float
    target_rotation_degrees: float


class TelemetryLogger:
    """
    Thread-safe session logger.
    - Headings: every accepted sample
    - System: lifecycle transitions, errors
    """

    def __init__(self, output_dir: Optional[Path] = None):
        """
        Start a new telemetry session.

        Args:
            output_dir: Base directory for sessions (default: logs/)
        """
        self._write_lock = threading.Lock()
        self._buffer_lock = threading.Lock()

        base_dir = Path(output_dir) if output_dir is not None else Path("logs")
        base_dir.mkdir(parents=True, exist_ok=True)

        self.session_timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        self.session_start = time.time()
        self.output_dir = base_dir / f"session_{self.session_timestamp}"
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.headings_log = self.output_dir / "headings.jsonl"
        self.system_log = self.output_dir / "system.jsonl"

        self.heading_buffer: List[HeadingMetric] = []
        self.lifecycle_events: List[str] = []

        self._log_system_event("session_start", {
            "session": self.session_timestamp,
            "timestamp": self.session_start
        })

        print(f"[TELEMETRY] New session: {self.session_timestamp}")
        print(f"[TELEMETRY] Folder: {self.output_dir}")

    def get_session_dir(self) -> Path:
        return self.output_dir

    # ------------------------------------------------------------------
    # Compass events
    # ------------------------------------------------------------------

    def log_heading(self, snapshot: CompassSnapshot) -> None:
        """
        Record an accepted heading update.

        Thread-safe: may be called from the sensor thread.
        """
        metric = HeadingMetric(
            timestamp=time.time(),
            heading_degrees=snapshot.heading_degrees,
            direction_label=snapshot.direction_label,
            target_bearing_degrees=snapshot.target_bearing_degrees,
            target_rotation_degrees=snapshot.target_rotation_degrees,
        )

        with self._buffer_lock:
            self.heading_buffer.append(metric)

        self._write_jsonl(self.headings_log, asdict(metric))

    def log_lifecycle(self, lifecycle: str, reason: Optional[str] = None) -> None:
        """Record a lifecycle transition."""
        with self._buffer_lock:
            self.lifecycle_events.append(lifecycle)

        self._log_system_event("lifecycle", {"lifecycle": lifecycle, "reason": reason})

    def log_error(self, error_type: str, message: str, **kwargs: Any) -> None:
        """Record a system error."""
        self._log_system_event("error", {
            "error_type": error_type,
            "message": message,
            **kwargs
        })

    def _log_system_event(self, event_type: str, data: Dict[str, Any]) -> None:
        payload = {
            "timestamp": time.time(),
            "session": self.session_timestamp,
            "event_type": event_type,
            **data
        }
        self._write_jsonl(self.system_log, payload)

    # ------------------------------------------------------------------
    # Session Management
    # ------------------------------------------------------------------

    def get_heading_summary(self) -> Dict[str, Any]:
        """
        Statistics over the headings recorded so far.

        Thread-safe: may be called from any thread.
        """
        with self._buffer_lock:
            headings = list(self.heading_buffer)

        if not headings:
            return {"total_samples": 0, "by_direction": {}}

        by_direction = Counter(metric.direction_label for metric in headings)
        return {
            "total_samples": len(headings),
            "by_direction": dict(by_direction),
            "last_heading_degrees": headings[-1].heading_degrees,
            "last_target_bearing_degrees": headings[-1].target_bearing_degrees,
        }

    def finalize_session(self) -> Dict[str, Any]:
        """
        Close the session and write summary.json.

        Returns:
            Dict with the session statistics
        """
        with self._buffer_lock:
            lifecycle_copy = list(self.lifecycle_events)

        summary = {
            "session": self.session_timestamp,
            "duration_sec": time.time() - self.session_start,
            "lifecycle_events": lifecycle_copy,
            "headings": self.get_heading_summary(),
        }

        summary_path = self.output_dir / "summary.json"
        with open(summary_path, 'w') as f:
            json.dump(summary, f, indent=2)

        self._log_system_event("session_end", {"duration_sec": summary["duration_sec"]})
        print(f"[TELEMETRY] Session closed: {self.session_timestamp}")
        print(f"[TELEMETRY] Summary saved: {summary_path.name}")

        return summary

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _write_jsonl(self, path: Path, data: Dict[str, Any]) -> None:
        """Append one JSON line atomically."""
        try:
            line = json.dumps(data, ensure_ascii=True)
        except TypeError:
            line = json.dumps({"error": "serialization_failed", "repr": repr(data)})

        with self._write_lock:
            with open(path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
