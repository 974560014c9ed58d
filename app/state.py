from __future__ import annotations
import threading
import time
from typing import Dict, Optional


class GeneratorState:
    """Progress of the running scheduler, readable from other threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.counter = 0
        self.cycle = 0
        self.phase: Optional[str] = None
        self.messages_sent = 0
        self.batches_sent = 0
        self.running = False
        self.started_at: Optional[float] = None
        self.last_send_at: Optional[float] = None
        self.last_error: Optional[str] = None

    # Recorders
    def record_started(self) -> None:
        with self._lock:
            self.running = True
            self.started_at = time.time()
            self.last_error = None

    def record_phase(self, cycle: int, label: str) -> None:
        with self._lock:
            self.cycle = cycle
            self.phase = label

    def record_sent(self, counter: int, messages: int, batch: bool) -> None:
        with self._lock:
            self.counter = counter
            self.messages_sent += messages
            if batch:
                self.batches_sent += 1
            self.last_send_at = time.time()

    def record_stopped(self, error: Optional[BaseException] = None) -> None:
        with self._lock:
            self.running = False
            self.phase = None
            if error is not None:
                self.last_error = f"{type(error).__name__}: {error}"

    def snapshot(self) -> Dict:
        with self._lock:
            return {
                "counter": self.counter,
                "cycle": self.cycle,
                "phase": self.phase,
                "messages_sent": self.messages_sent,
                "batches_sent": self.batches_sent,
                "running": self.running,
                "started_at": self.started_at,
                "last_send_at": self.last_send_at,
                "last_error": self.last_error,
            }
