from __future__ import annotations

from typing import Optional, Protocol, Sequence

from app.console import log
from app.phases import PHASE_TABLE, Phase, PhaseMode, batch_payloads, encode_counter
from app.state import GeneratorState


# RabbitMQ's default heartbeat is 60s; idle waits are cut into slices below that
IDLE_SLICE_SEC = 30.0


class MessageSink(Protocol):
    """
    Where emissions go. A sink may also define ``pump()``, called after every
    slice of an idle wait to service its connection.
    """

    def send_one(self, payload: bytes) -> None: ...

    def send_batch(self, payloads: Sequence[bytes]) -> None: ...


class CancellationSignal(Protocol):
    def is_set(self) -> bool: ...

    def wait(self, timeout: Optional[float] = None) -> bool: ...


def _duration(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        n, unit = int(seconds // 60), "minute"
    else:
        n, unit = seconds, "second"
        if float(n).is_integer():
            n = int(n)
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def _every(seconds: float) -> str:
    d = _duration(seconds)
    return d[2:] if d.startswith("1 ") else d


def describe_phase(phase: Phase) -> str:
    if phase.mode is PhaseMode.WAIT:
        return f"Waiting {_duration(phase.interval)}..."
    if phase.mode is PhaseMode.BATCH and phase.repeats == 1:
        return f"Generating {phase.count} messages..."
    what = "1 message" if phase.count == 1 else f"{phase.count} messages"
    total = _duration(phase.interval * phase.repeats)
    return f"Sending {what} every {_every(phase.interval)} (for {total})..."


class PhaseScheduler:
    """
    Drives the phase table forever, cycling back to the first phase after the last.

    The counter is owned by the instance and never resets; payloads are the
    decimal form of counter+1, counter+2, ... so values across a run are
    contiguous and start at 1. Cancellation is checked before every emission
    and raced against every sleep.
    """

    def __init__(
        self,
        phases: Sequence[Phase] = PHASE_TABLE,
        counter: int = 0,
        state: Optional[GeneratorState] = None,
        idle_slice: float = IDLE_SLICE_SEC,
    ) -> None:
        if idle_slice <= 0:
            raise ValueError("idle_slice must be positive")
        self.phases = tuple(phases)
        self.counter = counter
        self.idle_slice = idle_slice
        self.cycle = 0
        self.state = state

    def run(self, sink: MessageSink, cancel: CancellationSignal) -> None:
        """Run until cancel is observed. Send failures propagate."""
        if self.state:
            self.state.record_started()
        try:
            while not cancel.is_set():
                self.cycle += 1
                if not self.run_cycle(sink, cancel):
                    break
        except Exception as exc:
            if self.state:
                self.state.record_stopped(exc)
            raise
        if self.state:
            self.state.record_stopped()
        log(f"Cancellation requested, stopped at counter {self.counter}")

    def run_cycle(self, sink: MessageSink, cancel: CancellationSignal) -> bool:
        for phase in self.phases:
            if self.state:
                self.state.record_phase(self.cycle, phase.label or phase.mode.value)
            if not self.run_phase(phase, sink, cancel):
                return False
        return True

    def run_phase(self, phase: Phase, sink: MessageSink, cancel: CancellationSignal) -> bool:
        """Run one phase; False means cancellation was observed."""
        if cancel.is_set():
            return False
        log(describe_phase(phase))
        if phase.mode is PhaseMode.WAIT:
            return self._sleep(phase.interval, sink, cancel)

        for _ in range(phase.repeats):
            if cancel.is_set():
                return False
            if phase.mode is PhaseMode.BATCH:
                self.emit_batch(sink, phase.count, quiet=phase.repeats == 1)
            else:
                self.emit_one(sink)
            if not self._sleep(phase.interval, sink, cancel):
                return False
        return True

    def emit_one(self, sink: MessageSink) -> None:
        log("    Sending message...")
        sink.send_one(encode_counter(self.counter + 1))
        self.counter += 1
        if self.state:
            self.state.record_sent(self.counter, 1, batch=False)

    def emit_batch(self, sink: MessageSink, size: int, quiet: bool = False) -> None:
        if not quiet:
            log(f"    Sending {size} messages...")
        sink.send_batch(batch_payloads(self.counter, size))
        self.counter += size
        if self.state:
            self.state.record_sent(self.counter, size, batch=True)

    def _sleep(self, seconds: float, sink: MessageSink, cancel: CancellationSignal) -> bool:
        if cancel.is_set():
            return False
        # slices stay well under the broker heartbeat so the sink can keep its connection alive
        pump = getattr(sink, "pump", None)
        remaining = seconds
        while remaining > 0:
            chunk = min(remaining, self.idle_slice)
            if cancel.wait(chunk):
                return False
            remaining -= chunk
            if pump is not None:
                pump()
        return True
