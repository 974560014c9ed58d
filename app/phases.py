from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class PhaseMode(str, Enum):
    BATCH = "batch"
    SINGLE_REPEAT = "single_repeat"
    WAIT = "wait"


@dataclass(frozen=True)
class Phase:
    mode: PhaseMode
    count: int
    interval: float  # seconds slept after each emission (or the whole pause for WAIT)
    repeats: int = 1
    label: str = ""

    def __post_init__(self) -> None:
        if self.count < 0 or self.repeats < 1 or self.interval < 0:
            raise ValueError(f"invalid phase: {self!r}")
        if self.mode is PhaseMode.SINGLE_REPEAT and self.count != 1:
            raise ValueError("single_repeat phases emit exactly one message per repeat")

    @property
    def message_count(self) -> int:
        if self.mode is PhaseMode.WAIT:
            return 0
        return self.count * self.repeats


def encode_counter(value: int) -> bytes:
    """Payload for one message: the decimal counter value as UTF-8."""
    return str(value).encode("utf-8")


def batch_payloads(counter: int, size: int) -> List[bytes]:
    """Payloads counter+1 .. counter+size in ascending order."""
    return [encode_counter(i) for i in range(counter + 1, counter + size + 1)]


PHASE_TABLE: Tuple[Phase, ...] = (
    Phase(PhaseMode.BATCH, count=1000, interval=0, repeats=1, label="opening burst"),
    Phase(PhaseMode.WAIT, count=0, interval=4 * 60, label="pause after burst"),
    Phase(PhaseMode.SINGLE_REPEAT, count=1, interval=60, repeats=2, label="1 message every minute"),
    Phase(PhaseMode.SINGLE_REPEAT, count=1, interval=1, repeats=60, label="1 message every second"),
    Phase(PhaseMode.BATCH, count=20, interval=1, repeats=60, label="20 messages every second"),
    Phase(PhaseMode.WAIT, count=0, interval=5 * 60, label="closing pause"),
)

CYCLE_MESSAGE_COUNT = sum(p.message_count for p in PHASE_TABLE)
