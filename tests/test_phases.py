import dataclasses

import pytest

from app.phases import (
    CYCLE_MESSAGE_COUNT,
    PHASE_TABLE,
    Phase,
    PhaseMode,
    batch_payloads,
    encode_counter,
)


def test_phase_table_order_and_parameters():
    rows = [(p.mode, p.count, p.interval, p.repeats) for p in PHASE_TABLE]
    assert rows == [
        (PhaseMode.BATCH, 1000, 0, 1),
        (PhaseMode.WAIT, 0, 240, 1),
        (PhaseMode.SINGLE_REPEAT, 1, 60, 2),
        (PhaseMode.SINGLE_REPEAT, 1, 1, 60),
        (PhaseMode.BATCH, 20, 1, 60),
        (PhaseMode.WAIT, 0, 300, 1),
    ]


def test_cycle_emits_2262_messages():
    assert CYCLE_MESSAGE_COUNT == 1000 + 2 + 60 + 60 * 20 == 2262


def test_wait_phase_emits_nothing():
    assert Phase(PhaseMode.WAIT, count=0, interval=30).message_count == 0


def test_phase_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        PHASE_TABLE[0].count = 5


@pytest.mark.parametrize("kwargs", [
    dict(mode=PhaseMode.BATCH, count=-1, interval=0),
    dict(mode=PhaseMode.BATCH, count=10, interval=-1),
    dict(mode=PhaseMode.BATCH, count=10, interval=1, repeats=0),
    dict(mode=PhaseMode.SINGLE_REPEAT, count=3, interval=1, repeats=2),
])
def test_invalid_phases_rejected(kwargs):
    with pytest.raises(ValueError):
        Phase(**kwargs)


def test_encode_counter_is_decimal_utf8():
    assert encode_counter(0) == b"0"
    assert encode_counter(2263) == b"2263"


def test_batch_payloads_start_after_counter():
    payloads = batch_payloads(1062, 20)
    assert len(payloads) == 20
    assert payloads[0] == b"1063"
    assert payloads[-1] == b"1082"
    assert batch_payloads(5, 0) == []
