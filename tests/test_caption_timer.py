import asyncio

import pytest

from services.correlation.timer import CaptionTimer, TimerState


async def test_timer_fires_once_after_delay():
    fired = []
    timer = CaptionTimer(0.01)
    timer.start(lambda: fired.append(True))

    assert timer.active
    await asyncio.sleep(0.05)

    assert fired == [True]
    assert timer.state is TimerState.FIRED


async def test_cancelled_timer_never_fires():
    fired = []
    timer = CaptionTimer(0.01)
    timer.start(lambda: fired.append(True))

    assert timer.cancel() is True
    await asyncio.sleep(0.05)

    assert fired == []
    assert timer.state is TimerState.CANCELLED


async def test_cancel_after_fire_is_a_no_op():
    timer = CaptionTimer(0)
    timer.start(lambda: None)
    await asyncio.sleep(0.01)

    assert timer.cancel() is False
    assert timer.cancel() is False
    assert timer.state is TimerState.FIRED


async def test_cancel_before_start_keeps_timer_disarmed():
    fired = []
    timer = CaptionTimer(0)
    assert timer.cancel() is True
    timer.start(lambda: fired.append(True))
    await asyncio.sleep(0.01)

    assert fired == []
    assert timer.cancel() is False


async def test_double_start_is_rejected():
    timer = CaptionTimer(10)
    timer.start(lambda: None)
    with pytest.raises(RuntimeError):
        timer.start(lambda: None)
    timer.cancel()


def test_negative_delay_is_rejected():
    with pytest.raises(ValueError):
        CaptionTimer(-1)
