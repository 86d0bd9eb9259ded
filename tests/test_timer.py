import gc
import threading
import time

import pytest

from pourover.timer import BrewTimer, IntervalTask, TimerState


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingClock(FakeClock):
    """Fake clock that records every read made by the tick thread."""

    def __init__(self, now: float = 1000.0):
        super().__init__(now)
        self.reads = 0
        self.read = threading.Event()

    def __call__(self) -> float:
        self.reads += 1
        self.read.set()
        return self.now


def make_timer(total_steps=3):
    clock = FakeClock()
    # long interval: the background thread never ticks during a test
    timer = BrewTimer(total_steps=total_steps, clock=clock, interval=3600)
    return timer, clock


def test_new_timer_is_idle():
    timer, _ = make_timer()
    with timer:
        assert timer.state() == TimerState(running=False, elapsed_seconds=0, current_step_index=-1)


def test_start_sets_first_step_immediately():
    timer, _ = make_timer()
    with timer:
        timer.start()
        assert timer.running
        assert timer.current_step_index == 0
        assert timer.elapsed_seconds == 0


def test_step_advances_every_45_seconds():
    timer, clock = make_timer(total_steps=3)
    with timer:
        timer.start()

        clock.advance(44.9)
        timer.tick()
        assert timer.elapsed_seconds == 44
        assert timer.current_step_index == 0

        clock.advance(1.1)
        timer.tick()
        assert timer.elapsed_seconds == 46
        assert timer.current_step_index == 1


def test_step_stops_at_last_pour():
    timer, clock = make_timer(total_steps=3)
    with timer:
        timer.start()
        clock.advance(200)
        timer.tick()

        assert timer.elapsed_seconds == 200
        assert timer.current_step_index == 2
        assert timer.running


def test_reset_returns_to_idle_from_any_state():
    timer, clock = make_timer()
    with timer:
        timer.reset()
        assert timer.state() == TimerState(False, 0, -1)

        timer.start()
        clock.advance(100)
        timer.tick()
        timer.reset()
        assert timer.state() == TimerState(False, 0, -1)


def test_tick_while_idle_does_nothing():
    timer, clock = make_timer()
    with timer:
        clock.advance(90)
        timer.tick()
        assert timer.state() == TimerState(False, 0, -1)


def test_start_while_running_keeps_epoch():
    timer, clock = make_timer(total_steps=5)
    with timer:
        timer.start()
        clock.advance(50)
        timer.start()
        clock.advance(50)
        timer.tick()

        assert timer.elapsed_seconds == 100
        assert timer.current_step_index == 2


def test_restart_after_reset_counts_from_zero():
    timer, clock = make_timer()
    with timer:
        timer.start()
        clock.advance(120)
        timer.tick()
        timer.reset()

        timer.start()
        clock.advance(10)
        timer.tick()
        assert timer.elapsed_seconds == 10
        assert timer.current_step_index == 0


def test_shrinking_schedule_clamps_current_step():
    timer, clock = make_timer(total_steps=5)
    with timer:
        timer.start()
        clock.advance(190)
        timer.tick()
        assert timer.current_step_index == 4

        timer.total_steps = 3
        assert timer.current_step_index == 2

        clock.advance(10)
        timer.tick()
        assert timer.current_step_index == 2


def test_start_schedules_ticks_and_reset_cancels_them():
    timer = BrewTimer(total_steps=3, interval=0.01)
    with timer:
        timer.start()
        assert timer._task.active
        timer.reset()
        assert not timer._task.active


def test_interval_task_fires_until_cancelled():
    calls = []
    fired = threading.Event()

    def callback():
        calls.append(time.monotonic())
        if len(calls) >= 3:
            fired.set()

    task = IntervalTask(0.01, callback, name="test-task")
    task.start()
    try:
        assert fired.wait(2.0)
    finally:
        task.cancel()

    count = len(calls)
    time.sleep(0.05)
    assert len(calls) == count
    assert not task.active


def test_interval_task_start_is_idempotent():
    task = IntervalTask(3600, lambda: None)
    task.start()
    first = task._thread
    task.start()
    assert task._thread is first
    task.cancel()


def test_interval_task_rejects_bad_interval():
    with pytest.raises(ValueError):
        IntervalTask(0, lambda: None)


def test_background_ticks_advance_state():
    clock = CountingClock()
    with BrewTimer(total_steps=3, clock=clock, interval=0.01) as timer:
        timer.start()
        clock.advance(50)
        clock.read.clear()
        assert clock.read.wait(2.0)
        state = timer.state()

    assert state == TimerState(running=True, elapsed_seconds=50, current_step_index=1)


def test_leaving_with_block_stops_ticks():
    clock = CountingClock()
    with BrewTimer(total_steps=3, clock=clock, interval=0.01) as timer:
        timer.start()
        clock.read.clear()
        assert clock.read.wait(2.0)

    reads = clock.reads
    time.sleep(0.05)
    assert clock.reads == reads
    assert not timer._task.active


def test_close_stops_ticks():
    clock = CountingClock()
    timer = BrewTimer(total_steps=3, clock=clock, interval=0.01)
    timer.start()
    clock.read.clear()
    assert clock.read.wait(2.0)

    timer.close()
    reads = clock.reads
    time.sleep(0.05)
    assert clock.reads == reads
    assert not timer._task.active
    assert not timer.running


def test_discarded_timer_stops_its_tick_thread():
    timer = BrewTimer(total_steps=3, interval=0.01)
    timer.start()
    thread = timer._task._thread
    assert thread.is_alive()
    assert thread.name == "brew-timer-tick"

    del timer
    gc.collect()
    thread.join(2.0)
    assert not thread.is_alive()


def test_reset_during_start_leaves_no_tick_thread():
    timer = None
    resetter = threading.Thread(target=lambda: timer.reset())

    def clock():
        # start() reads the clock while arming; reset races it from another thread
        if resetter.ident is None:
            resetter.start()
        return 1000.0

    timer = BrewTimer(total_steps=3, clock=clock, interval=3600)
    timer.start()
    resetter.join(2.0)

    assert not resetter.is_alive()
    assert not timer._task.active
    assert timer.state() == TimerState(False, 0, -1)
