from dataclasses import dataclass
from typing import Callable, Optional, Union
import logging
import math
import threading
import time
import weakref

from pourover.engine import POUR_WINDOW_S


logger = logging.getLogger(__name__)

TICK_INTERVAL_S = 0.1


@dataclass(frozen=True)
class TimerState:
    running: bool
    elapsed_seconds: int
    current_step_index: int   # -1 = not started


class IntervalTask:
    """
    Calls `callback` every `interval` seconds on a single daemon thread.
    After cancel() returns, the callback will not fire again.

    `callback` may be a weakref.WeakMethod; the thread then exits on its own
    once the owner of the method has been collected.
    """

    def __init__(
        self,
        interval: float,
        callback: Union[Callable[[], None], "weakref.WeakMethod"],
        name: str = "interval-task",
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.interval = interval
        self.callback = callback
        self.name = name
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.active:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), name=self.name, daemon=True
        )
        self._thread.start()

    def cancel(self) -> None:
        thread, stop = self._thread, self._stop
        self._thread = None
        if stop is not None:
            stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            callback = self._resolve()
            if callback is None:
                break
            callback()
            # no strong reference to the owner while waiting
            callback = None

    def _resolve(self) -> Optional[Callable[[], None]]:
        if isinstance(self.callback, weakref.WeakMethod):
            return self.callback()
        return self.callback


class BrewTimer:
    """
    Wall-clock brew timer. Each pour owns a fixed POUR_WINDOW_S window; the
    current step is derived from elapsed time on every tick and stops advancing
    at the last pour while the clock keeps running.

    Idle --start()--> Running --reset()--> Idle
    """

    def __init__(
        self,
        total_steps: int,
        clock: Callable[[], float] = time.monotonic,
        interval: float = TICK_INTERVAL_S,
    ):
        self._lock = threading.Lock()
        # serializes start/reset/close so arming and cancelling never interleave
        self._lifecycle = threading.Lock()
        self._clock = clock
        self._total_steps = total_steps
        self._running = False
        self._elapsed = 0
        self._step = -1
        self._epoch: Optional[float] = None
        # the tick thread only holds a weak reference, so a discarded timer
        # is collected and its thread stops
        self._task = IntervalTask(interval, weakref.WeakMethod(self.tick), name="brew-timer-tick")
        weakref.finalize(self, self._task.cancel)

    @property
    def total_steps(self) -> int:
        return self._total_steps

    @total_steps.setter
    def total_steps(self, value: int) -> None:
        with self._lock:
            self._total_steps = value
            if self._running and self._step > value - 1:
                self._step = max(0, value - 1)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def current_step_index(self) -> int:
        return self._step

    def state(self) -> TimerState:
        with self._lock:
            return TimerState(
                running=self._running,
                elapsed_seconds=self._elapsed,
                current_step_index=self._step,
            )

    def start(self) -> None:
        with self._lifecycle:
            with self._lock:
                if self._running:
                    logger.debug("Brew timer already running, start ignored")
                    return
                self._running = True
                # resumes from whatever has accumulated (0 after a reset)
                self._epoch = self._clock() - self._elapsed
                self._step = 0
            logger.info("Brew timer started (%d pours)", self._total_steps)
            self._task.start()

    def reset(self) -> None:
        with self._lifecycle:
            with self._lock:
                was_running = self._running
                self._running = False
                self._elapsed = 0
                self._step = -1
                self._epoch = None
            # join outside the state lock: an in-flight tick may be waiting on it
            self._task.cancel()
        if was_running:
            logger.info("Brew timer reset")

    def tick(self) -> None:
        with self._lock:
            if not self._running or self._epoch is None:
                return
            self._elapsed = int(math.floor(self._clock() - self._epoch))
            new_step = self._elapsed // POUR_WINDOW_S
            if new_step != self._step and new_step < self._total_steps:
                self._step = new_step
                logger.info("Pour %d of %d at %ds", new_step + 1, self._total_steps, self._elapsed)

    def close(self) -> None:
        with self._lifecycle:
            with self._lock:
                self._running = False
            self._task.cancel()

    def __enter__(self) -> "BrewTimer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
