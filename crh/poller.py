from __future__ import annotations

import logging
import time
from enum import Enum
from threading import Event, Lock, Thread
from typing import Callable, Generic, TypeVar

from .errors import HookCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How often a waiting caller looks at its cancel event.
_CANCEL_CHECK_S = 0.1


class PollState(str, Enum):
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class Poller(Generic[T]):
    """Repeats an attempt in a background thread until it yields a value or time runs out.

    `attempt` returns the value once ready and None while it is not. Exceptions
    raised by an attempt are logged and the loop carries on. The first of
    {success, timeout, cancel} moves the poller into a terminal state; after that
    no further attempt is issued and a late result is dropped.
    """

    def __init__(
        self,
        attempt: Callable[[], T | None],
        *,
        interval_s: float,
        timeout_s: float,
        timeout_error: Callable[[float], Exception],
        initial_delay_s: float = 0.0,
        cancel: Event | None = None,
        name: str = "poller",
    ):
        self.attempt = attempt
        self.interval_s = max(0.0, float(interval_s))
        self.timeout_s = max(0.0, float(timeout_s))
        self.initial_delay_s = max(0.0, float(initial_delay_s))
        self.timeout_error = timeout_error
        self.cancel = cancel
        self.name = name

        self.state = PollState.POLLING
        self.attempts = 0
        self._lock = Lock()
        self._done = Event()  # a result was delivered
        self._finished = Event()  # loop must stop
        self._result: T | None = None
        self._thr: Thread | None = None

    def run(self) -> T:
        start = time.monotonic()
        self._thr = Thread(target=self._loop, name=self.name, daemon=True)
        self._thr.start()

        deadline = start + self.timeout_s
        step = _CANCEL_CHECK_S if self.cancel is not None else None
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if self._done.wait(remaining if step is None else min(step, remaining)):
                break
            if self.cancel is not None and self.cancel.is_set():
                break

        with self._lock:
            if self.state is PollState.SUCCEEDED:
                return self._result  # type: ignore[return-value]
            cancelled = self.cancel is not None and self.cancel.is_set()
            self.state = PollState.CANCELLED if cancelled else PollState.TIMED_OUT
            self._finished.set()

        if cancelled:
            raise HookCancelled(f"{self.name} cancelled after {time.monotonic() - start:.1f}s")
        raise self.timeout_error(time.monotonic() - start)

    def _loop(self) -> None:
        if self._finished.wait(self.initial_delay_s):
            return
        while not self._finished.is_set():
            self.attempts += 1
            try:
                result = self.attempt()
            except Exception as e:
                logger.warning("%s: attempt %d failed: %s", self.name, self.attempts, e)
            else:
                if result is not None and self._deliver(result):
                    return
            self._finished.wait(self.interval_s)

    def _deliver(self, result: T) -> bool:
        with self._lock:
            if self.state is not PollState.POLLING:
                return False
            self.state = PollState.SUCCEEDED
            self._result = result
            self._done.set()
            self._finished.set()
            return True
