"""One-shot gates that admit per-video tasks to the encoder in discovery order.

Task i owns a latch that starts at i. When a task moves on to the encoder it
counts down the latch of every later task, so task i opens only once tasks
0..i-1 have all moved on. There is no dispatcher thread: each task only
touches the latches of tasks with a greater index.
"""

import threading
from typing import List, Optional

POLL_INTERVAL_S = 0.1


class CountDownLatch:
    """Blocks waiters until the count reaches zero. Never resets."""

    def __init__(self, count: int):
        if count < 0:
            raise ValueError("count must be >= 0")
        self._count = count
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def count_down(self):
        with self._cond:
            if self._count > 0:
                self._count -= 1
                if self._count == 0:
                    self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Returns True once the count is zero, False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


class LatchChain:
    """Latches for N tasks; latch i starts at i."""

    def __init__(self, size: int):
        self._latches: List[CountDownLatch] = [CountDownLatch(i) for i in range(size)]
        self._released = [False] * size
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._latches)

    def __getitem__(self, index: int) -> CountDownLatch:
        return self._latches[index]

    def wait_turn(self, index: int, cancel_event: Optional[threading.Event] = None) -> bool:
        """Waits until every earlier task has released this one.

        Returns False if cancel_event is set first.
        """
        latch = self._latches[index]
        while not latch.wait(timeout=POLL_INTERVAL_S):
            if cancel_event is not None and cancel_event.is_set():
                return False
        return True

    def release_successors(self, index: int):
        """Counts down every later latch. Only the first call per task counts."""
        with self._lock:
            if self._released[index]:
                return
            self._released[index] = True
        for latch in self._latches[index + 1:]:
            latch.count_down()
