"""Frame scheduling for the render loop.

The pipeline only ever asks for "run this tick once, soon" and "forget the
pending tick". Ticks never overlap because the pipeline schedules the next
tick at the very end of the current one.
"""

import itertools
import threading
from collections import OrderedDict
from typing import Callable, Protocol

Tick = Callable[[], None]


class FrameScheduler(Protocol):
    def schedule(self, tick: Tick): ...

    def cancel(self, handle) -> None: ...


class TimerFrameScheduler:
    """
    Runs each tick on a daemon ``threading.Timer``.

    With ``interval=0`` the tick fires immediately; use that when the stream's
    ``read()`` already blocks until the device delivers its next frame.
    """

    def __init__(self, interval: float = 1 / 30.0):
        self.interval = max(0.0, interval)

    @classmethod
    def for_stream(cls, stream, fps: float = 30.0) -> "TimerFrameScheduler":
        if getattr(stream, "blocking_reads", False):
            return cls(0.0)
        return cls(1.0 / fps if fps > 0 else 0.0)

    def schedule(self, tick: Tick) -> threading.Timer:
        timer = threading.Timer(self.interval, tick)
        timer.daemon = True
        timer.name = "render-tick"
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer):
        handle.cancel()


class ManualFrameScheduler:
    """Queues ticks until :meth:`run_pending` is called. Used for deterministic stepping."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._pending: "OrderedDict[int, Tick]" = OrderedDict()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, tick: Tick) -> int:
        handle = next(self._ids)
        self._pending[handle] = tick
        return handle

    def cancel(self, handle: int):
        self._pending.pop(handle, None)

    def run_pending(self) -> int:
        """Run the ticks queued so far (not the ones they schedule). Returns how many ran."""
        ran = 0
        for handle in list(self._pending):
            tick = self._pending.pop(handle, None)
            if tick is not None:
                tick()
                ran += 1
        return ran

    def run(self, ticks: int) -> int:
        """Step the loop up to ``ticks`` times."""
        ran = 0
        while ran < ticks and self._pending:
            ran += self.run_pending()
        return ran
