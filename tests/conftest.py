import sys
from concurrent.futures import Executor, Future
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from booth.pipeline import CameraPipeline, ManualFrameScheduler
from booth.pipeline.detection import DetectionResult
from booth.raster import new_frame


class FakeStream:
    """Camera stand-in delivering a solid frame on every read."""

    blocking_reads = True

    def __init__(self, width=64, height=48, color=(120, 80, 40, 255), warmup_reads=0, never_ready=False):
        self.width = width
        self.height = height
        self.color = color
        self.warmup_reads = warmup_reads
        self.never_ready = never_ready
        self.native_width = None
        self.native_height = None
        self.reads = 0
        self.closed = False
        self.read_error = None

    def read(self):
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        if self.never_ready or self.reads <= self.warmup_reads:
            return None
        self.native_width, self.native_height = self.width, self.height
        return new_frame(self.width, self.height, self.color)

    def close(self):
        self.closed = True


class FakeDetector:
    def __init__(self, result=None, load_error=None, detect_error=None):
        self.result = result
        self.load_error = load_error
        self.detect_error = detect_error
        self.loads = 0
        self.calls = 0

    def load(self):
        self.loads += 1
        if self.load_error is not None:
            raise self.load_error

    def detect(self, frame):
        self.calls += 1
        if self.detect_error is not None:
            raise self.detect_error
        return self.result


class ImmediateExecutor(Executor):
    """Runs submitted work synchronously and hands back a finished future."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class DeferredExecutor(Executor):
    """Keeps submitted work pending until the test resolves it."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args))
        return future

    def resolve_all(self):
        pending, self.pending = self.pending, []
        for future, fn, args in pending:
            future.set_result(fn(*args))


FACE = DetectionResult(faces=((16, 12, 24, 24),))


def solid(width, height, color):
    return new_frame(width, height, color)


@pytest.fixture
def stream():
    return FakeStream()


@pytest.fixture
def make_pipeline():
    """Factory: ``make_pipeline(stream=..., **kwargs) -> (pipeline, scheduler)``."""

    def _make(stream=None, **kwargs):
        stream = stream or FakeStream()
        scheduler = ManualFrameScheduler()
        kwargs.setdefault("enable_face_detection", False)
        kwargs.setdefault("default_filter", "none")
        kwargs.setdefault("startup_timeout", 0.2)
        pipeline = CameraPipeline(
            stream_factory=lambda config: stream,
            scheduler=scheduler,
            **kwargs,
        )
        return pipeline, scheduler

    return _make
