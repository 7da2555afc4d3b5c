from booth.pipeline.scheduler import ManualFrameScheduler, TimerFrameScheduler
from conftest import FakeStream


def test_manual_scheduler_runs_only_queued_ticks():
    scheduler = ManualFrameScheduler()
    ran = []

    def tick():
        ran.append(len(ran))
        scheduler.schedule(tick)

    scheduler.schedule(tick)
    assert scheduler.run_pending() == 1
    assert scheduler.pending == 1
    assert scheduler.run(4) == 4
    assert ran == [0, 1, 2, 3, 4]


def test_manual_scheduler_cancel():
    scheduler = ManualFrameScheduler()
    ran = []
    handle = scheduler.schedule(lambda: ran.append(1))

    scheduler.cancel(handle)
    scheduler.cancel(handle)

    assert scheduler.run(3) == 0
    assert ran == []


def test_timer_interval_follows_stream():
    stream = FakeStream()
    assert TimerFrameScheduler.for_stream(stream, 30).interval == 0.0

    stream.blocking_reads = False
    assert TimerFrameScheduler.for_stream(stream, 25).interval == 1 / 25.0
    assert TimerFrameScheduler.for_stream(stream, 0).interval == 0.0


def test_timer_cancel_prevents_tick():
    scheduler = TimerFrameScheduler(interval=10.0)
    ran = []
    timer = scheduler.schedule(lambda: ran.append(1))

    scheduler.cancel(timer)
    timer.join(1.0)

    assert ran == []
    assert not timer.is_alive()
