import threading

from wordgame.scheduler import ManualScheduler, ThreadScheduler


def test_manual_scheduler_runs_due_actions_in_order():
    scheduler = ManualScheduler(start=0.0)
    ran = []
    scheduler.schedule_all([(2, lambda: ran.append("b")), (1, lambda: ran.append("a")), (5, lambda: ran.append("c"))])

    scheduler.advance(2)
    assert ran == ["a", "b"]
    assert scheduler.time() == 2.0
    assert scheduler.pending == 1


def test_manual_scheduler_sees_actions_scheduled_while_advancing():
    scheduler = ManualScheduler(start=0.0)
    ran = []

    def tick():
        ran.append(scheduler.time())
        scheduler.schedule(1, tick)

    scheduler.schedule(1, tick)
    scheduler.advance(3)
    assert ran == [1.0, 2.0, 3.0]


def test_manual_scheduler_cancel_all():
    scheduler = ManualScheduler()
    ran = []
    scheduler.schedule(1, lambda: ran.append(1))
    scheduler.cancel_all()
    scheduler.advance(5)
    assert ran == []


def test_thread_scheduler_runs_and_cancels():
    scheduler = ThreadScheduler()
    fired = threading.Event()
    cancelled = threading.Event()

    scheduler.schedule(0.01, fired.set)
    assert fired.wait(timeout=2)

    scheduler.schedule(0.3, cancelled.set)
    scheduler.cancel_all()
    assert not cancelled.wait(timeout=0.5)


def test_thread_scheduler_survives_failing_action():
    scheduler = ThreadScheduler()
    after = threading.Event()

    def boom():
        raise RuntimeError("boom")

    scheduler.schedule(0, boom)
    scheduler.schedule(0.05, after.set)
    assert after.wait(timeout=2)
