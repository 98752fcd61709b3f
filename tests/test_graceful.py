import threading

import pytest

from optoolkit.graceful import Graceful
from optoolkit.tracing import Logger


def test_graceful_start_and_stop():
    counts = {"start": 0, "stop": 0}

    def run(stop_event):
        counts["start"] += 1

    def stop():
        counts["stop"] += 1

    graceful = Graceful(run, stop, False, Logger().with_name("graceful-runnable"))
    stop_event = threading.Event()
    assert graceful.start(stop_event) is None

    stop_event.set()
    assert graceful.wait(5) is True

    assert counts == {"start": 1, "stop": 1}


def test_stop_not_called_before_event():
    stopped = threading.Event()
    graceful = Graceful(lambda e: None, stopped.set)
    stop_event = threading.Event()
    graceful.start(stop_event)
    assert graceful.wait(0.05) is False
    assert not stopped.is_set()
    stop_event.set()
    assert graceful.wait(5) is True
    assert stopped.is_set()


def test_failed_stop_still_finishes():
    def stop():
        raise RuntimeError("boom")

    graceful = Graceful(lambda e: "ran", stop)
    stop_event = threading.Event()
    assert graceful.start(stop_event) == "ran"
    stop_event.set()
    assert graceful.wait(5) is True


def test_run_error_propagates():
    def run(stop_event):
        raise ValueError("cannot run")

    graceful = Graceful(run, lambda: None)
    stop_event = threading.Event()
    with pytest.raises(ValueError, match="cannot run"):
        graceful.start(stop_event)
    stop_event.set()
    assert graceful.wait(5) is True


def test_start_twice_raises():
    graceful = Graceful(lambda e: None, lambda: None)
    stop_event = threading.Event()
    graceful.start(stop_event)
    with pytest.raises(RuntimeError):
        graceful.start(stop_event)
    stop_event.set()
    assert graceful.wait(5)


def test_wait_before_start_raises():
    with pytest.raises(RuntimeError):
        Graceful(lambda e: None, lambda: None).wait(0)


@pytest.mark.parametrize("required", [True, False])
def test_need_leader_election(required):
    assert Graceful(lambda e: None, lambda: None, required).need_leader_election() is required