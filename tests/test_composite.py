import pytest

from optoolkit.composite import CompositeOperator
from optoolkit.dag import DAGError
from optoolkit.executor import ExecutionStrategy, Result
from optoolkit.operand import Operand, ReconcilerEvent, RequeueStrategy


class FakeRecorder:
    def __init__(self):
        self.events = []

    def event(self, obj, event_type, reason, message):
        self.events.append((obj, event_type, reason, message))


class FooCreatedEvent(ReconcilerEvent):
    def __init__(self, obj, foo_name):
        self.obj = obj
        self.foo_name = foo_name

    def record(self, recorder):
        recorder.event(self.obj, "Normal", "FooReady", f"Created foo with name {self.foo_name}")


class FakeOperand(Operand):
    def __init__(self, name, requires=(), *, strategy=RequeueStrategy.ON_ERROR,
                 events=None, error=None, ready=True, log=None):
        self._name = name
        self._requires = list(requires)
        self._strategy = strategy
        self._events = list(events or [])
        self._error = error
        self._ready = ready
        self.log = log if log is not None else []
        self.ensure_calls = 0

    def name(self):
        return self._name

    def requires(self):
        return self._requires

    def requeue_strategy(self):
        return self._strategy

    def ready_check(self, obj):
        return self._ready

    def ensure(self, obj, owner_ref):
        self.ensure_calls += 1
        self.log.append(("ensure", self._name))
        if self._error is not None:
            raise self._error
        return self._events.pop(0) if self._events else None

    def delete(self, obj):
        self.log.append(("delete", self._name))
        return None


POD = object()


def make_operands(requeue_always=False, log=None, **a_kwargs):
    log = [] if log is None else log
    events = [FooCreatedEvent(POD, "foo foo")] if requeue_always else []
    strategy = RequeueStrategy.ALWAYS if requeue_always else RequeueStrategy.ON_ERROR
    a = FakeOperand("opA", strategy=strategy, events=events, log=log, **a_kwargs)
    b = FakeOperand("opB", log=log)
    c = FakeOperand("opC", ["opA"], log=log)
    return a, b, c


@pytest.mark.parametrize(
    "strategy, requeue_always, times, want_requeue, want_calls",
    [
        (ExecutionStrategy.SERIAL, False, 1, False, (1, 1, 1)),
        (ExecutionStrategy.SERIAL, True, 1, True, (1, 1, 0)),
        (ExecutionStrategy.SERIAL, True, 2, False, (2, 2, 1)),
        (ExecutionStrategy.PARALLEL, False, 1, False, (1, 1, 1)),
        (ExecutionStrategy.PARALLEL, True, 1, True, (1, 1, 0)),
        (ExecutionStrategy.PARALLEL, True, 2, False, (2, 2, 1)),
    ],
)
def test_ensure(strategy, requeue_always, times, want_requeue, want_calls):
    a, b, c = make_operands(requeue_always)
    co = CompositeOperator(FakeRecorder(), operands=[a, b, c], execution_strategy=strategy)
    result = None
    for _ in range(times):
        result = co.ensure(POD, None)
    assert result.requeue is want_requeue
    assert (a.ensure_calls, b.ensure_calls, c.ensure_calls) == want_calls


def test_ensure_records_event():
    recorder = FakeRecorder()
    a, b, c = make_operands(True)
    co = CompositeOperator(recorder, operands=[a, b, c],
                           execution_strategy=ExecutionStrategy.SERIAL)
    co.ensure(POD, None)
    assert recorder.events == [(POD, "Normal", "FooReady", "Created foo with name foo foo")]


def test_suspended():
    a, b, c = make_operands()
    co = CompositeOperator(FakeRecorder(), operands=[a, b, c],
                           suspension_check=lambda obj: True)
    assert co.is_suspended(POD) is True
    assert co.ensure(POD, None) == Result()
    assert co.cleanup(POD) == Result()
    assert (a.ensure_calls, b.ensure_calls, c.ensure_calls) == (0, 0, 0)
    assert a.log == []


def test_not_ready_requeues_after_retry_period():
    a, b, c = make_operands(ready=False)
    co = CompositeOperator(FakeRecorder(), operands=[a, b, c], retry_period=2.5)
    assert co.ensure(POD, None) == Result(requeue=True, requeue_after=2.5)
    assert c.ensure_calls == 0


def test_other_errors_are_raised():
    boom = RuntimeError("boom")
    a, b, c = make_operands(error=boom)
    co = CompositeOperator(FakeRecorder(), operands=[a, b, c])
    with pytest.raises(ExceptionGroup) as info:
        co.ensure(POD, None)
    assert info.value.exceptions == (boom,)


def test_order_and_blockers():
    a, b, c = make_operands()
    co = CompositeOperator(FakeRecorder(), operands=[a, b, c])
    assert str(co.order()) == "[\n  0: [ opA opB ]\n  1: [ opC ]\n]"
    assert co.blockers() == {"opA"}


def test_cleanup_runs_in_reverse_and_keeps_order():
    log = []
    a, b, c = make_operands(log=log)
    co = CompositeOperator(FakeRecorder(), operands=[a, b, c],
                           execution_strategy=ExecutionStrategy.SERIAL)
    before = str(co.order())
    assert co.cleanup(POD) == Result()
    assert log[0] == ("delete", "opC")
    assert sorted(log[1:]) == [("delete", "opA"), ("delete", "opB")]
    assert str(co.order()) == before


def test_recorder_required():
    with pytest.raises(ValueError):
        CompositeOperator(None, operands=[])


def test_cyclic_operands_rejected():
    x = FakeOperand("x", ["y"])
    y = FakeOperand("y", ["x"])
    with pytest.raises(DAGError):
        CompositeOperator(FakeRecorder(), operands=[x, y])