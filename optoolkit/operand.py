"""Operands: the units of work run by an operator, and their execution order."""

from __future__ import annotations

import abc
import enum
from collections.abc import Callable, Iterable, Sequence
from typing import Any, ClassVar

OperandCall = Callable[[Any, Any], "ReconcilerEvent | None"]


class RequeueStrategy(enum.IntEnum):
    """When a reconcile should be requeued after running an operand."""

    ON_ERROR = 0
    ALWAYS = 1


class NotReadyError(Exception):
    """Raised when an operand's target is not in the desired state yet."""

    def __init__(self, operand_name: str | None = None) -> None:
        if operand_name is None:
            message = "operand not ready"
        else:
            message = (
                f'operand "{operand_name}" readiness check failed: '
                "not in the desired state yet: operand not ready"
            )
        super().__init__(message)
        self.operand_name = operand_name


class ReconcilerEvent(abc.ABC):
    """An event produced when an operand applies a change."""

    @abc.abstractmethod
    def record(self, recorder: Any) -> None:
        """Publish the event through the given recorder."""


class Operand(abc.ABC):
    """A single operation that forms part of a composite operator.

    Readiness is the conjunction of ``ready_conditions``; once ready, every
    callable of ``post_ready_actions`` is run on the object. Subclasses may set
    these or override ``ready_check`` and ``post_ready`` directly.
    """

    ready_conditions: ClassVar[tuple[Callable[[Any], bool], ...]] = ()
    post_ready_actions: ClassVar[tuple[Callable[[Any], None], ...]] = ()

    @abc.abstractmethod
    def name(self) -> str:
        """Unique name of the operand."""

    def requires(self) -> list[str]:
        """Names of the operands this one depends on."""
        return []

    @abc.abstractmethod
    def ensure(self, obj: Any, owner_ref: Any) -> ReconcilerEvent | None:
        """Create or update the target; return an event if a change was made."""

    @abc.abstractmethod
    def delete(self, obj: Any) -> ReconcilerEvent | None:
        """Delete the target; return an event if a change was made."""

    def requeue_strategy(self) -> RequeueStrategy:
        return RequeueStrategy.ON_ERROR

    def ready_check(self, obj: Any) -> bool:
        """Whether every readiness condition holds for ``obj``."""
        return all(condition(obj) for condition in self.ready_conditions)

    def post_ready(self, obj: Any) -> None:
        """Run the post-ready actions on ``obj``."""
        for action in self.post_ready_actions:
            action(obj)


class OperandOrder(list):
    """Steps of operands; the operands within one step may run concurrently."""

    def reverse(self) -> OperandOrder:  # type: ignore[override]
        """Reverse the steps in place and return the order itself."""
        super().reverse()
        return self

    def blockers(self) -> set[str]:
        """Names of operands that must succeed before the next step may run."""
        if len(self) == 1:
            return set()
        return {name for step in self for name in blockers_in_step(step)}

    def __str__(self) -> str:
        lines = "".join(
            f"  {index}: [ {' '.join(sorted(op.name() for op in step))} ]\n"
            for index, step in enumerate(self)
        )
        return "[\n" + lines + "]"


def blockers_in_step(operands: Sequence[Operand]) -> list[str]:
    """Requirements shared by every operand of a step."""
    if not operands:
        return []
    first, *rest = operands
    blockers = list(first.requires())
    for op in rest:
        blockers = common_strings(blockers, op.requires())
    return blockers


def common_strings(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Strings of ``a`` that also appear in ``b``, in the order of ``a``."""
    b = list(b)
    return [item for item in a for other in b if item == other]


def step_requeue_strategy(step: Iterable[Operand]) -> RequeueStrategy:
    """ALWAYS if any operand of the step requeues always, else ON_ERROR."""
    if any(op.requeue_strategy() == RequeueStrategy.ALWAYS for op in step):
        return RequeueStrategy.ALWAYS
    return RequeueStrategy.ON_ERROR


def call_ensure(op: Operand) -> OperandCall:
    """A call that ensures the operand, checks readiness and runs post-ready."""

    def run(obj: Any, owner_ref: Any) -> ReconcilerEvent | None:
        event = op.ensure(obj, owner_ref)
        if not op.ready_check(obj):
            raise NotReadyError(op.name())
        op.post_ready(obj)
        return event

    return run


def call_cleanup(op: Operand) -> OperandCall:
    """A call that deletes the operand's target; the owner reference is ignored."""

    def run(obj: Any, owner_ref: Any) -> ReconcilerEvent | None:
        return op.delete(obj)

    return run