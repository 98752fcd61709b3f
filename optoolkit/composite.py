"""An operator composed of operands run in the order of their dependencies."""

from __future__ import annotations

import abc
from collections.abc import Callable, Iterable
from typing import Any

from optoolkit.dag import OperandDAG
from optoolkit.executor import ExecutionStrategy, Executor, Result
from optoolkit.operand import (
    NotReadyError,
    Operand,
    OperandOrder,
    call_cleanup,
    call_ensure,
)
from optoolkit.telemetry import Instrumentation

INSTRUMENTATION_NAME = "optoolkit/operator"

DEFAULT_RETRY_PERIOD = 5.0


class Operator(abc.ABC):
    """The operator part of a controller's reconcile loop."""

    @abc.abstractmethod
    def is_suspended(self, obj: Any) -> bool:
        """Whether the operator must not run any operation on ``obj``."""

    @abc.abstractmethod
    def ensure(self, obj: Any, owner_ref: Any) -> Result:
        """Run every operand's ensure in dependency order."""

    @abc.abstractmethod
    def cleanup(self, obj: Any) -> Result:
        """Run every operand's delete in reverse dependency order."""


class CompositeOperator(Operator):
    """Holds the operands and the dependency order between them.

    Raises ``DAGError`` if the operands' requirements do not form a DAG, and
    ``ValueError`` if no event recorder is given. Without a suspension check
    the operator is never suspended.
    """

    def __init__(
        self,
        recorder: Any,
        *,
        operands: Iterable[Operand] = (),
        execution_strategy: ExecutionStrategy = ExecutionStrategy.PARALLEL,
        suspension_check: Callable[[Any], bool] | None = None,
        retry_period: float = DEFAULT_RETRY_PERIOD,
        instrumentation: Instrumentation | None = None,
    ) -> None:
        if recorder is None:
            raise ValueError("an event recorder must be provided to the CompositeOperator")
        self.recorder = recorder
        self.operands = list(operands)
        self.execution_strategy = execution_strategy
        self.retry_period = retry_period
        self._suspension_check = suspension_check
        self._inst = instrumentation or Instrumentation(INSTRUMENTATION_NAME)

        self.dag = OperandDAG(self.operands)
        self._order = self.dag.order()
        self._blockers = self._order.blockers()
        self._executor = Executor(execution_strategy, recorder)

    def order(self) -> OperandOrder:
        """Steps in which the operands run; reversed, the order for deletion."""
        return self._order

    def blockers(self) -> set[str]:
        """Names of operands that block their following step when they fail."""
        return self._blockers

    def is_suspended(self, obj: Any) -> bool:
        with self._inst.start("IsSuspended"):
            return self._suspension_check is not None and bool(self._suspension_check(obj))

    def ensure(self, obj: Any, owner_ref: Any) -> Result:
        """Ensure all operands.

        An operand that is not ready yet does not raise: a requeue after the
        retry period is returned instead. Other failures are raised.
        """
        with self._inst.start("Ensure") as (span, log):
            if self.is_suspended(obj):
                span.add_event("CompositeOperator Ensure skipped because it's suspended")
                return Result()
            try:
                result = self._executor.execute_operands(
                    self._order, self._blockers, call_ensure, obj, owner_ref
                )
            except ExceptionGroup as group:
                if group.subgroup(NotReadyError) is not None:
                    log.info(
                        "components not ready, retrying in a few seconds...",
                        "waitPeriod", self.retry_period,
                        "failure", group,
                    )
                    return Result(requeue=True, requeue_after=self.retry_period)
                raise
            span.add_event("CompositeOperator Ensure executed successfully")
            return result

    def cleanup(self, obj: Any) -> Result:
        """Delete the operands' targets, last step first."""
        with self._inst.start("Cleanup"):
            if self.is_suspended(obj):
                return Result()
            reverse = OperandOrder(reversed(self._order))
            return self._executor.execute_operands(
                reverse, self._blockers, call_cleanup, obj, None
            )