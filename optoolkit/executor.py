"""Runs operands step by step, serially or concurrently."""

from __future__ import annotations

import enum
from collections.abc import Callable, Collection, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from optoolkit.operand import (
    Operand,
    OperandCall,
    OperandOrder,
    RequeueStrategy,
    step_requeue_strategy,
)
from optoolkit.telemetry import Instrumentation

INSTRUMENTATION_NAME = "optoolkit/operator/executor"

RunCall = Callable[[Operand], OperandCall]


class ExecutionStrategy(enum.IntEnum):
    """How the operands of one step are run."""

    PARALLEL = 0
    SERIAL = 1


@dataclass(frozen=True)
class Result:
    """Outcome of a reconcile: whether, and after how many seconds, to requeue."""

    requeue: bool = False
    requeue_after: float = 0.0


class Executor:
    """Executes operands in order and records the events they produce."""

    def __init__(
        self,
        strategy: ExecutionStrategy = ExecutionStrategy.PARALLEL,
        recorder: Any = None,
        instrumentation: Instrumentation | None = None,
    ) -> None:
        self.strategy = strategy
        self.recorder = recorder
        self._inst = instrumentation or Instrumentation(INSTRUMENTATION_NAME)

    def execute_operands(
        self,
        order: OperandOrder,
        blockers: Collection[str],
        call: RunCall,
        obj: Any,
        owner_ref: Any,
    ) -> Result:
        """Run ``call`` on every operand of ``order``, one step after another.

        Failures of a step are collected; a failed blocking operand stops the
        remaining steps. All failures are raised together as an
        ``ExceptionGroup``. A step with a requeue-always operand that applied a
        change ends the run with a requeue result.
        """
        errors: list[Exception] = []
        result = Result()
        with self._inst.start("execute") as (span, _log):
            span.set_attributes({"order-length": len(order)})
            span.add_event("Start operand execution")
            for ops in order:
                requeue_strategy = step_requeue_strategy(ops)
                span.add_event(
                    "Execute operands", {"requeue-strategy": int(requeue_strategy)}
                )
                if self.strategy == ExecutionStrategy.SERIAL:
                    changed, failed, step_errors = self._serial_exec(ops, call, obj, owner_ref)
                elif self.strategy == ExecutionStrategy.PARALLEL:
                    changed, failed, step_errors = self._concurrent_exec(
                        ops, call, obj, owner_ref
                    )
                else:
                    raise ValueError(
                        f"unknown operands execution strategy: {self.strategy}"
                    )

                if step_errors:
                    errors.extend(step_errors)
                    result = Result(requeue=True)
                    if failed & set(blockers):
                        break
                    continue

                if changed and requeue_strategy == RequeueStrategy.ALWAYS:
                    result = Result(requeue=True)
                    break
            span.add_event("Finish operand execution")

        if errors:
            raise ExceptionGroup("operand execution failed", errors)
        return result

    def _run_one(self, call: RunCall, op: Operand, obj: Any, owner_ref: Any) -> bool:
        event = call(op)(obj, owner_ref)
        if event is None:
            return False
        event.record(self.recorder)
        return True

    def _serial_exec(
        self, ops: Sequence[Operand], call: RunCall, obj: Any, owner_ref: Any
    ) -> tuple[bool, set[str], list[Exception]]:
        changed = False
        with self._inst.start("serial-exec") as (span, _log):
            span.add_event("Execute serially", {"operand-count": len(ops)})
            for op in ops:
                name = op.name()
                span.add_event("Executing operand", {"operand-name": name})
                try:
                    changed = self._run_one(call, op, obj, owner_ref) or changed
                except Exception as err:  # noqa: BLE001 - failures are aggregated
                    return changed, {name}, [err]
            span.add_event("Finish serial execution")
        return changed, set(), []

    def _concurrent_exec(
        self, ops: Sequence[Operand], call: RunCall, obj: Any, owner_ref: Any
    ) -> tuple[bool, set[str], list[Exception]]:
        changed = False
        failed: set[str] = set()
        errors: list[Exception] = []
        if not ops:
            return changed, failed, errors
        with self._inst.start("concurrent-exec") as (span, _log):
            span.add_event("Execute concurrently", {"operand-count": len(ops)})
            with ThreadPoolExecutor(max_workers=len(ops)) as pool:
                futures = []
                for op in ops:
                    name = op.name()
                    span.add_event("Executing operand", {"operand-name": name})
                    futures.append(
                        (name, pool.submit(self._run_one, call, op, obj, owner_ref))
                    )
                for name, future in futures:
                    error = future.exception()
                    if error is not None:
                        errors.append(error)
                        failed.add(name)
                    elif future.result():
                        changed = True
            span.add_event("Finish concurrent execution")
        return changed, failed, errors