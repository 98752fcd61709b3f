"""Dependency graph of operands and the step order derived from it."""

from __future__ import annotations

from collections.abc import Iterable

from optoolkit.operand import Operand, OperandOrder


class DAGError(ValueError):
    """Raised when operand dependencies do not form a valid graph."""


class OperandDAG:
    """A directed acyclic graph of operands built from their requirements."""

    def __init__(self, operands: Iterable[Operand]) -> None:
        self._operands: dict[str, Operand] = {}
        for op in operands:
            name = op.name()
            if name in self._operands:
                raise DAGError(f'operand "{name}" is defined more than once')
            self._operands[name] = op

        self._parents: dict[str, list[str]] = {name: [] for name in self._operands}
        self._children: dict[str, list[str]] = {name: [] for name in self._operands}
        for name, op in self._operands.items():
            for dep in op.requires():
                if dep not in self._operands:
                    raise DAGError(f'operand "{name}" requires unknown operand "{dep}"')
                if dep not in self._parents[name]:
                    self._parents[name].append(dep)
                    self._children[dep].append(name)

        self._check_acyclic()

    def _check_acyclic(self) -> None:
        pending = {name: len(parents) for name, parents in self._parents.items()}
        ready = [name for name, count in pending.items() if count == 0]
        visited = 0
        while ready:
            name = ready.pop()
            visited += 1
            for child in self._children[name]:
                pending[child] -= 1
                if pending[child] == 0:
                    ready.append(child)
        if visited != len(pending):
            stuck = sorted(name for name, count in pending.items() if count > 0)
            raise DAGError(f"operand dependencies form a cycle: {', '.join(stuck)}")

    def order(self) -> OperandOrder:
        """Group the operands into steps; each step depends only on earlier ones."""
        steps_by_name, steps = self._solve()
        result = OperandOrder([] for _ in range(steps))
        for name, op in self._operands.items():
            result[steps_by_name[name]].append(op)
        return result

    def _solve(self) -> tuple[dict[str, int], int]:
        order: dict[str, int] = {}
        roots = [name for name, parents in self._parents.items() if not parents]
        step = 0
        while roots:
            roots = self._solve_step(step, roots, order)
            step += 1
        return order, step

    def _solve_step(self, step: int, current: list[str], order: dict[str, int]) -> list[str]:
        new_roots: list[str] = []
        for name in current:
            if name not in order:
                parents = self._parents[name]
                if not parents or all(parent in order for parent in parents):
                    order[name] = step
            for child in self._children[name]:
                if child not in new_roots:
                    new_roots.append(child)
        return new_roots