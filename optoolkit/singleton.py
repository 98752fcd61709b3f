"""Lookup of the single cluster-wide instance of a kind."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

GetInstanceFunc = Callable[[Any], Any]


class MultipleInstancesFound(Exception):
    """Raised when more than one instance of a singleton kind exists."""

    def __init__(self, kind: str, instances: int) -> None:
        super().__init__(f'multiple instances ({instances}) of "{kind}" found')
        self.kind = kind
        self.instances = instances

    def multiple_instances(self) -> tuple[bool, int]:
        return True, self.instances


def is_multiple_instances_found(err: BaseException | None) -> tuple[bool, int]:
    """Whether ``err`` reports multiple instances, and how many were found."""
    check = getattr(err, "multiple_instances", None)
    if callable(check):
        return check()
    return False, 0


def _kind_of(obj: Any) -> str:
    kind = obj.get("kind") if isinstance(obj, Mapping) else getattr(obj, "kind", None)
    return kind or "unknown"


def get_instance(list_kind: Any) -> GetInstanceFunc:
    """Return a function that fetches the one instance of ``list_kind``.

    The returned function takes a client whose ``list(list_kind)`` yields the
    objects across all namespaces. It returns the instance, ``None`` when there
    is none, and raises :class:`MultipleInstancesFound` when there are several.
    """
    if list_kind is None:
        raise ValueError("ObjectList must not be nil")

    def fetch(client: Any) -> Any:
        items = list(client.list(list_kind))
        if len(items) > 1:
            raise MultipleInstancesFound(_kind_of(items[0]), len(items))
        return items[0] if items else None

    return fetch