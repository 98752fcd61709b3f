"""Predicates that filter watch events before they reach an event handler."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from optoolkit.tracing import Logger

_log = Logger().with_name("predicate").with_name("eventFilters")


@dataclass(frozen=True)
class CreateEvent:
    """An object was created."""

    object: Any = None


@dataclass(frozen=True)
class UpdateEvent:
    """An object was updated from ``object_old`` to ``object_new``."""

    object_old: Any = None
    object_new: Any = None


@dataclass(frozen=True)
class DeleteEvent:
    """An object was deleted."""

    object: Any = None


@dataclass
class Predicate:
    """Filters events with optional per-kind functions.

    An event kind whose function is not set passes; subclasses may override
    the checks they care about instead.
    """

    create_func: Callable[[CreateEvent], bool] | None = None
    update_func: Callable[[UpdateEvent], bool] | None = None
    delete_func: Callable[[DeleteEvent], bool] | None = None

    def create(self, event: CreateEvent) -> bool:
        return self.create_func is None or bool(self.create_func(event))

    def update(self, event: UpdateEvent) -> bool:
        return self.update_func is None or bool(self.update_func(event))

    def delete(self, event: DeleteEvent) -> bool:
        return self.delete_func is None or bool(self.delete_func(event))


def _finalizers(obj: Any) -> list[str] | None:
    if isinstance(obj, Mapping):
        found = (obj.get("metadata") or {}).get("finalizers")
    else:
        found = getattr(obj, "finalizers", None)
    return None if found is None else list(found)


class FinalizerChangedPredicate(Predicate):
    """Passes update events only when the object's finalizers changed.

    Meant to be combined with a generation-changed predicate so that a
    controller triggers on spec changes as well as on finalizer changes.
    """

    def update(self, event: UpdateEvent) -> bool:
        if event.object_old is None:
            _log.error(None, "Update event has no old object to update", "event", event)
            return False
        if event.object_new is None:
            _log.error(None, "Update event has no new object to update", "event", event)
            return False
        return _finalizers(event.object_new) != _finalizers(event.object_old)