"""Event sources fed by informers of a cache, independent of any API server."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from optoolkit.predicate import CreateEvent, DeleteEvent, Predicate, UpdateEvent
from optoolkit.tracing import Logger

_log = Logger().with_name("source").with_name("EventHandler")

_SCALARS = (str, bytes, bytearray, int, float, bool)


@dataclass(frozen=True)
class DeletedFinalStateUnknown:
    """Tombstone for an object deleted while its final state was not observed."""

    key: str
    obj: Any


def _is_object(obj: Any) -> bool:
    return obj is not None and not isinstance(obj, (DeletedFinalStateUnknown, *_SCALARS))


@dataclass
class EventHandler:
    """Turns informer notifications into filtered events for a handler.

    The handler gets ``create``, ``update`` and ``delete`` calls with the event
    and the queue; an event is dropped as soon as one predicate rejects it.
    """

    handler: Any
    queue: Any
    predicates: Sequence[Predicate] = field(default_factory=tuple)

    def on_add(self, obj: Any) -> None:
        if not _is_object(obj):
            _log.error(None, "OnAdd missing Object", "object", obj, "type", type(obj).__name__)
            return
        event = CreateEvent(obj)
        if all(p.create(event) for p in self.predicates):
            self.handler.create(event, self.queue)

    def on_update(self, old_obj: Any, new_obj: Any) -> None:
        if not _is_object(old_obj):
            _log.error(
                None, "OnUpdate missing ObjectOld", "object", old_obj, "type", type(old_obj).__name__
            )
            return
        if not _is_object(new_obj):
            _log.error(
                None, "OnUpdate missing ObjectNew", "object", new_obj, "type", type(new_obj).__name__
            )
            return
        event = UpdateEvent(old_obj, new_obj)
        if all(p.update(event) for p in self.predicates):
            self.handler.update(event, self.queue)

    def on_delete(self, obj: Any) -> None:
        if not _is_object(obj):
            if not isinstance(obj, DeletedFinalStateUnknown):
                _log.error(
                    None,
                    "Error decoding objects.  Expected cache.DeletedFinalStateUnknown",
                    "type", type(obj).__name__,
                    "object", obj,
                )
                return
            obj = obj.obj
        if not _is_object(obj):
            _log.error(None, "OnDelete missing Object", "object", obj, "type", type(obj).__name__)
            return
        event = DeleteEvent(obj)
        if all(p.delete(event) for p in self.predicates):
            self.handler.delete(event, self.queue)


def _gvk_string(obj: Any) -> str | None:
    kind = getattr(obj, "kind", None)
    if kind is None:
        return None
    api_version = getattr(obj, "api_version", "") or ""
    group, _, version = api_version.rpartition("/")
    return f"{group}/{version}, Kind={kind}"


class Kind:
    """A source of events for one object type, backed by a cache's informer."""

    def __init__(self, obj_type: Any = None, cache: Any = None) -> None:
        self.type = obj_type
        self._cache = cache

    def start(self, handler: Any, queue: Any, *predicates: Predicate) -> None:
        """Register an event handler that feeds ``queue`` with the informer."""
        if self.type is None:
            raise ValueError("must specify Kind.Type")
        if self._cache is None:
            raise ValueError("must call CacheInto on Kind before calling Start")
        informer = self._cache.get_informer(self.type)
        informer.add_event_handler(EventHandler(handler, queue, predicates))

    def wait_for_sync(self) -> None:
        """Block until the cache has synced; raise if it never does."""
        if not self._cache.wait_for_cache_sync():
            raise RuntimeError("cache did not sync")

    def inject_cache(self, cache: Any) -> None:
        """Use ``cache`` unless a cache has already been set."""
        if self._cache is None:
            self._cache = cache

    def __str__(self) -> str:
        gvk = None if self.type is None else _gvk_string(self.type)
        return "kind source: unknown GVK" if gvk is None else f"kind source: {gvk}"


class KindWithCache:
    """A Kind bound to a fixed cache that cannot be replaced by injection."""

    def __init__(self, obj_type: Any, cache: Any) -> None:
        self._kind = Kind(obj_type, cache)

    def start(self, handler: Any, queue: Any, *predicates: Predicate) -> None:
        self._kind.start(handler, queue, *predicates)

    def wait_for_sync(self) -> None:
        self._kind.wait_for_sync()

    def __str__(self) -> str:
        return str(self._kind)


def new_kind_with_cache(obj_type: Any, cache: Any) -> KindWithCache:
    """A source watching ``obj_type`` through the given cache, e.g. of another cluster."""
    return KindWithCache(obj_type, cache)