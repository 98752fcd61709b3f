"""Structured logging that mirrors every log record into a tracing span."""

from __future__ import annotations

import copy
import enum
import logging
import secrets
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

INFO_EVENT_NAME = "info"
ERROR_EVENT_NAME = "error"

MESSAGE_KEY = "message"
EVENT_TYPE_KEY = "event.type"
NON_STRING_KEY = "non-string"

LOG_EVENT_TYPE_VALUE = "log"

Attributes = Mapping[str, Any] | Iterable[tuple[str, Any]]


class StatusCode(enum.Enum):
    """Final status of a span."""

    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class SpanEvent:
    """A named event recorded on a span."""

    name: str
    attributes: dict[str, Any]


@dataclass(eq=False)
class Span:
    """An in-memory tracing span.

    A span that is not recording, or that has ended, ignores every change.
    """

    name: str
    recording: bool = True
    trace_id: str = field(default_factory=lambda: secrets.token_hex(16))
    span_id: str = field(default_factory=lambda: secrets.token_hex(8))
    attributes: dict[str, Any] = field(default_factory=dict)
    events: list[SpanEvent] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)
    status_code: StatusCode = StatusCode.UNSET
    status_description: str = ""
    ended: bool = False

    def add_event(self, name: str, attributes: Attributes | None = None) -> None:
        if self.is_recording():
            self.events.append(SpanEvent(name, dict(attributes or {})))

    def set_attributes(self, attributes: Attributes) -> None:
        if self.is_recording():
            self.attributes.update(dict(attributes))

    def record_error(self, error: BaseException | None) -> None:
        if self.is_recording() and error is not None:
            self.errors.append(error)

    def set_status(self, code: StatusCode, description: str = "") -> None:
        if self.is_recording():
            self.status_code = code
            self.status_description = description

    def is_recording(self) -> bool:
        return self.recording and not self.ended

    def end(self) -> None:
        self.ended = True


@dataclass(frozen=True)
class Logger:
    """A small structured logger writing through the standard logging module.

    ``level`` is the verbosity of this logger; it logs informational records
    only while ``level`` does not exceed ``verbosity``.
    """

    name: str = ""
    values: tuple[Any, ...] = ()
    level: int = 0
    verbosity: int = 0

    def _target(self) -> logging.Logger:
        return logging.getLogger(f"optoolkit.{self.name}" if self.name else "optoolkit")

    def _enabled(self) -> bool:
        return self.level <= self.verbosity

    def _format(self, msg: str, args: tuple[Any, ...]) -> str:
        pairs = key_values((*self.values, *args))
        if not pairs:
            return msg
        return msg + " " + " ".join(f"{key}={value!r}" for key, value in pairs)

    def info(self, msg: str, *args: Any) -> None:
        if self._enabled():
            self._target().info(self._format(msg, args))

    def error(self, err: BaseException | None, msg: str, *args: Any) -> None:
        text = self._format(msg, args)
        if err is not None:
            text += f" error={err}"
        self._target().error(text)

    def v(self, level: int) -> Logger:
        return replace(self, level=self.level + level)

    def with_values(self, *args: Any) -> Logger:
        return replace(self, values=self.values + args)

    def with_name(self, name: str) -> Logger:
        return replace(self, name=f"{self.name}.{name}" if self.name else name)


class TracingLogger:
    """A logger that also adds its records to a span as events."""

    def __init__(self, logger: Logger, span: Span) -> None:
        if span.is_recording():
            logger = logger.with_values("SpanID", span.span_id, "TraceID", span.trace_id)
        self.logger = logger
        self.span = span

    def _derive(self, logger: Logger) -> TracingLogger:
        derived = copy.copy(self)
        derived.logger = logger
        return derived

    @staticmethod
    def _event_attributes(msg: str, args: tuple[Any, ...]) -> list[tuple[str, Any]]:
        return [
            (MESSAGE_KEY, msg),
            (EVENT_TYPE_KEY, LOG_EVENT_TYPE_VALUE),
            *key_values(args),
        ]

    def info(self, msg: str, *args: Any) -> None:
        if not self.enabled(0):
            return
        self.logger.info(msg, *args)
        self.span.add_event(INFO_EVENT_NAME, self._event_attributes(msg, args))

    def error(self, err: BaseException | None, msg: str, *args: Any) -> None:
        self.logger.error(err, msg, *args)
        self.span.add_event(ERROR_EVENT_NAME, self._event_attributes(msg, args))
        self.span.record_error(err)
        self.span.set_status(StatusCode.ERROR, "" if err is None else str(err))

    def enabled(self, level: int) -> bool:
        return self.logger.v(level)._enabled()

    def v(self, level: int) -> TracingLogger:
        return self._derive(self.logger.v(level))

    def with_values(self, *args: Any) -> TracingLogger:
        self.span.set_attributes(key_values(args))
        return self._derive(self.logger.with_values(*args))

    def with_name(self, name: str) -> TracingLogger:
        self.span.set_attributes({"name": name})
        return self._derive(self.logger.with_name(name))


def key_values(keys_and_values: Iterable[Any] | None) -> list[tuple[str, Any]]:
    """Pair up alternating keys and values; a trailing odd item is dropped."""
    items = list(keys_and_values or ())
    return [
        (key if isinstance(key, str) else NON_STRING_KEY, value)
        for key, value in zip(items[::2], items[1::2])
    ]