"""Tracer providers and an instrumentation helper combining a tracer and a logger."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from optoolkit.tracing import Logger, Span, TracingLogger

LOG_LIBRARY_KEY = "library"


class Tracer:
    """Creates spans for one instrumented component."""

    def __init__(self, name: str, provider: TracerProvider) -> None:
        self.name = name
        self.provider = provider

    def start_span(self, name: str) -> Span:
        span = Span(name, recording=self.provider.recording)
        if span.recording:
            self.provider.spans.append(span)
        return span


@dataclass
class TracerProvider:
    """Hands out tracers. A recording provider keeps every span it starts."""

    recording: bool = True
    spans: list[Span] = field(default_factory=list)

    def tracer(self, name: str) -> Tracer:
        return Tracer(name, self)


_registry: dict[str, TracerProvider] = {"global": TracerProvider(recording=False)}


def get_tracer_provider() -> TracerProvider:
    """Return the process-wide tracer provider."""
    return _registry["global"]


def set_tracer_provider(provider: TracerProvider) -> None:
    """Replace the process-wide tracer provider."""
    _registry["global"] = provider


class Instrumentation:
    """A tracer and a logger bound to a library name."""

    def __init__(
        self,
        name: str,
        tracer_provider: TracerProvider | None = None,
        logger: Logger | None = None,
    ) -> None:
        provider = get_tracer_provider() if tracer_provider is None else tracer_provider
        self.name = name
        self.tracer = provider.tracer(name)
        self.log = (Logger() if logger is None else logger).with_values(LOG_LIBRARY_KEY, name)

    @contextmanager
    def start(self, name: str) -> Iterator[tuple[Span, TracingLogger]]:
        """Open a span and a logger tied to it; the span ends on exit."""
        span = self.tracer.start_span(name)
        try:
            yield span, TracingLogger(self.log.with_values("spanName", name), span)
        finally:
            span.end()