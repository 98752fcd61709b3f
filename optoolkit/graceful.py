"""A runnable component that is stopped gracefully when asked to stop."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from optoolkit.tracing import Logger

RunCall = Callable[[threading.Event], Any]
StopCall = Callable[[], Any]


class Graceful:
    """Runs a component and calls its stop function once the stop event is set.

    Useful for components that do not stop immediately: :meth:`wait` blocks
    until the stop function has finished.
    """

    def __init__(
        self,
        run: RunCall,
        stop: StopCall,
        require_leader_election: bool = False,
        logger: Logger | None = None,
    ) -> None:
        self._run = run
        self._stop = stop
        self._require_leader_election = require_leader_election
        self._log = logger if logger is not None else Logger()
        self._thread: threading.Thread | None = None

    def start(self, stop_event: threading.Event) -> Any:
        """Start the component; ``run`` may block. Returns what ``run`` returns."""
        if self._thread is not None:
            raise RuntimeError("graceful runnable already started")
        self._thread = threading.Thread(
            target=self._stop_when_done, args=(stop_event,), daemon=True
        )
        self._thread.start()
        return self._run(stop_event)

    def _stop_when_done(self, stop_event: threading.Event) -> None:
        stop_event.wait()
        self._log.info("stopping gracefully")
        try:
            self._stop()
        except Exception as err:  # noqa: BLE001 - a failed stop is only reported
            self._log.error(err, "failed to stop gracefully")

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the graceful stop; return whether it has finished."""
        if self._thread is None:
            raise RuntimeError("graceful runnable was never started")
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def need_leader_election(self) -> bool:
        return self._require_leader_election