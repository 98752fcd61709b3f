"""Registration of admission controllers' webhooks on a manager's webhook server."""

from __future__ import annotations

from typing import Any

from optoolkit.admission import Controller, Webhook, defaulting_webhook_for, validating_webhook_for
from optoolkit.tracing import Logger

_log = Logger().with_name("webhook").with_name("builder")


class WebhookServer:
    """Maps endpoint paths to webhooks."""

    def __init__(self) -> None:
        self._hooks: dict[str, Any] = {}

    def register(self, path: str, hook: Any) -> None:
        """Serve ``hook`` at ``path``; a path can be registered only once."""
        if path in self._hooks:
            raise ValueError(f"a webhook is already registered for path {path!r}")
        self._hooks[path] = hook

    def handler(self, path: str) -> Any:
        """The webhook served at ``path``, or ``None``."""
        return self._hooks.get(path)


class Builder:
    """Builds and registers the webhooks of an admission controller.

    The manager provides the server through ``get_webhook_server()``.
    """

    def __init__(self, manager: Any) -> None:
        self._manager = manager
        self._mutate_path = ""
        self._validate_path = ""
        self._controller: Controller | None = None

    def mutate_path(self, path: str) -> Builder:
        """Endpoint path of the mutating webhook."""
        self._mutate_path = path
        return self

    def validate_path(self, path: str) -> Builder:
        """Endpoint path of the validating webhook."""
        self._validate_path = path
        return self

    def complete(self, controller: Controller) -> None:
        """Register the webhooks of ``controller`` for the configured paths."""
        self._controller = controller
        if self._mutate_path:
            self._register(
                self._mutate_path, defaulting_webhook_for(controller), "mutating"
            )
        if self._validate_path:
            self._register(
                self._validate_path, validating_webhook_for(controller), "validating"
            )

    def _register(self, path: str, hook: Webhook, kind: str) -> None:
        server = self._manager.get_webhook_server()
        name = self._controller.name() if self._controller is not None else ""
        if server.handler(path) is not None:
            _log.info(
                "Webhook path already registered, skipping registration",
                "controller", name,
                "path", path,
            )
            return
        _log.info(f"Registering a {kind} webhook", "controller", name, "path", path)
        server.register(path, hook)


def webhook_managed_by(manager: Any) -> Builder:
    """A builder registering webhooks on the manager's webhook server."""
    return Builder(manager)