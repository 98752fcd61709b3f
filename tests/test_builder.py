import pytest

from optoolkit.admission import (
    Controller,
    MutatingHandler,
    Operation,
    Request,
    ValidatingHandler,
)
from optoolkit.builder import Builder, WebhookServer, webhook_managed_by


class FakeManager:
    def __init__(self):
        self.server = WebhookServer()

    def get_webhook_server(self):
        return self.server


class GameController(Controller):
    def name(self):
        return "test-game-controller"

    def get_new_object(self):
        return {"apiVersion": "app.example.com/v1alpha1", "kind": "Game"}

    def default(self):
        return []

    def require_defaulting(self, obj):
        return True

    def validate_create(self):
        return []

    def validate_update(self):
        return []

    def validate_delete(self):
        return []

    def require_validating(self, obj):
        return True


MUTATE = "/mutate-app-example-com-v1alpha1-game"
VALIDATE = "/validate-app-example-com-v1alpha1-game"


def test_complete_registers_both_webhooks():
    manager = FakeManager()
    controller = GameController()
    webhook_managed_by(manager).mutate_path(MUTATE).validate_path(VALIDATE).complete(controller)

    mutating = manager.server.handler(MUTATE)
    validating = manager.server.handler(VALIDATE)
    assert isinstance(mutating.handler, MutatingHandler)
    assert mutating.handler.defaulter is controller
    assert isinstance(validating.handler, ValidatingHandler)
    assert validating.handler.validator is controller


def test_only_configured_paths_are_registered():
    manager = FakeManager()
    webhook_managed_by(manager).mutate_path(MUTATE).complete(GameController())
    assert manager.server.handler(MUTATE) is not None
    assert manager.server.handler(VALIDATE) is None


def test_no_paths_registers_nothing():
    manager = FakeManager()
    webhook_managed_by(manager).complete(GameController())
    assert manager.server.handler(MUTATE) is None
    assert manager.server.handler(VALIDATE) is None


def test_already_registered_path_is_skipped():
    manager = FakeManager()
    existing = object()
    manager.server.register(MUTATE, existing)
    webhook_managed_by(manager).mutate_path(MUTATE).validate_path(VALIDATE).complete(
        GameController()
    )
    assert manager.server.handler(MUTATE) is existing
    assert isinstance(manager.server.handler(VALIDATE).handler, ValidatingHandler)


def test_server_rejects_duplicate_registration():
    server = WebhookServer()
    server.register(MUTATE, object())
    with pytest.raises(ValueError):
        server.register(MUTATE, object())


def test_path_setters_chain():
    builder = webhook_managed_by(FakeManager())
    assert isinstance(builder, Builder)
    assert builder.mutate_path(MUTATE) is builder
    assert builder.validate_path(VALIDATE) is builder


def test_registered_webhook_handles_requests():
    manager = FakeManager()
    webhook_managed_by(manager).validate_path(VALIDATE).complete(GameController())
    response = manager.server.handler(VALIDATE).handle(
        Request(Operation.CREATE, object="{}")
    )
    assert response.allowed is True
    assert response.result.code == 200