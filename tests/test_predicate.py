from dataclasses import dataclass, field

import pytest

from optoolkit.predicate import (
    CreateEvent,
    DeleteEvent,
    FinalizerChangedPredicate,
    Predicate,
    UpdateEvent,
)


@dataclass
class ConfigMap:
    finalizers: list[str] = field(default_factory=list)


@pytest.mark.parametrize(
    ("old", "new", "want"),
    [
        (None, ConfigMap(["foo"]), False),
        (ConfigMap(["foo"]), None, False),
        (ConfigMap(["foo", "bar"]), ConfigMap(["foo", "bar"]), False),
        (ConfigMap(["foo", "bar"]), ConfigMap(["foo", "bar", "baz"]), True),
    ],
    ids=["old object nil", "new object nil", "same finalizers", "different finalizers"],
)
def test_finalizer_changed_predicate(old, new, want):
    event = UpdateEvent(object_old=old, object_new=new)
    assert FinalizerChangedPredicate().update(event) is want


def test_finalizer_changed_with_mapping_objects():
    old = {"metadata": {"finalizers": ["foo"]}}
    new = {"metadata": {"finalizers": ["foo", "bar"]}}
    predicate = FinalizerChangedPredicate()
    assert predicate.update(UpdateEvent(old, new)) is True
    assert predicate.update(UpdateEvent(old, dict(old))) is False


def test_finalizer_predicate_passes_create_and_delete():
    predicate = FinalizerChangedPredicate()
    assert predicate.create(CreateEvent(ConfigMap())) is True
    assert predicate.delete(DeleteEvent(ConfigMap())) is True


def test_base_predicate_passes_everything():
    predicate = Predicate()
    assert predicate.create(CreateEvent(None)) is True
    assert predicate.update(UpdateEvent(None, None)) is True
    assert predicate.delete(DeleteEvent(None)) is True