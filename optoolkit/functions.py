"""Reusable defaulting and validating functions for admission controllers."""

from __future__ import annotations

from collections.abc import Callable, Mapping, MutableMapping
from typing import Any

from optoolkit.admission import (
    DefaultFunc,
    ValidateCreateFunc,
    ValidateUpdateFunc,
)

CLUSTER_VERSION_ANNOTATION = "cluster-version"


def _metadata(obj: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    metadata = obj.get("metadata")
    if not isinstance(metadata, MutableMapping):
        metadata = obj["metadata"] = {}
    return metadata


def _merge_into(obj: MutableMapping[str, Any], field: str, values: Mapping[str, str]) -> None:
    metadata = _metadata(obj)
    current = metadata.get(field)
    merged = dict(current) if current else {}
    merged.update(values)
    metadata[field] = merged


def add_labels(labels: Mapping[str, str]) -> DefaultFunc:
    """A default function adding ``labels`` to an object."""
    wanted = dict(labels)

    def default(obj: MutableMapping[str, Any]) -> None:
        _merge_into(obj, "labels", wanted)

    return default


def add_annotations(annotations: Mapping[str, str]) -> DefaultFunc:
    """A default function adding ``annotations`` to an object."""
    wanted = dict(annotations)

    def default(obj: MutableMapping[str, Any]) -> None:
        _merge_into(obj, "annotations", wanted)

    return default


def add_cluster_version_annotation(version_getter: Callable[[], str]) -> DefaultFunc:
    """A default function annotating an object with the cluster version.

    If the version cannot be found, the object is left unchanged.
    """

    def default(obj: MutableMapping[str, Any]) -> None:
        try:
            version = version_getter()
        except Exception:  # noqa: BLE001 - defaulting must not fail the request
            return
        _merge_into(obj, "annotations", {CLUSTER_VERSION_ANNOTATION: version})

    return default


def _labels_of(obj: Any) -> Mapping[str, str]:
    if isinstance(obj, Mapping):
        return (obj.get("metadata") or {}).get("labels") or {}
    return getattr(obj, "labels", None) or {}


def validate_labels(obj: Any, labels: Mapping[str, str]) -> None:
    """Raise ``ValueError`` if ``obj`` has a label key not found in ``labels``."""
    for key in _labels_of(obj):
        if key not in labels:
            raise ValueError(f'found unexpected label key "{key}"')


def validate_labels_create(labels: Mapping[str, str]) -> ValidateCreateFunc:
    """A create validation allowing only the given label keys."""

    def validate(obj: Any) -> None:
        validate_labels(obj, labels)

    return validate


def validate_labels_update(labels: Mapping[str, str]) -> ValidateUpdateFunc:
    """An update validation allowing only the given label keys on the new object."""

    def validate(obj: Any, old_obj: Any) -> None:
        validate_labels(obj, labels)

    return validate


def _describe(obj: Any) -> tuple[str, str, str]:
    if isinstance(obj, Mapping):
        metadata = obj.get("metadata") or {}
        return (
            obj.get("kind") or "",
            metadata.get("namespace") or "",
            metadata.get("name") or "",
        )
    return (
        getattr(obj, "kind", "") or "",
        getattr(obj, "namespace", "") or "",
        getattr(obj, "name", "") or "",
    )


def validate_singleton_create(
    get_instance: Callable[[Any], Any], client: Any
) -> ValidateCreateFunc:
    """A create validation that refuses a second instance of a singleton kind."""

    def validate(obj: Any) -> None:
        existing = get_instance(client)
        if existing is not None:
            kind, namespace, name = _describe(existing)
            raise ValueError(f'an instance of "{kind}" - {namespace}/{name} already exists')

    return validate