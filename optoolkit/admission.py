"""Admission webhooks that run chains of defaulting and validating functions.

Objects are JSON-like mappings. A defaulter or validator hands out a new, empty
object of its target type; the request payload is decoded into it, passed
through the function chain, and answered with an admission response.
"""

from __future__ import annotations

import abc
import copy
import enum
import json
from collections.abc import Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from optoolkit.telemetry import get_tracer_provider
from optoolkit.tracing import Span

TRACER_NAME = "optoolkit/webhook/admission"

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_FORBIDDEN = 403
HTTP_INTERNAL_SERVER_ERROR = 500

PATCH_TYPE_JSON = "JSONPatch"

DefaultFunc = Callable[[Any], None]
ValidateCreateFunc = Callable[[Any], None]
ValidateUpdateFunc = Callable[[Any, Any], None]
ValidateDeleteFunc = Callable[[Any], None]

RawObject = str | bytes | bytearray | None


class Operation(enum.Enum):
    """The operation an admission request is about."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


@dataclass
class Request:
    """An admission request; ``object`` and ``old_object`` are raw JSON."""

    operation: Operation = Operation.CREATE
    object: RawObject = None
    old_object: RawObject = None
    namespace: str = ""
    name: str = ""
    kind: Mapping[str, Any] = field(default_factory=dict)
    request_kind: Mapping[str, Any] | None = None
    resource: Mapping[str, Any] = field(default_factory=dict)
    uid: str = ""
    user_info: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Status:
    """Outcome details attached to an admission response."""

    code: int = 0
    message: str = ""
    reason: str = ""


@dataclass
class Response:
    """An admission response, optionally carrying a JSON patch."""

    allowed: bool
    result: Status | None = None
    patches: list[dict[str, Any]] = field(default_factory=list)
    patch_type: str | None = None


class APIStatusError(Exception):
    """An error that carries its own API status for the admission response."""

    def __init__(self, message: str, code: int = HTTP_FORBIDDEN, reason: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.reason = reason

    def status(self) -> Status:
        return Status(code=self.code, message=str(self), reason=self.reason)


class Defaulter(abc.ABC):
    """Sets defaults on objects through a chain of default functions."""

    @abc.abstractmethod
    def get_new_object(self) -> MutableMapping[str, Any]:
        """A new, empty object of the target type."""

    @abc.abstractmethod
    def default(self) -> Iterable[DefaultFunc]:
        """The default functions forming the defaulting pipeline."""

    @abc.abstractmethod
    def require_defaulting(self, obj: Any) -> bool:
        """Whether ``obj`` goes through the defaulting pipeline at all."""


class Validator(abc.ABC):
    """Validates create, update and delete operations through function chains."""

    @abc.abstractmethod
    def get_new_object(self) -> MutableMapping[str, Any]:
        """A new, empty object of the target type."""

    @abc.abstractmethod
    def validate_create(self) -> Iterable[ValidateCreateFunc]:
        """Functions validating a create; each raises to deny."""

    @abc.abstractmethod
    def validate_update(self) -> Iterable[ValidateUpdateFunc]:
        """Functions validating an update; called with the new and old object."""

    @abc.abstractmethod
    def validate_delete(self) -> Iterable[ValidateDeleteFunc]:
        """Functions validating a delete; called with the object being deleted."""

    @abc.abstractmethod
    def require_validating(self, obj: Any) -> bool:
        """Whether ``obj`` goes through the validating pipeline at all."""


class Controller(Defaulter, Validator):
    """A named admission controller that both defaults and validates."""

    @abc.abstractmethod
    def name(self) -> str:
        """Name of the controller."""


def _allowed(reason: str = "") -> Response:
    return Response(allowed=True, result=Status(code=HTTP_OK, reason=reason))


def _denied(reason: str) -> Response:
    return Response(allowed=False, result=Status(code=HTTP_FORBIDDEN, reason=reason))


def _errored(code: int, err: BaseException) -> Response:
    return Response(allowed=False, result=Status(code=code, message=str(err)))


def _add_request_info(span: Span, request: Request) -> None:
    span.set_attributes({"namespace": request.namespace, "name": request.name})
    span.set_attributes({"kind": dict(request.kind)})
    if request.request_kind is not None:
        span.set_attributes({"requestKind": dict(request.request_kind)})
    span.set_attributes({"resource": dict(request.resource)})
    span.set_attributes({"uid": request.uid})
    span.set_attributes({"userInfo": dict(request.user_info)})


def _merge(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        current = target.get(key)
        if isinstance(current, MutableMapping) and isinstance(value, Mapping):
            _merge(current, value)
        else:
            target[key] = copy.deepcopy(value)


def _parse(raw: RawObject) -> Any:
    if raw is None or len(raw) == 0:
        raise ValueError("there is no content to decode")
    return json.loads(raw)


def _decode(raw: RawObject, obj: MutableMapping[str, Any]) -> None:
    data = _parse(raw)
    if not isinstance(data, Mapping):
        raise ValueError("the request object is not a JSON object")
    _merge(obj, data)


def _new_object(source: Defaulter | Validator, namespace: str) -> MutableMapping[str, Any]:
    obj = source.get_new_object()
    if not isinstance(obj, MutableMapping):
        raise TypeError(f"target object must be a mutable mapping, got {type(obj).__name__}")
    if namespace:
        metadata = obj.get("metadata")
        if not isinstance(metadata, MutableMapping):
            metadata = obj["metadata"] = {}
        metadata["namespace"] = namespace
    return obj


def _escape(key: str) -> str:
    return key.replace("~", "~0").replace("/", "~1")


def _diff(path: str, old: Any, new: Any, ops: list[dict[str, Any]]) -> None:
    if isinstance(old, Mapping) and isinstance(new, Mapping):
        for key in old:
            if key not in new:
                ops.append({"op": "remove", "path": f"{path}/{_escape(key)}"})
        for key, value in new.items():
            child = f"{path}/{_escape(key)}"
            if key not in old:
                ops.append({"op": "add", "path": child, "value": copy.deepcopy(value)})
            else:
                _diff(child, old[key], value, ops)
    elif type(old) is not type(new) or old != new:
        ops.append({"op": "replace", "path": path, "value": copy.deepcopy(new)})


def create_patch(original: RawObject, modified: RawObject) -> list[dict[str, Any]]:
    """JSON patch operations turning the ``original`` document into ``modified``."""
    ops: list[dict[str, Any]] = []
    _diff("", _parse(original), _parse(modified), ops)
    return ops


class MutatingHandler:
    """Decodes the request object, runs the default functions and returns a patch."""

    def __init__(self, defaulter: Defaulter) -> None:
        self.defaulter = defaulter

    def handle(self, request: Request) -> Response:
        span = get_tracer_provider().tracer(TRACER_NAME).start_span("mutating-handle")
        try:
            return self._handle(span, request)
        finally:
            span.end()

    def _handle(self, span: Span, request: Request) -> Response:
        if self.defaulter is None:
            raise ValueError("defaulter should never be nil")

        obj = _new_object(self.defaulter, request.namespace)
        _add_request_info(span, request)

        span.add_event("Decode request object")
        try:
            _decode(request.object, obj)
        except ValueError as err:
            span.record_error(err)
            return _errored(HTTP_BAD_REQUEST, err)

        if self.defaulter.require_defaulting(obj):
            funcs = list(self.defaulter.default())
            span.add_event("Run defaulting functions")
            span.set_attributes({"default-func-count": len(funcs)})
            for func in funcs:
                func(obj)

        span.add_event("Marshal object")
        try:
            marshalled = json.dumps(obj)
        except (TypeError, ValueError) as err:
            span.record_error(err)
            return _errored(HTTP_INTERNAL_SERVER_ERROR, err)

        span.add_event("Create patch response")
        try:
            patches = create_patch(request.object, marshalled)
        except ValueError as err:
            return _errored(HTTP_INTERNAL_SERVER_ERROR, err)
        return Response(
            allowed=True,
            patches=patches,
            patch_type=PATCH_TYPE_JSON if patches else None,
        )


def _api_status(err: BaseException) -> APIStatusError | None:
    current: BaseException | None = err
    while current is not None:
        if isinstance(current, APIStatusError):
            return current
        current = current.__cause__
    return None


def _run_validations(span: Span, checks: Iterable[Callable[[], Any]]) -> Response | None:
    for check in checks:
        try:
            check()
        except Exception as err:  # noqa: BLE001 - every failure denies the request
            span.record_error(err)
            status_err = _api_status(err)
            if status_err is not None:
                return Response(allowed=False, result=status_err.status())
            return _denied(str(err))
    return None


class ValidatingHandler:
    """Decodes the request objects and runs the validate functions of the operation."""

    def __init__(self, validator: Validator) -> None:
        self.validator = validator

    def handle(self, request: Request) -> Response:
        span = get_tracer_provider().tracer(TRACER_NAME).start_span("validating-handle")
        try:
            return self._handle(span, request)
        finally:
            span.end()

    def _handle(self, span: Span, request: Request) -> Response:
        if self.validator is None:
            raise ValueError("validator should never be nil")

        obj = _new_object(self.validator, request.namespace)
        _add_request_info(span, request)
        validator = self.validator

        if request.operation is Operation.CREATE:
            span.set_attributes({"operation": "create"})
            span.add_event("Decode request object")
            try:
                _decode(request.object, obj)
            except ValueError as err:
                span.record_error(err)
                return _errored(HTTP_BAD_REQUEST, err)
            if validator.require_validating(obj):
                funcs = list(validator.validate_create())
                span.add_event("Run validating functions")
                span.set_attributes({"validatecreate-func-count": len(funcs)})
                denial = _run_validations(span, (lambda f=f: f(obj) for f in funcs))
                if denial is not None:
                    return denial

        elif request.operation is Operation.UPDATE:
            span.set_attributes({"operation": "update"})
            old_obj = _new_object(validator, "")
            span.add_event("Decode request objects")
            try:
                _decode(request.object, obj)
                _decode(request.old_object, old_obj)
            except ValueError as err:
                span.record_error(err)
                return _errored(HTTP_BAD_REQUEST, err)
            if validator.require_validating(obj):
                funcs = list(validator.validate_update())
                span.add_event("Run validating")
                span.set_attributes({"validateupdate-func-count": len(funcs)})
                denial = _run_validations(
                    span, (lambda f=f: f(obj, old_obj) for f in funcs)
                )
                if denial is not None:
                    return denial

        elif request.operation is Operation.DELETE:
            span.set_attributes({"operation": "delete"})
            # The object being deleted arrives as the old object.
            span.add_event("Decode request object")
            try:
                _decode(request.old_object, obj)
            except ValueError as err:
                span.record_error(err)
                return _errored(HTTP_BAD_REQUEST, err)
            if validator.require_validating(obj):
                funcs = list(validator.validate_delete())
                span.add_event("Run validating")
                span.set_attributes({"validatedelete-func-count": len(funcs)})
                denial = _run_validations(span, (lambda f=f: f(obj) for f in funcs))
                if denial is not None:
                    return denial

        span.set_attributes({"allowed": True})
        return _allowed("")


@dataclass
class Webhook:
    """An admission webhook served by one handler."""

    handler: MutatingHandler | ValidatingHandler

    def handle(self, request: Request) -> Response:
        return self.handler.handle(request)


def defaulting_webhook_for(defaulter: Defaulter) -> Webhook:
    """A webhook that defaults objects with the given defaulter."""
    return Webhook(MutatingHandler(defaulter))


def validating_webhook_for(validator: Validator) -> Webhook:
    """A webhook that validates objects with the given validator."""
    return Webhook(ValidatingHandler(validator))