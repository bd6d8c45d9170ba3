"""Helpers that generated component modules call at run time."""

import importlib
import json
import sys
from typing import Any, Dict, Tuple

SERIALIZED_DATA_FIELD = "_serialized_data"

_TUPLE_TAG = "__tuple__"
_UNPERSISTABLE = object()


def _encode(value):
    """JSON form of ``value``, or ``_UNPERSISTABLE`` when it holds host references."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        items = [_encode(item) for item in value]
        if any(item is _UNPERSISTABLE for item in items):
            return _UNPERSISTABLE
        return {_TUPLE_TAG: items} if isinstance(value, tuple) else items
    if isinstance(value, dict):
        if _TUPLE_TAG in value or not all(isinstance(key, str) for key in value):
            return _UNPERSISTABLE
        encoded = {key: _encode(item) for key, item in value.items()}
        if any(item is _UNPERSISTABLE for item in encoded.values()):
            return _UNPERSISTABLE
        return encoded
    return _UNPERSISTABLE


def _decode_object(obj: Dict[str, Any]):
    if len(obj) == 1 and _TUPLE_TAG in obj:
        return tuple(obj[_TUPLE_TAG])
    return obj


def require_module(name: str):
    """Import ``name`` unless it is already loaded; return the module."""
    module = sys.modules.get(name)
    if module is not None:
        return module
    return importlib.import_module(name)


def field_map(component) -> Dict[str, Any]:
    """Current values of every declared field, in declaration order."""
    names = getattr(type(component), "__fields__", ())
    return {name: getattr(component, name, None) for name in names}


def serializable_fields(component_type) -> Tuple[str, ...]:
    """Fields the host already persists on its own (native and hidden fields)."""
    native = getattr(component_type, "__native_fields__", ())
    hidden = getattr(component_type, "__hidden_fields__", ())
    return tuple(dict.fromkeys([*native, *hidden]))


def _stores_serialized_data(component) -> bool:
    return SERIALIZED_DATA_FIELD in getattr(type(component), "__fields__", ())


def default_on_before_serialize(component) -> None:
    """Store every field the host cannot persist natively as JSON.

    Values that hold host object references have no JSON form; they are left
    out of the payload and keep their current value on restore.
    """
    if not _stores_serialized_data(component):
        return
    skipped = set(serializable_fields(type(component)))
    payload = {}
    for name, value in field_map(component).items():
        if name in skipped:
            continue
        encoded = _encode(value)
        if encoded is not _UNPERSISTABLE:
            payload[name] = encoded
    setattr(component, SERIALIZED_DATA_FIELD, json.dumps(payload, sort_keys=True))


def default_on_after_deserialize(component) -> None:
    """Restore fields previously stored by :func:`default_on_before_serialize`."""
    if not _stores_serialized_data(component):
        return
    data = getattr(component, SERIALIZED_DATA_FIELD, None)
    if not data:
        return
    try:
        payload = json.loads(data, object_hook=_decode_object)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Could not deserialize {component!r}. Serialized data might be invalid."
        ) from exc
    if not isinstance(payload, dict):
        raise ValueError(
            f"Could not deserialize {component!r}. Serialized data must be an object."
        )
    for name, value in payload.items():
        setattr(component, name, value)


__all__ = [
    "SERIALIZED_DATA_FIELD",
    "require_module",
    "field_map",
    "serializable_fields",
    "default_on_before_serialize",
    "default_on_after_deserialize",
]
