"""Fixed facts about the host engine's object model.

The specializers only ever consult these constants; nothing here talks to a
running engine.
"""

from enum import Enum
from typing import Dict, FrozenSet

from hostcomp.typesys import HostType, TypeRegistry

OBJECT = "System.Object"
STRING = "System.String"
TYPE = "System.Type"
INT32 = "System.Int32"
SINGLE = "System.Single"
BOOLEAN = "System.Boolean"

ENGINE_OBJECT = "UnityEngine.Object"
GAME_OBJECT = "UnityEngine.GameObject"
COMPONENT = "UnityEngine.Component"
MONO_BEHAVIOUR = "UnityEngine.MonoBehaviour"

ACCESS_METHOD = "GetComponent"


class ObjectShape(Enum):
    """The two host object kinds that can answer ``GetComponent``."""

    GAME_OBJECT = GAME_OBJECT
    COMPONENT = COMPONENT


class TargetKind(Enum):
    """How ``get_component`` describes the component it looks for."""

    TYPE = TYPE
    NAME = STRING


_LOOKUP_METHODS = frozenset(
    {
        ACCESS_METHOD,
        "GetComponents",
        "GetComponentInChildren",
        "GetComponentInParent",
        "CompareTag",
        "SendMessage",
    }
)

SHAPE_METHODS: Dict[ObjectShape, FrozenSet[str]] = {
    ObjectShape.GAME_OBJECT: _LOOKUP_METHODS | {"AddComponent", "SetActive"},
    ObjectShape.COMPONENT: _LOOKUP_METHODS,
}

# (host type, extra DSL aliases). Order matters: bases come first.
BUILTIN_HOST_TYPES = (
    (HostType("Object", OBJECT, None, frozenset({"ToString", "GetType", "Equals"}), py_name="object"), ("object",)),
    (HostType("String", STRING, OBJECT, py_name="str", serializable=True), ("str",)),
    (HostType("Type", TYPE, OBJECT, frozenset({"IsSubclassOf"}), py_name="type"), ("type",)),
    (HostType("Int32", INT32, OBJECT, py_name="int", serializable=True), ("int",)),
    (HostType("Single", SINGLE, OBJECT, py_name="float", serializable=True), ("float",)),
    (HostType("Boolean", BOOLEAN, OBJECT, py_name="bool", serializable=True), ("bool",)),
    (
        HostType(
            "Object",
            ENGINE_OBJECT,
            OBJECT,
            frozenset({"GetInstanceID"}),
            fields=(("name", STRING),),
            py_name="UnityObject",
            serializable=True,
        ),
        ("UnityObject",),
    ),
    (
        HostType(
            "GameObject",
            GAME_OBJECT,
            ENGINE_OBJECT,
            SHAPE_METHODS[ObjectShape.GAME_OBJECT],
            fields=(
                ("transform", "UnityEngine.Transform"),
                ("tag", STRING),
                ("activeSelf", BOOLEAN),
            ),
            serializable=True,
        ),
        (),
    ),
    (
        HostType(
            "Component",
            COMPONENT,
            ENGINE_OBJECT,
            SHAPE_METHODS[ObjectShape.COMPONENT],
            fields=(
                ("gameObject", GAME_OBJECT),
                ("transform", "UnityEngine.Transform"),
                ("tag", STRING),
            ),
            serializable=True,
        ),
        (),
    ),
    (
        HostType(
            "Transform",
            "UnityEngine.Transform",
            COMPONENT,
            frozenset({"Translate", "Rotate", "LookAt", "Find", "SetParent"}),
            fields=(
                ("parent", "UnityEngine.Transform"),
                ("position", "UnityEngine.Vector3"),
                ("rotation", "UnityEngine.Quaternion"),
            ),
            serializable=True,
        ),
        (),
    ),
    (
        HostType(
            "Behaviour",
            "UnityEngine.Behaviour",
            COMPONENT,
            fields=(("enabled", BOOLEAN),),
            serializable=True,
        ),
        (),
    ),
    (
        HostType(
            "MonoBehaviour",
            MONO_BEHAVIOUR,
            "UnityEngine.Behaviour",
            frozenset({"Invoke", "StartCoroutine", "StopAllCoroutines"}),
            serializable=True,
        ),
        (),
    ),
    (HostType("Camera", "UnityEngine.Camera", "UnityEngine.Behaviour", serializable=True), ()),
    (
        HostType(
            "Rigidbody",
            "UnityEngine.Rigidbody",
            COMPONENT,
            frozenset({"AddForce", "MovePosition"}),
            fields=(("velocity", "UnityEngine.Vector3"), ("mass", SINGLE)),
            serializable=True,
        ),
        (),
    ),
    (
        HostType(
            "Collider",
            "UnityEngine.Collider",
            COMPONENT,
            fields=(("isTrigger", BOOLEAN),),
            serializable=True,
        ),
        (),
    ),
    (HostType("Renderer", "UnityEngine.Renderer", COMPONENT, serializable=True), ()),
    (
        HostType(
            "Vector3",
            "UnityEngine.Vector3",
            OBJECT,
            frozenset({"Normalize"}),
            fields=(("x", SINGLE), ("y", SINGLE), ("z", SINGLE)),
            serializable=True,
        ),
        (),
    ),
    (HostType("Quaternion", "UnityEngine.Quaternion", OBJECT, serializable=True), ()),
    (
        HostType(
            "Collision",
            "UnityEngine.Collision",
            OBJECT,
            fields=(
                ("gameObject", GAME_OBJECT),
                ("collider", "UnityEngine.Collider"),
                ("transform", "UnityEngine.Transform"),
            ),
        ),
        (),
    ),
    (HostType("Time", "UnityEngine.Time", OBJECT, fields=(("deltaTime", SINGLE),)), ()),
    (HostType("Debug", "UnityEngine.Debug", OBJECT, frozenset({"Log"})), ()),
    (HostType("Input", "UnityEngine.Input", OBJECT, frozenset({"GetKey", "GetAxis"})), ()),
    (HostType("Mathf", "UnityEngine.Mathf", OBJECT, frozenset({"Clamp", "Lerp"})), ()),
)

# Host types whose emitted names are Python builtins need no host import.
PYTHON_BUILTIN_NAMES = frozenset({"object", "str", "type", "int", "float", "bool"})


def builtin_registry() -> TypeRegistry:
    """Return a fresh registry holding every built-in host type."""
    registry = TypeRegistry()
    for host_type, aliases in BUILTIN_HOST_TYPES:
        registry.register(host_type, *aliases)
    return registry


def shape_type(registry: TypeRegistry, shape: ObjectShape) -> HostType:
    return registry.ensure_type(shape.value)


def target_kind_type(registry: TypeRegistry, kind: TargetKind) -> HostType:
    return registry.ensure_type(kind.value)
