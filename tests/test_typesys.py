import pytest

from hostcomp.errors import UnresolvedTypeError
from hostcomp.host_model import (
    COMPONENT,
    GAME_OBJECT,
    MONO_BEHAVIOUR,
    OBJECT,
    ObjectShape,
    TargetKind,
    builtin_registry,
    shape_type,
    target_kind_type,
)
from hostcomp.typesys import HostType, TypeRegistry


def test_lookup_accepts_short_full_and_python_names():
    registry = builtin_registry()
    assert registry.lookup("GameObject").full_name == GAME_OBJECT
    assert registry.lookup(GAME_OBJECT).full_name == GAME_OBJECT
    assert registry.lookup("str").full_name == "System.String"
    assert registry.lookup("Nope") is None


def test_ensure_type_rejects_unresolved_designators():
    registry = builtin_registry()
    with pytest.raises(UnresolvedTypeError, match="'Ghost' does not resolve to a type"):
        registry.ensure_type("Ghost")


def test_subtype_queries_follow_single_inheritance():
    registry = builtin_registry()
    mono = registry.ensure_type(MONO_BEHAVIOUR)
    component = registry.ensure_type(COMPONENT)
    game_object = registry.ensure_type(GAME_OBJECT)

    assert registry.is_subtype_or_equal(mono, component)
    assert registry.is_subtype_or_equal(component, component)
    assert registry.is_strict_subtype(mono, component)
    assert not registry.is_strict_subtype(component, component)
    assert not registry.is_subtype_or_equal(component, mono)
    assert not registry.are_related(game_object, component)
    assert registry.are_related(component, mono)
    assert [t.full_name for t in registry.ancestors(mono)][-1] == OBJECT


def test_methods_and_fields_are_inherited():
    registry = builtin_registry()
    rigidbody = registry.ensure_type("Rigidbody")
    assert registry.has_method(rigidbody, "GetComponent")
    assert not registry.has_method(registry.ensure_type("Vector3"), "GetComponent")
    assert registry.field_type(rigidbody, "gameObject").full_name == GAME_OBJECT
    assert registry.field_type(rigidbody, "mass").full_name == "System.Single"
    assert registry.field_type(rigidbody, "missing") is None


def test_register_component_extends_the_hierarchy():
    registry = builtin_registry()
    mover = registry.register_component(
        "Mover",
        base=MONO_BEHAVIOUR,
        methods=["Update"],
        fields=[("target", "GameObject")],
    )
    assert registry.is_strict_subtype(mover, registry.ensure_type(COMPONENT))
    assert registry.has_method(mover, "GetComponent")
    assert registry.field_type(mover, "target").full_name == GAME_OBJECT
    with pytest.raises(ValueError, match="already declared"):
        registry.register_component("Mover", base=MONO_BEHAVIOUR)


def test_register_rejects_unknown_base():
    registry = TypeRegistry()
    with pytest.raises(ValueError, match="unknown type"):
        registry.register(HostType("Child", "Child", base="Parent"))


def test_shape_and_target_kind_facts_are_closed_pairs():
    registry = builtin_registry()
    assert [shape_type(registry, s).full_name for s in ObjectShape] == [
        GAME_OBJECT,
        COMPONENT,
    ]
    assert [target_kind_type(registry, k).name for k in TargetKind] == ["Type", "String"]


def test_builtin_registries_are_independent():
    registry = builtin_registry()
    other = builtin_registry()
    other.register_component("Only", base=MONO_BEHAVIOUR)
    assert other.lookup("Only") is not None
    assert registry.lookup("Only") is None
