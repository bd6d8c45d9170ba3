from hostcomp.host_model import GAME_OBJECT, builtin_registry
from hostcomp.ir import Annotated, Attr, Call, Const, TypeRef, Var
from hostcomp.specialize.resolver import TypeEnv, merge_envs, resolve_type


def _name(host_type):
    return host_type.full_name if host_type is not None else None


def test_explicit_annotation_wins_over_bindings():
    registry = builtin_registry()
    env = TypeEnv().bind("x", registry.ensure_type("Component"))
    expr = Annotated(Var("x"), "UnityEngine.Rigidbody")
    assert _name(resolve_type(expr, env, registry)) == "UnityEngine.Rigidbody"


def test_literals_carry_intrinsic_types():
    registry = builtin_registry()
    env = TypeEnv()
    assert _name(resolve_type(Const("Rigidbody"), env, registry)) == "System.String"
    assert _name(resolve_type(Const(3), env, registry)) == "System.Int32"
    assert _name(resolve_type(Const(1.5), env, registry)) == "System.Single"
    assert _name(resolve_type(Const(True), env, registry)) == "System.Boolean"
    assert resolve_type(Const(None), env, registry) is None


def test_type_reference_resolves_to_type():
    registry = builtin_registry()
    expr = TypeRef("UnityEngine.Rigidbody", "Rigidbody")
    assert _name(resolve_type(expr, TypeEnv(), registry)) == "System.Type"


def test_local_binding_shadows_global():
    registry = builtin_registry()
    env = TypeEnv(globals={"player": registry.ensure_type(GAME_OBJECT)})
    assert _name(resolve_type(Var("player"), env, registry)) == GAME_OBJECT

    shadowed = env.bind("player", None)
    assert resolve_type(Var("player"), shadowed, registry) is None


def test_callables_and_calls_are_unknown():
    registry = builtin_registry()
    env = TypeEnv(callables=frozenset({"spawn"}))
    assert resolve_type(Var("spawn"), env, registry) is None
    assert resolve_type(Call(Var("spawn"), []), env, registry) is None
    assert resolve_type(Var("nobody"), env, registry) is None


def test_field_access_uses_declared_field_types():
    registry = builtin_registry()
    env = TypeEnv().bind("body", registry.ensure_type("Rigidbody"))
    assert _name(resolve_type(Attr(Var("body"), "gameObject"), env, registry)) == GAME_OBJECT
    assert resolve_type(Attr(Var("body"), "unknown"), env, registry) is None
    assert resolve_type(Attr(Var("other"), "gameObject"), env, registry) is None


def test_bind_returns_a_new_snapshot():
    registry = builtin_registry()
    env = TypeEnv()
    bound = env.bind("x", registry.ensure_type("Transform"), declared=True)
    assert not env.is_local("x")
    assert bound.declared_type("x").name == "Transform"
    assert bound.forget(["x"]).local_type("x").name == "Transform"
    assert env.bind("y", registry.ensure_type("Transform")).forget(["y"]).local_type("y") is None


def test_merge_keeps_only_types_every_branch_agrees_on():
    registry = builtin_registry()
    transform = registry.ensure_type("Transform")
    rigidbody = registry.ensure_type("Rigidbody")
    base = TypeEnv().bind("a", transform)

    left = base.bind("b", rigidbody).bind("c", rigidbody)
    right = base.bind("b", rigidbody).bind("c", transform)
    merged = merge_envs(base, left, right)

    assert merged.local_type("a") == transform
    assert merged.local_type("b") == rigidbody
    assert merged.is_local("c") and merged.local_type("c") is None

    only_left = merge_envs(base, base.bind("d", rigidbody), base)
    assert only_left.is_local("d") and only_left.local_type("d") is None
