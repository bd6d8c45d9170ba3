import textwrap

import pytest

from hostcomp.compiler import ComponentCompiler
from hostcomp.errors import DSLValidationError, MissingInterfaceError, UnresolvedTypeError
from hostcomp.ir import Assign, Attr, Call, ExprStmt, If, IsInstance, Let, Var
from hostcomp.specialize.ranker import InferenceLog


def compile_source(source: str, **options):
    log = options.pop("log", None)
    compiler = ComponentCompiler(inference_log=log if log is not None else InferenceLog())
    return compiler.compile(textwrap.dedent(source), **options)


def _method(module, component, name):
    for comp in module.components:
        if comp.name != component:
            continue
        for impl in comp.implementations:
            for method in impl.methods:
                if method.name == name:
                    return method
    raise AssertionError(f"{component}.{name} not found")


def _without_require(body):
    return [
        stmt
        for stmt in body
        if not (
            isinstance(stmt, ExprStmt)
            and isinstance(stmt.value, Call)
            and stmt.value.func == Attr(Var("hostcomp_runtime"), "require_module")
        )
    ]


def test_compile_component_with_fields_and_messages():
    module = compile_source(
        """
        \"\"\"Movement components.\"\"\"

        class Mover(MonoBehaviour):
            speed: float = 2.0
            target: GameObject
            notes: Any = []

            def Update(self):
                self.speed = self.speed + Time.deltaTime
        """,
        source_path="scenes/movement.py",
    )

    assert module.module_name == "movement"
    (mover,) = module.components
    assert mover.name == "Mover"
    assert mover.base == "UnityEngine.MonoBehaviour"
    assert [(f.name, f.type_name, f.native) for f in mover.fields] == [
        ("speed", "System.Single", True),
        ("target", "UnityEngine.GameObject", True),
        ("notes", None, False),
        ("_serialized_data", "System.String", True),
    ]
    update = _method(module, "Mover", "Update")
    assert [p.name for p in update.params] == ["self"]
    assert update.params[0].type_name == "Mover"


def test_match_on_field_type_collapses_to_the_exact_branch():
    log = InferenceLog()
    module = compile_source(
        """
        class Tracker(MonoBehaviour):
            def OnCollisionEnter(self, hit: Collision):
                other = hit.gameObject
                match other:
                    case Transform() as found:
                        print("transform")
                    case GameObject() as found:
                        print(found.tag)
        """,
        log=log,
    )

    body = _method(module, "Tracker", "OnCollisionEnter").body
    assert body[0] == Assign(Var("other"), Attr(Var("hit"), "gameObject"))
    assert body[1] == Assign(Var("found"), Var("other"))
    assert isinstance(body[2], ExprStmt)
    assert not any(isinstance(stmt, If) for stmt in body)
    assert log.snapshot() == ["UnityEngine.GameObject"]


def test_match_without_capture_uses_a_generated_binding():
    module = compile_source(
        """
        def find(name):
            return None

        class Finder(MonoBehaviour):
            def Start(self):
                match find("player"):
                    case Transform():
                        print("transform")
                    case _:
                        print("other")
        """
    )
    body = _without_require(_method(module, "Finder", "Start").body)
    assert isinstance(body[0], Assign)
    bind = body[0].target.name
    assert bind.startswith("_hc_cast")
    assert body[1].condition == IsInstance(Var(bind), "UnityEngine.Transform", "Transform")
    assert len(body[1].orelse) == 1


def test_annotated_local_and_cast_drive_pruning():
    log = InferenceLog()
    compile_source(
        """
        def find(name):
            return None

        class Picker(MonoBehaviour):
            def Update(self):
                body: Rigidbody = find("body")
                match body:
                    case Rigidbody() as b:
                        b.AddForce(1.0)
                match cast(Transform, find("t")):
                    case Transform() as t:
                        t.Rotate(1.0)
        """,
        log=log,
    )
    assert log.snapshot() == ["UnityEngine.Rigidbody", "UnityEngine.Transform"]


def test_loops_forget_types_assigned_in_their_body():
    log = InferenceLog()
    compile_source(
        """
        def next_object(current):
            return current

        class Walker(MonoBehaviour):
            target: GameObject

            def Update(self):
                current = self.target
                while current is not None:
                    match current:
                        case GameObject() as g:
                            print(g.tag)
                    current = next_object(current)
        """,
        log=log,
    )
    assert log.snapshot() == [None]


def test_if_branches_merge_types():
    log = InferenceLog()
    compile_source(
        """
        class Switcher(MonoBehaviour):
            target: GameObject
            body: Rigidbody

            def Update(self):
                if self.enabled:
                    thing = self.target
                else:
                    thing = self.body
                match thing:
                    case GameObject() as g:
                        print(g)
                same = self.target
                if self.enabled:
                    same = self.target
                match same:
                    case GameObject() as g:
                        print(g)
        """,
        log=log,
    )
    assert log.snapshot() == [None, "UnityEngine.GameObject"]


def test_get_component_with_known_receiver_and_literal_name():
    module = compile_source(
        """
        class Pusher(MonoBehaviour):
            def FixedUpdate(self):
                body = get_component(self, "Rigidbody")
                body.AddForce(1.0)
        """
    )
    assign = _method(module, "Pusher", "FixedUpdate").body[0]
    assert isinstance(assign.value, Let)
    ((temp, _),) = assign.value.bindings
    assert assign.value.body == Call(Attr(Var("self"), "GetComponent"), [Var(temp)])


def test_interface_groups_and_shorthand_messages():
    module = compile_source(
        """
        class Health(MonoBehaviour):
            hp: int = 10

            def Awake(self):
                self.hp = 10

            class IDamageable:
                def Damage(self, amount: int):
                    self.hp -= amount

            class Receiver(UnityEngine.ISerializationCallbackReceiver):
                def OnBeforeSerialize(self):
                    pass
        """
    )
    (health,) = module.components
    assert [impl.interface for impl in health.implementations] == [
        "hostcomp.messages.IAwake",
        "IDamageable",
        "UnityEngine.ISerializationCallbackReceiver",
        "hostcomp.messages.IStart",
    ]
    damage = _method(module, "Health", "Damage")
    assert damage.params[1].type_name == "System.Int32"


def test_redefinable_decorator_disables_the_hot_reload_guard():
    module = compile_source(
        """
        @redefinable
        class Scratch(MonoBehaviour):
            def Update(self):
                pass
        """
    )
    (scratch,) = module.components
    assert not scratch.constant
    assert [f.name for f in scratch.fields] == []


def test_globals_and_helpers_are_collected():
    module = compile_source(
        """
        player: GameObject
        gravity: float = 9.8

        def fall(speed):
            return speed * gravity

        class Faller(MonoBehaviour):
            def Update(self):
                match player:
                    case GameObject() as p:
                        print(fall(1.0))
        """
    )
    assert [(g.name, g.type_name) for g in module.globals] == [
        ("player", "UnityEngine.GameObject"),
        ("gravity", "System.Single"),
    ]
    assert [fn.name for fn in module.functions] == ["fall"]


def test_component_without_methods_warns():
    with pytest.warns(UserWarning, match="declares no methods"):
        compile_source(
            """
            class Data(MonoBehaviour):
                value: int = 1
            """
        )


def test_unused_helper_warns():
    with pytest.warns(UserWarning, match="Helper 'unused' is never called"):
        compile_source(
            """
            def unused():
                return 1

            class Idle(MonoBehaviour):
                def Update(self):
                    pass
            """
        )


def test_reject_empty_source():
    with pytest.raises(DSLValidationError, match="Source is empty"):
        compile_source("   ")


def test_reject_syntax_error_with_location():
    with pytest.raises(DSLValidationError, match="Invalid Python syntax") as exc:
        compile_source(
            """
            class Broken(MonoBehaviour)
                pass
            """
        )
    assert "Location: line" in str(exc.value)


def test_reject_import_statement():
    with pytest.raises(DSLValidationError, match="Unsupported top-level statement"):
        compile_source(
            """
            import os
            """
        )


def test_reject_unannotated_module_value():
    with pytest.raises(DSLValidationError, match="must be annotated"):
        compile_source(
            """
            speed = 1.0
            """
        )


def test_reject_unknown_variable_with_source_context():
    with pytest.raises(DSLValidationError, match="Unknown variable 'ghost'") as exc:
        compile_source(
            """
            class Haunted(MonoBehaviour):
                def Update(self):
                    print(ghost)
            """
        )
    assert "Location: line 4" in str(exc.value)
    assert "Code: ghost" in str(exc.value)


def test_reject_unknown_annotation_type():
    with pytest.raises(UnresolvedTypeError, match="'Spaceship' does not resolve"):
        compile_source(
            """
            class Pilot(MonoBehaviour):
                ship: Spaceship
            """
        )


def test_reject_unknown_match_type():
    with pytest.raises(UnresolvedTypeError, match="'Spaceship' does not resolve"):
        compile_source(
            """
            class Pilot(MonoBehaviour):
                def Update(self):
                    match self:
                        case Spaceship() as s:
                            pass
            """
        )


def test_reject_non_monobehaviour_base():
    with pytest.raises(DSLValidationError, match="must extend MonoBehaviour"):
        compile_source(
            """
            class Wrong(Transform):
                def Update(self):
                    pass
            """
        )


def test_reject_unknown_shorthand_message():
    with pytest.raises(MissingInterfaceError, match="'Jump' is not a known message"):
        compile_source(
            """
            class Jumper(MonoBehaviour):
                def Jump(self):
                    pass
            """
        )


def test_reject_shorthand_after_interface_group():
    with pytest.raises(DSLValidationError, match="before explicit interface groups"):
        compile_source(
            """
            class Mixed(MonoBehaviour):
                class IThing:
                    def Thing(self):
                        pass

                def Update(self):
                    pass
            """
        )


def test_reject_match_guards():
    with pytest.raises(DSLValidationError, match="Guards are not supported"):
        compile_source(
            """
            class Guarded(MonoBehaviour):
                def Update(self):
                    match self:
                        case Component() as c if c.enabled:
                            pass
            """
        )


def test_reject_mismatched_capture_names():
    with pytest.raises(DSLValidationError, match="must capture the same name"):
        compile_source(
            """
            class Capture(MonoBehaviour):
                def Update(self):
                    match self:
                        case Transform() as a:
                            pass
                        case Component() as b:
                            pass
            """
        )


def test_reject_default_case_before_last():
    with pytest.raises(DSLValidationError, match="must be the last case"):
        compile_source(
            """
            class Defaulted(MonoBehaviour):
                def Update(self):
                    match self:
                        case _:
                            pass
                        case Component() as c:
                            pass
            """
        )


def test_reject_reserved_generated_prefix():
    with pytest.raises(DSLValidationError, match="reserved '_hc_' prefix"):
        compile_source(
            """
            class Sneaky(MonoBehaviour):
                def Update(self):
                    _hc_cast1 = 1
            """
        )


def test_reject_break_outside_loop():
    with pytest.raises(DSLValidationError, match="only allowed inside loops"):
        compile_source(
            """
            class Breaker(MonoBehaviour):
                def Update(self):
                    break
            """
        )


def test_reject_conflicting_annotation():
    with pytest.raises(DSLValidationError, match="Conflicting annotation for 'x'"):
        compile_source(
            """
            class Conflicted(MonoBehaviour):
                def Update(self):
                    x: Transform = self.transform
                    x: Rigidbody = None
            """
        )


def test_reject_get_component_with_wrong_arity():
    with pytest.raises(DSLValidationError, match="exactly 2 arguments"):
        compile_source(
            """
            class Lookup(MonoBehaviour):
                def Update(self):
                    get_component(self)
            """
        )
