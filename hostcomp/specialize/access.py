"""Specialization of ``get_component(obj, target)``.

``obj`` is one of the two object shapes and ``target`` is either a type or a
component name. Static knowledge of either side removes one layer of runtime
dispatch; every branch is built through :class:`CondCastCompiler` so partial
knowledge collapses unreachable branches as well.
"""

from typing import Callable, List, Optional, Sequence, Tuple

from hostcomp.errors import DSLValidationError
from hostcomp.host_model import (
    ACCESS_METHOD,
    ObjectShape,
    TargetKind,
    shape_type,
    target_kind_type,
)
from hostcomp.ir import Attr, Call, Expr, Let, Var
from hostcomp.specialize.condcast import CondCastCompiler, TypeClause
from hostcomp.specialize.resolver import TypeEnv, resolve_type
from hostcomp.typesys import TypeRegistry


class AccessSpecializer:
    def __init__(
        self,
        registry: TypeRegistry,
        condcast: CondCastCompiler,
        gensym: Callable[[str], str],
    ):
        self.registry = registry
        self.condcast = condcast
        self.gensym = gensym

    def specialize(self, args: Sequence[Expr], env: TypeEnv) -> Expr:
        if len(args) != 2:
            raise DSLValidationError(
                "get_component expects exactly 2 arguments: (object, target)."
            )
        obj, target = args
        if isinstance(obj, Var) and isinstance(target, Var):
            return self._specialize_references(obj, target, env)
        return self._hoist_arguments(obj, target, env)

    def _hoist_arguments(self, obj: Expr, target: Expr, env: TypeEnv) -> Expr:
        # Each argument is evaluated exactly once, left to right, no matter
        # how many generated branches mention it.
        bindings: List[Tuple[str, Expr]] = []
        refs: List[Var] = []
        inner_env = env
        for arg, prefix in ((obj, "obj"), (target, "target")):
            if isinstance(arg, Var):
                refs.append(arg)
                continue
            temp = self.gensym(prefix)
            bindings.append((temp, arg))
            inner_env = inner_env.bind(temp, resolve_type(arg, env, self.registry))
            refs.append(Var(temp))
        body = self._specialize_references(refs[0], refs[1], inner_env)
        return Let(bindings=bindings, body=body)

    def _specialize_references(self, obj: Var, target: Var, env: TypeEnv) -> Expr:
        capable = self.known_implementer(obj, env)
        kind = self.target_kind(target, env)

        if capable and kind is not None:
            return _direct_call(obj, target)
        if capable:
            return self._dispatch_on_target_kind(
                target, env, lambda narrowed_target, _env: _direct_call(obj, narrowed_target)
            )
        if kind is not None:
            return self._dispatch_on_shape(
                obj, env, lambda narrowed_obj, _env: _direct_call(narrowed_obj, target)
            )
        return self._dispatch_on_shape(
            obj,
            env,
            lambda narrowed_obj, shape_env: self._dispatch_on_target_kind(
                target,
                shape_env,
                lambda narrowed_target, _env: _direct_call(narrowed_obj, narrowed_target),
            ),
        )

    def known_implementer(self, obj: Expr, env: TypeEnv) -> bool:
        """True when the static type of ``obj`` already answers the lookup."""
        host_type = resolve_type(obj, env, self.registry)
        return host_type is not None and self.registry.has_method(host_type, ACCESS_METHOD)

    def target_kind(self, target: Expr, env: TypeEnv) -> Optional[TargetKind]:
        host_type = resolve_type(target, env, self.registry)
        if host_type is None:
            return None
        for kind in TargetKind:
            if self.registry.is_subtype_or_equal(
                host_type, target_kind_type(self.registry, kind)
            ):
                return kind
        return None

    def _dispatch_on_shape(self, obj: Var, env: TypeEnv, build) -> Expr:
        bind = self.gensym("obj")
        clauses = [
            TypeClause(
                shape_type(self.registry, shape).full_name,
                lambda branch_env: build(Var(bind), branch_env),
            )
            for shape in ObjectShape
        ]
        return self.condcast.compile_expr(obj, bind, clauses, None, env)

    def _dispatch_on_target_kind(self, target: Var, env: TypeEnv, build) -> Expr:
        bind = self.gensym("target")
        clauses = [
            TypeClause(
                target_kind_type(self.registry, kind).full_name,
                lambda branch_env: build(Var(bind), branch_env),
            )
            for kind in TargetKind
        ]
        return self.condcast.compile_expr(target, bind, clauses, None, env)


def _direct_call(obj: Expr, target: Expr) -> Expr:
    return Call(func=Attr(obj=obj, field=ACCESS_METHOD), args=[target])
