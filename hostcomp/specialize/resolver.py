"""Static type facts for expressions inside one definition."""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional

from hostcomp.host_model import BOOLEAN, INT32, SINGLE, STRING, TYPE
from hostcomp.ir import Annotated, Attr, Const, Expr, TypeRef, Var
from hostcomp.typesys import HostType, TypeRegistry


def _empty_mapping() -> Mapping[str, Optional[HostType]]:
    return MappingProxyType({})


@dataclass(frozen=True)
class TypeEnv:
    """Immutable lexical environment: binding name -> optional static type."""

    locals: Mapping[str, Optional[HostType]] = field(default_factory=_empty_mapping)
    declared: FrozenSet[str] = frozenset()
    globals: Mapping[str, Optional[HostType]] = field(default_factory=_empty_mapping)
    callables: FrozenSet[str] = frozenset()
    host_types: FrozenSet[str] = frozenset()

    def bind(
        self,
        name: str,
        host_type: Optional[HostType],
        *,
        declared: bool = False,
    ) -> "TypeEnv":
        updated = dict(self.locals)
        updated[name] = host_type
        return replace(
            self,
            locals=MappingProxyType(updated),
            declared=(self.declared | {name}) if declared else self.declared,
        )

    def forget(self, names: Iterable[str]) -> "TypeEnv":
        """Drop static knowledge of undeclared ``names`` (keeps them bound)."""
        updated = dict(self.locals)
        for name in names:
            if name not in self.declared:
                updated[name] = None
        return replace(self, locals=MappingProxyType(updated))

    def is_local(self, name: str) -> bool:
        return name in self.locals

    def local_type(self, name: str) -> Optional[HostType]:
        return self.locals.get(name)

    def declared_type(self, name: str) -> Optional[HostType]:
        if name not in self.declared:
            return None
        return self.locals.get(name)

    def knows(self, name: str) -> bool:
        return (
            name in self.locals
            or name in self.globals
            or name in self.callables
            or name in self.host_types
        )


def merge_envs(base: TypeEnv, *branches: TypeEnv) -> TypeEnv:
    """Join branch environments: a name keeps its type only if every path agrees."""
    names = set(base.locals)
    for env in branches:
        names.update(env.locals)
    merged = {}
    for name in names:
        if name in base.declared:
            merged[name] = base.locals[name]
            continue
        seen = [env.locals[name] for env in branches if name in env.locals]
        if len(seen) == len(branches) and all(t == seen[0] for t in seen):
            merged[name] = seen[0]
        else:
            merged[name] = None
    declared = base.declared
    for env in branches:
        declared = declared | env.declared
    return replace(base, locals=MappingProxyType(merged), declared=declared)


def _literal_type(value, registry: TypeRegistry) -> Optional[HostType]:
    if value is None:
        return None
    if isinstance(value, bool):
        return registry.lookup(BOOLEAN)
    if isinstance(value, int):
        return registry.lookup(INT32)
    if isinstance(value, float):
        return registry.lookup(SINGLE)
    if isinstance(value, str):
        return registry.lookup(STRING)
    return None


def resolve_type(
    expr: Expr, env: TypeEnv, registry: TypeRegistry
) -> Optional[HostType]:
    """Return the statically known type of ``expr``, or ``None`` when unknown.

    An explicit annotation wins, then local bindings, then annotated
    non-callable globals. Calls are never tracked. Never raises.
    """
    if isinstance(expr, Annotated):
        return registry.lookup(expr.type_name)
    if isinstance(expr, Const):
        return _literal_type(expr.value, registry)
    if isinstance(expr, TypeRef):
        return registry.lookup(TYPE)
    if isinstance(expr, Var):
        if env.is_local(expr.name):
            return env.local_type(expr.name)
        if expr.name in env.callables:
            return None
        if expr.name in env.globals:
            return env.globals[expr.name]
        return None
    if isinstance(expr, Attr):
        owner = resolve_type(expr.obj, env, registry)
        if owner is None:
            return None
        return registry.field_type(owner, expr.field)
    return None
