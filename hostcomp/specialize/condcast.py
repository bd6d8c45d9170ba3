"""Type-dispatch compilation with static pruning.

A dispatch is an ordered list of ``(type, branch)`` clauses plus an optional
default. When the subject's static type is known, branches that can never run
are dropped and an exact type match collapses the dispatch to a single branch
with no runtime test at all.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from hostcomp.ir import (
    Assign,
    Const,
    Expr,
    If,
    IfExpr,
    IsInstance,
    Let,
    Stmt,
    Var,
)
from hostcomp.specialize.ranker import INFERENCE_LOG, InferenceLog, most_specific
from hostcomp.specialize.resolver import TypeEnv, resolve_type
from hostcomp.typesys import HostType, TypeRegistry

BranchBuilder = Callable[[TypeEnv], Any]


class CastKind(Enum):
    EXACT = "exact"
    PRUNED = "pruned"
    DEFAULT = "default"
    FULL = "full"


@dataclass(frozen=True)
class TypeClause:
    designator: str
    build: BranchBuilder


@dataclass(frozen=True)
class ResolvedClause:
    host_type: HostType
    clause: TypeClause


@dataclass(frozen=True)
class CastPlan:
    kind: CastKind
    static_type: Optional[HostType]
    clauses: Tuple[ResolvedClause, ...]

    @property
    def type_tests(self) -> int:
        """Worst-case number of runtime type tests the lowered code performs."""
        if self.kind in (CastKind.EXACT, CastKind.DEFAULT):
            return 0
        return len(self.clauses)


class CondCastCompiler:
    def __init__(self, registry: TypeRegistry, log: Optional[InferenceLog] = None):
        self.registry = registry
        self.log = log if log is not None else INFERENCE_LOG

    def plan(
        self,
        value: Expr,
        clauses: Sequence[TypeClause],
        env: TypeEnv,
        bind_type: Optional[HostType] = None,
    ) -> CastPlan:
        """Decide which clauses survive for ``value`` under ``env``."""
        resolved = tuple(
            ResolvedClause(self.registry.ensure_type(clause.designator), clause)
            for clause in clauses
        )
        static_type = most_specific(
            [resolve_type(value, env, self.registry), bind_type], self.registry
        )
        self.log.append(static_type)

        if static_type is None:
            return CastPlan(CastKind.FULL, None, resolved)

        # An exact clause wins even over earlier clauses naming subtypes of T.
        for candidate in resolved:
            if candidate.host_type.full_name == static_type.full_name:
                return CastPlan(CastKind.EXACT, static_type, (candidate,))

        survivors: List[ResolvedClause] = []
        for candidate in resolved:
            if not self.registry.are_related(static_type, candidate.host_type):
                continue
            survivors.append(candidate)
            if self.registry.is_subtype_or_equal(static_type, candidate.host_type):
                # Always matches a non-null value; nothing after it can run.
                break

        if not survivors:
            return CastPlan(CastKind.DEFAULT, static_type, ())
        return CastPlan(CastKind.PRUNED, static_type, tuple(survivors))

    def compile_stmt(
        self,
        value: Expr,
        bind: str,
        clauses: Sequence[TypeClause],
        default: Optional[BranchBuilder],
        env: TypeEnv,
        *,
        bind_type: Optional[HostType] = None,
    ) -> List[Stmt]:
        plan = self.plan(value, clauses, env, bind_type)
        subject = Var(bind)
        head: List[Stmt] = [] if value == subject else [Assign(subject, value)]

        if plan.kind == CastKind.EXACT:
            (only,) = plan.clauses
            return head + list(only.clause.build(env.bind(bind, only.host_type)))

        default_body: List[Stmt] = []
        if default is not None:
            default_body = list(default(env.bind(bind, plan.static_type)))

        if plan.kind == CastKind.DEFAULT:
            return head + default_body

        bodies = [
            list(rc.clause.build(env.bind(bind, rc.host_type))) for rc in plan.clauses
        ]
        chain = default_body
        for rc, body in reversed(list(zip(plan.clauses, bodies))):
            test = IsInstance(subject, rc.host_type.full_name, rc.host_type.emit_name)
            chain = [If(condition=test, body=body, orelse=chain)]
        return head + chain

    def compile_expr(
        self,
        value: Expr,
        bind: str,
        clauses: Sequence[TypeClause],
        default: Optional[BranchBuilder],
        env: TypeEnv,
        *,
        bind_type: Optional[HostType] = None,
    ) -> Expr:
        plan = self.plan(value, clauses, env, bind_type)
        subject = Var(bind)

        if plan.kind == CastKind.EXACT:
            (only,) = plan.clauses
            body = only.clause.build(env.bind(bind, only.host_type))
        else:
            fallback: Expr = Const(None)
            if default is not None:
                fallback = default(env.bind(bind, plan.static_type))
            if plan.kind == CastKind.DEFAULT:
                body = fallback
            else:
                branches = [
                    rc.clause.build(env.bind(bind, rc.host_type)) for rc in plan.clauses
                ]
                body = fallback
                for rc, branch in reversed(list(zip(plan.clauses, branches))):
                    test = IsInstance(
                        subject, rc.host_type.full_name, rc.host_type.emit_name
                    )
                    body = IfExpr(condition=test, then=branch, orelse=body)

        if value == subject:
            return body
        return Let(bindings=[(bind, value)], body=body)
