"""Normalization of component declarations into per-interface method buckets."""

import ast
import keyword
import warnings
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from hostcomp.errors import (
    DSLValidationError,
    DuplicateMessageError,
    DuplicateMessageWarning,
    MissingInterfaceError,
    format_dsl_diagnostic,
)
from hostcomp.host_model import MONO_BEHAVIOUR, STRING
from hostcomp.ir import (
    Attr,
    Call,
    ComponentIR,
    Const,
    ExprStmt,
    FieldDecl,
    InterfaceImpl,
    MethodDecl,
    Param,
    Stmt,
    Var,
)
from hostcomp.message_registry import SERIALIZATION_INTERFACE, MessageRegistry

from .constants import GENERATED_NAME_PREFIX, RUNTIME_ALIAS, SERIALIZED_DATA_FIELD

# Messages the host may invoke before the defining module has been (re)loaded.
REQUIRE_TRIGGER_MESSAGES = frozenset(
    {"Awake", "Start", "OnDrawGizmos", "OnDrawGizmosSelected"}
)


class DuplicatePolicy(Enum):
    KEEP_LAST = "keep_last"
    KEEP_FIRST = "keep_first"
    ERROR = "error"


@dataclass(frozen=True)
class MessageForm:
    """Shorthand declaration: a bare method named after a known message."""

    name: str
    params: List[Param]
    body: List[Stmt]
    node: Optional[ast.AST] = None


@dataclass(frozen=True)
class MethodForm:
    name: str
    params: List[Param]
    body: List[Stmt]
    node: Optional[ast.AST] = None


@dataclass(frozen=True)
class InterfaceGroup:
    """Explicit declaration: methods implementing one named interface."""

    interface: str
    methods: List[MethodForm]
    node: Optional[ast.AST] = None


Declaration = Union[MessageForm, InterfaceGroup]


def _runtime_call(function: str, *args) -> ExprStmt:
    return ExprStmt(
        Call(func=Attr(obj=Var(RUNTIME_ALIAS), field=function), args=list(args))
    )


@dataclass(frozen=True)
class _DefaultMethod:
    name: str
    interface: Optional[str] = None
    body: Tuple[Stmt, ...] = ()


_REQUIRED_DEFAULTS = (
    _DefaultMethod("Start"),
    _DefaultMethod("Awake"),
    _DefaultMethod(
        "OnAfterDeserialize",
        SERIALIZATION_INTERFACE,
        (_runtime_call("default_on_after_deserialize", Var("self")),),
    ),
    _DefaultMethod(
        "OnBeforeSerialize",
        SERIALIZATION_INTERFACE,
        (_runtime_call("default_on_before_serialize", Var("self")),),
    ),
)


class DefinitionCompiler:
    def __init__(
        self,
        messages: Optional[MessageRegistry] = None,
        *,
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.KEEP_LAST,
    ):
        self.messages = messages or MessageRegistry()
        self.duplicate_policy = duplicate_policy

    def compile(
        self,
        name: str,
        fields: Sequence[FieldDecl],
        declarations: Sequence[Declaration],
        *,
        constant: bool = True,
        module_name: Optional[str] = None,
        base: str = MONO_BEHAVIOUR,
        base_py_name: str = "MonoBehaviour",
    ) -> ComponentIR:
        """Build the canonical component definition.

        Shorthand message forms must precede explicit interface groups. Every
        component ends up with ``Start``/``Awake`` and both serialization
        callbacks, user-declared or defaulted.
        """
        shorthand, groups = self._split(declarations)
        methods = self._normalize_messages(shorthand) + self._normalize_groups(groups)
        methods = self._resolve_duplicates(name, methods, declarations)
        methods = self._ensure_defaults(methods)
        methods = [self._add_require_trigger(m, module_name) for m in methods]

        method_names = {m.name for m in methods}
        compiled_fields = self._compile_fields(name, fields, method_names, constant)

        return ComponentIR(
            name=name,
            base=base,
            base_py_name=base_py_name,
            fields=compiled_fields,
            implementations=_group_by_interface(methods),
            constant=constant,
        )

    def _split(
        self, declarations: Sequence[Declaration]
    ) -> Tuple[List[MessageForm], List[InterfaceGroup]]:
        shorthand: List[MessageForm] = []
        groups: List[InterfaceGroup] = []
        for decl in declarations:
            if isinstance(decl, MessageForm):
                if groups:
                    raise DSLValidationError(
                        f"Message '{decl.name}' must be declared before explicit interface groups.",
                        node=decl.node,
                    )
                shorthand.append(decl)
            elif isinstance(decl, InterfaceGroup):
                groups.append(decl)
            else:
                raise DSLValidationError(
                    f"Unsupported declaration: {type(decl).__name__}"
                )
        return shorthand, groups

    def _normalize_messages(self, forms: Sequence[MessageForm]) -> List[MethodDecl]:
        out: List[MethodDecl] = []
        for form in forms:
            interface = self.messages.interface_for(form.name)
            if interface is None:
                raise MissingInterfaceError(
                    f"Method '{form.name}' is not a known message. Declare it inside an explicit interface group.",
                    node=form.node,
                )
            out.append(MethodDecl(form.name, list(form.params), list(form.body), interface))
        return out

    def _normalize_groups(self, groups: Sequence[InterfaceGroup]) -> List[MethodDecl]:
        out: List[MethodDecl] = []
        for group in groups:
            interface = self.messages.canonical_interface(group.interface)
            for method in group.methods:
                out.append(
                    MethodDecl(method.name, list(method.params), list(method.body), interface)
                )
        return out

    def _resolve_duplicates(
        self,
        component: str,
        methods: List[MethodDecl],
        declarations: Sequence[Declaration],
    ) -> List[MethodDecl]:
        # One class namespace: a name declared twice keeps a single body even
        # when the declarations sit under different interfaces.
        nodes = _declaration_nodes(declarations)
        by_name: Dict[str, List[int]] = {}
        for index, method in enumerate(methods):
            by_name.setdefault(method.name, []).append(index)

        dropped = set()
        for method_name, indices in by_name.items():
            if len(indices) < 2:
                continue
            node = nodes.get(method_name)
            message = (
                f"Method '{method_name}' is declared {len(indices)} times "
                f"in component '{component}'."
            )
            if self.duplicate_policy == DuplicatePolicy.ERROR:
                raise DuplicateMessageError(message, node=node)
            if self.duplicate_policy == DuplicatePolicy.KEEP_FIRST:
                kept = indices[0]
                detail = "Keeping the first declaration."
            else:
                kept = indices[-1]
                detail = "Keeping the last declaration."
            warnings.warn(
                format_dsl_diagnostic(f"{message} {detail}", node=node),
                DuplicateMessageWarning,
                stacklevel=2,
            )
            dropped.update(i for i in indices if i != kept)
        return [m for i, m in enumerate(methods) if i not in dropped]

    def _ensure_defaults(self, methods: List[MethodDecl]) -> List[MethodDecl]:
        declared = {m.name for m in methods}
        out = list(methods)
        for default in _REQUIRED_DEFAULTS:
            if default.name in declared:
                continue
            interface = default.interface or self.messages.interface_for(default.name)
            if interface is None:
                raise MissingInterfaceError(
                    f"Default method '{default.name}' needs an interface or a known message name."
                )
            out.append(
                MethodDecl(default.name, [Param("self")], list(default.body), interface)
            )
        return out

    def _add_require_trigger(
        self, method: MethodDecl, module_name: Optional[str]
    ) -> MethodDecl:
        if method.name not in REQUIRE_TRIGGER_MESSAGES:
            return method
        module_expr = Const(module_name) if module_name else Var("__name__")
        trigger = _runtime_call("require_module", module_expr)
        return replace(method, body=[trigger] + list(method.body))

    def _compile_fields(
        self,
        component: str,
        fields: Sequence[FieldDecl],
        method_names: set,
        constant: bool,
    ) -> List[FieldDecl]:
        seen = set()
        out: List[FieldDecl] = []
        for field_decl in fields:
            field_name = field_decl.name
            if not field_name.isidentifier() or keyword.iskeyword(field_name):
                raise DSLValidationError(
                    f"Invalid field name '{field_name}' in component '{component}'."
                )
            if field_name.startswith(GENERATED_NAME_PREFIX):
                raise DSLValidationError(
                    f"Field '{field_name}' uses the reserved '{GENERATED_NAME_PREFIX}' prefix."
                )
            if field_name == SERIALIZED_DATA_FIELD:
                raise DSLValidationError(
                    f"Field '{SERIALIZED_DATA_FIELD}' is reserved for serialized state."
                )
            if field_name in seen:
                raise DSLValidationError(
                    f"Duplicate field '{field_name}' in component '{component}'."
                )
            if field_name in method_names:
                raise DSLValidationError(
                    f"Field '{field_name}' clashes with a method of component '{component}'."
                )
            seen.add(field_name)
            # The host writes fields directly after construction.
            out.append(replace(field_decl, mutable=True))
        if constant:
            out.append(
                FieldDecl(
                    SERIALIZED_DATA_FIELD,
                    type_name=STRING,
                    mutable=True,
                    hidden=True,
                    native=True,
                )
            )
        return out


def _declaration_nodes(declarations: Sequence[Declaration]) -> Dict[str, ast.AST]:
    nodes: Dict[str, ast.AST] = {}
    for decl in declarations:
        if isinstance(decl, MessageForm) and decl.node is not None:
            nodes[decl.name] = decl.node
        elif isinstance(decl, InterfaceGroup):
            for method in decl.methods:
                if method.node is not None:
                    nodes[method.name] = method.node
    return nodes


def _group_by_interface(methods: Sequence[MethodDecl]) -> List[InterfaceImpl]:
    buckets: Dict[str, List[MethodDecl]] = {}
    for method in methods:
        buckets.setdefault(method.interface, []).append(method)
    return [InterfaceImpl(interface, bucket) for interface, bucket in buckets.items()]
