import math
from dataclasses import fields, is_dataclass
from typing import List, Optional, Set

from hostcomp.compiler.constants import RUNTIME_ALIAS
from hostcomp.errors import DSLValidationError
from hostcomp.host_model import PYTHON_BUILTIN_NAMES
from hostcomp.ir import (
    Annotated,
    Assign,
    AugAssign,
    Attr,
    Binary,
    Break,
    Call,
    ComponentIR,
    Const,
    Continue,
    DictExpr,
    ExprStmt,
    For,
    FunctionIR,
    GlobalDecl,
    If,
    IfExpr,
    IsInstance,
    Let,
    ListExpr,
    MethodDecl,
    ModuleIR,
    Return,
    SubscriptExpr,
    TupleExpr,
    TypeRef,
    Unary,
    Var,
    While,
)

INDENT = "    "


class PyGenerator:
    def generate(
        self,
        module: ModuleIR,
        *,
        host_module: Optional[str] = "UnityEngine",
        source_name: Optional[str] = None,
    ) -> str:
        """Emit Python source for ``module``.

        Host names referenced by the module are imported from ``host_module``;
        pass ``None`` when the caller provides them in the execution namespace.
        """
        out = [self._emit_prelude(module, host_module, source_name)]
        for global_decl in module.globals:
            out.append(self._emit_global(global_decl))
        for helper in module.functions:
            out.append(self._emit_function(helper))
        for component in module.components:
            out.append(self._emit_component(component))
        return "\n\n\n".join(chunk for chunk in out if chunk) + "\n"

    def _emit_prelude(
        self,
        module: ModuleIR,
        host_module: Optional[str],
        source_name: Optional[str],
    ) -> str:
        origin = f" from {source_name}" if source_name else ""
        lines = [
            f"# Generated by hostcomp{origin}. Do not edit.",
            f"import hostcomp.runtime as {RUNTIME_ALIAS}",
        ]
        if host_module:
            names = sorted(_host_names(module))
            if names:
                lines.append(f"from {host_module} import {', '.join(names)}")
        return "\n".join(lines)

    def _emit_global(self, decl: GlobalDecl) -> str:
        value = self._emit_expr(decl.value) if decl.value is not None else "None"
        return f"{decl.name} = {value}"

    def _emit_function(self, helper: FunctionIR) -> str:
        params = ", ".join(param.name for param in helper.params)
        lines = [f"def {helper.name}({params}):"]
        lines.extend(self._emit_block(helper.body, indent=1))
        return "\n".join(lines)

    def _emit_component(self, component: ComponentIR) -> str:
        lines = [f"class {component.name}({component.base_py_name}):"]
        interfaces = [impl.interface for impl in component.implementations]
        field_names = [f.name for f in component.fields]
        lines.append(f"{INDENT}__interfaces__ = {_tuple_literal(interfaces)}")
        lines.append(f"{INDENT}__fields__ = {_tuple_literal(field_names)}")
        lines.append(
            f"{INDENT}__mutable_fields__ = "
            f"{_tuple_literal([f.name for f in component.fields if f.mutable])}"
        )
        lines.append(
            f"{INDENT}__native_fields__ = "
            f"{_tuple_literal([f.name for f in component.fields if f.native])}"
        )
        lines.append(
            f"{INDENT}__hidden_fields__ = "
            f"{_tuple_literal([f.name for f in component.fields if f.hidden])}"
        )
        field_types = ", ".join(
            f"{f.name!r}: {f.type_name!r}" for f in component.fields
        )
        lines.append(f"{INDENT}__field_types__ = {{{field_types}}}")

        # Class-level defaults keep every field readable before __init__ runs.
        for field_decl in component.fields:
            lines.append(f"{INDENT}{field_decl.name} = None")

        lines.append("")
        lines.append(f"{INDENT}def __init__(self, *args, **kwargs):")
        lines.append(f"{INDENT * 2}super().__init__(*args, **kwargs)")
        for field_decl in component.fields:
            if field_decl.default is not None:
                lines.append(
                    f"{INDENT * 2}self.{field_decl.name} = {self._emit_expr(field_decl.default)}"
                )

        for impl in component.implementations:
            lines.append("")
            lines.append(f"{INDENT}# {impl.interface}")
            for index, method in enumerate(impl.methods):
                if index:
                    lines.append("")
                lines.extend(self._emit_method(method, indent=1))

        if component.constant:
            guarded = [f'if "{component.name}" not in globals():']
            guarded.extend(INDENT + line if line else line for line in lines)
            lines = guarded
        return "\n".join(lines)

    def _emit_method(self, method: MethodDecl, indent: int) -> List[str]:
        pad = INDENT * indent
        params = ", ".join(param.name for param in method.params)
        lines = [f"{pad}def {method.name}({params}):"]
        lines.extend(self._emit_block(method.body, indent=indent + 1))
        return lines

    def _emit_block(self, body, indent: int) -> List[str]:
        if not body:
            return [INDENT * indent + "pass"]
        lines: List[str] = []
        for stmt in body:
            lines.extend(self._emit_stmt(stmt, indent))
        return lines

    def _emit_stmt(self, stmt, indent: int) -> List[str]:
        pad = INDENT * indent

        if isinstance(stmt, Assign):
            return [pad + f"{self._emit_expr(stmt.target)} = {self._emit_expr(stmt.value)}"]

        if isinstance(stmt, AugAssign):
            return [
                pad
                + f"{self._emit_expr(stmt.target)} {stmt.op}= {self._emit_expr(stmt.value)}"
            ]

        if isinstance(stmt, ExprStmt):
            return [pad + self._emit_expr(stmt.value)]

        if isinstance(stmt, If):
            lines = [pad + f"if {self._emit_expr(stmt.condition)}:"]
            lines.extend(self._emit_block(stmt.body, indent + 1))
            orelse = stmt.orelse
            while len(orelse) == 1 and isinstance(orelse[0], If):
                nested = orelse[0]
                lines.append(pad + f"elif {self._emit_expr(nested.condition)}:")
                lines.extend(self._emit_block(nested.body, indent + 1))
                orelse = nested.orelse
            if orelse:
                lines.append(pad + "else:")
                lines.extend(self._emit_block(orelse, indent + 1))
            return lines

        if isinstance(stmt, While):
            lines = [pad + f"while {self._emit_expr(stmt.condition)}:"]
            lines.extend(self._emit_block(stmt.body, indent + 1))
            return lines

        if isinstance(stmt, For):
            lines = [pad + f"for {stmt.var} in {self._emit_expr(stmt.iterable)}:"]
            lines.extend(self._emit_block(stmt.body, indent + 1))
            return lines

        if isinstance(stmt, Return):
            if stmt.value is None:
                return [pad + "return"]
            return [pad + f"return {self._emit_expr(stmt.value)}"]

        if isinstance(stmt, Break):
            return [pad + "break"]

        if isinstance(stmt, Continue):
            return [pad + "continue"]

        raise DSLValidationError(f"Unsupported statement: {type(stmt).__name__}")

    def _emit_expr(self, expr) -> str:
        if isinstance(expr, Const):
            value = expr.value
            if isinstance(value, float) and not math.isfinite(value):
                return f"float({str(value)!r})"
            if value is None or isinstance(value, (bool, int, float, str)):
                return repr(value)
            raise DSLValidationError(f"Unsupported constant value: {value!r}")

        if isinstance(expr, Var):
            return expr.name

        if isinstance(expr, TypeRef):
            return expr.py_name

        if isinstance(expr, Attr):
            owner = self._emit_expr(expr.obj)
            if isinstance(expr.obj, Const):
                owner = f"({owner})"
            return f"{owner}.{expr.field}"

        if isinstance(expr, Call):
            args = ", ".join(self._emit_expr(arg) for arg in expr.args)
            return f"{self._emit_expr(expr.func)}({args})"

        if isinstance(expr, Binary):
            return f"({self._emit_expr(expr.left)} {expr.op} {self._emit_expr(expr.right)})"

        if isinstance(expr, Unary):
            if expr.op == "not":
                return f"(not {self._emit_expr(expr.value)})"
            return f"({expr.op}{self._emit_expr(expr.value)})"

        if isinstance(expr, IfExpr):
            return (
                f"({self._emit_expr(expr.then)} if {self._emit_expr(expr.condition)} "
                f"else {self._emit_expr(expr.orelse)})"
            )

        if isinstance(expr, IsInstance):
            return f"isinstance({self._emit_expr(expr.value)}, {expr.py_name})"

        if isinstance(expr, Annotated):
            return self._emit_expr(expr.value)

        if isinstance(expr, Let):
            # Bindings are evaluated once, left to right, before the body.
            parts = [f"({name} := {self._emit_expr(value)})" for name, value in expr.bindings]
            parts.append(self._emit_expr(expr.body))
            if len(parts) == 1:
                return parts[0]
            return f"({', '.join(parts)})[-1]"

        if isinstance(expr, ListExpr):
            return "[" + ", ".join(self._emit_expr(item) for item in expr.items) + "]"

        if isinstance(expr, TupleExpr):
            items = [self._emit_expr(item) for item in expr.items]
            if len(items) == 1:
                return f"({items[0]},)"
            return "(" + ", ".join(items) + ")"

        if isinstance(expr, DictExpr):
            pairs = [
                f"{self._emit_expr(key)}: {self._emit_expr(value)}"
                for key, value in zip(expr.keys, expr.values)
            ]
            return "{" + ", ".join(pairs) + "}"

        if isinstance(expr, SubscriptExpr):
            return f"{self._emit_expr(expr.value)}[{self._emit_expr(expr.index)}]"

        raise DSLValidationError(f"Unsupported expression: {type(expr).__name__}")


def _tuple_literal(names: List[str]) -> str:
    if len(names) == 1:
        return f"({names[0]!r},)"
    return "(" + ", ".join(repr(name) for name in names) + ")"


def _host_names(module: ModuleIR) -> Set[str]:
    """Names the generated module needs from the host module."""
    local = {component.name for component in module.components}
    names: Set[str] = set()
    for component in module.components:
        names.add(component.base_py_name)
    _collect_host_names([module.globals, module.functions, module.components], names)
    return {name for name in names if name not in local and name not in PYTHON_BUILTIN_NAMES}


def _collect_host_names(value, out: Set[str]) -> None:
    if isinstance(value, (TypeRef, IsInstance)):
        out.add(value.py_name)
    if is_dataclass(value):
        for item in fields(value):
            _collect_host_names(getattr(value, item.name), out)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _collect_host_names(item, out)
