import ast
from typing import List, Optional

from hostcomp.errors import DSLValidationError


def _is_docstring_expr(node: ast.AST) -> bool:
    return isinstance(node, ast.Expr) and isinstance(node.value, ast.Constant) and isinstance(
        node.value.value, str
    )


def _format_syntax_error(exc: SyntaxError, source: str) -> str:
    line = exc.lineno or 0
    col = exc.offset or 0
    snippet = (exc.text or "").strip()
    if not snippet and line > 0:
        lines = source.splitlines()
        if line <= len(lines):
            snippet = lines[line - 1].strip()
    message = f"Invalid Python syntax: {exc.msg}"
    if line > 0:
        message += f"\nLocation: line {line}, column {col if col > 0 else 1}"
    if snippet:
        message += f"\nCode: {snippet}"
    return message


def _dotted_name(node: ast.AST) -> Optional[str]:
    # Supports both:
    #   GameObject
    #   UnityEngine.GameObject
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        owner = _dotted_name(node.value)
        if owner is None:
            return None
        return f"{owner}.{node.attr}"
    return None


def _expect_dotted_name(node: ast.AST, label: str) -> str:
    name = _dotted_name(node)
    if name is None:
        raise DSLValidationError(f"Expected {label} name.", node=node)
    return name


def _optional_type_designator(annotation: Optional[ast.AST]) -> Optional[str]:
    """Return the designator written in an annotation; ``Any`` means untyped."""
    if annotation is None:
        return None
    if isinstance(annotation, ast.Constant) and isinstance(annotation.value, str):
        designator = annotation.value
    else:
        designator = _expect_dotted_name(annotation, "type")
    if designator in {"Any", "typing.Any"}:
        return None
    return designator


def _ast_assigned_names(nodes: List[ast.stmt]) -> List[str]:
    """Names bound anywhere inside raw statements (loop bodies, match arms)."""
    ordered: List[str] = []
    for node in nodes:
        for child in ast.walk(node):
            name = None
            if isinstance(child, ast.Name) and isinstance(child.ctx, ast.Store):
                name = child.id
            elif isinstance(child, ast.MatchAs) and child.name is not None:
                name = child.name
            if name is not None and name not in ordered:
                ordered.append(name)
    return ordered


__all__ = [
    "_is_docstring_expr",
    "_format_syntax_error",
    "_dotted_name",
    "_expect_dotted_name",
    "_optional_type_designator",
    "_ast_assigned_names",
]
