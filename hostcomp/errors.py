import ast
import contextvars
from contextlib import contextmanager
from typing import Iterator, Optional, TypeVar

_T = TypeVar("_T")

_SOURCE: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "hostcomp_source", default=None
)
_NODE: contextvars.ContextVar[Optional[ast.AST]] = contextvars.ContextVar(
    "hostcomp_node", default=None
)


def _first_code_line(source: str, node: ast.AST, line_no: int) -> Optional[str]:
    segment = ast.get_source_segment(source, node)
    if not segment or not segment.strip():
        lines = source.splitlines()
        if not 0 < line_no <= len(lines):
            return None
        segment = lines[line_no - 1]
    # Classes and methods span many lines; the header is enough.
    header = segment.strip().splitlines()
    return header[0] if header else None


def _locate(
    message: str,
    *,
    source: Optional[str] = None,
    node: Optional[ast.AST] = None,
) -> str:
    node = node if node is not None else _NODE.get()
    line = getattr(node, "lineno", None)
    if line is None:
        return message

    column = (getattr(node, "col_offset", None) or 0) + 1
    details = [f"Location: line {line}, column {column}"]
    source = source if source is not None else _SOURCE.get()
    if source is not None:
        code = _first_code_line(source, node, line)
        if code:
            details.append(f"Code: {code}")
    return "\n".join([message, *details])


def format_dsl_diagnostic(message: str, *, node: Optional[ast.AST] = None) -> str:
    """Attach best-effort source context to a warning diagnostic string."""
    return _locate(message, node=node)


@contextmanager
def _scoped(var: "contextvars.ContextVar[_T]", value: _T) -> Iterator[None]:
    token = var.set(value)
    try:
        yield
    finally:
        var.reset(token)


def dsl_source_context(source: str):
    """Make ``source`` the text that diagnostics quote from."""
    return _scoped(_SOURCE, source)


def dsl_node_context(node: Optional[ast.AST]):
    """Make ``node`` the default location of errors raised inside the block."""
    return _scoped(_NODE, node)


class DSLError(Exception):
    """Base error for component expansion."""


class DSLValidationError(DSLError):
    """Raised when component source violates the language rules."""

    def __init__(self, message: str, *, node: Optional[ast.AST] = None):
        super().__init__(_locate(message, node=node))


class UnresolvedTypeError(DSLValidationError):
    """A type designator does not name a known host type."""


class MissingInterfaceError(DSLValidationError):
    """A method has neither a known message name nor an explicit interface."""


class DuplicateMessageError(DSLValidationError):
    """Raised for duplicate method declarations under the strict policy."""


class DuplicateMessageWarning(UserWarning):
    """Emitted when one interface method is declared more than once."""
