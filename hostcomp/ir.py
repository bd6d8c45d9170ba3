from dataclasses import dataclass
from typing import List, Optional, Tuple, Union


# Expressions

class Expr:
    pass


@dataclass(frozen=True)
class Const(Expr):
    value: Union[int, float, str, bool, None]


@dataclass(frozen=True)
class Var(Expr):
    name: str


@dataclass(frozen=True)
class TypeRef(Expr):
    """A host type used as a value, e.g. the ``Rigidbody`` in a lookup."""

    type_name: str
    py_name: str


@dataclass(frozen=True)
class Attr(Expr):
    obj: Expr
    field: str


@dataclass(frozen=True)
class Call(Expr):
    func: Expr
    args: List[Expr]


@dataclass(frozen=True)
class Unary(Expr):
    op: str
    value: Expr


@dataclass(frozen=True)
class Binary(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class IfExpr(Expr):
    condition: Expr
    then: Expr
    orelse: Expr


@dataclass(frozen=True)
class IsInstance(Expr):
    value: Expr
    type_name: str
    py_name: str


@dataclass(frozen=True)
class Annotated(Expr):
    """Explicit static type attached to an expression; no runtime effect."""

    value: Expr
    type_name: str


@dataclass(frozen=True)
class Let(Expr):
    """Evaluate each binding once, left to right, then the body."""

    bindings: List[Tuple[str, Expr]]
    body: Expr


@dataclass(frozen=True)
class ListExpr(Expr):
    items: List[Expr]


@dataclass(frozen=True)
class TupleExpr(Expr):
    items: List[Expr]


@dataclass(frozen=True)
class DictExpr(Expr):
    keys: List[Expr]
    values: List[Expr]


@dataclass(frozen=True)
class SubscriptExpr(Expr):
    value: Expr
    index: Expr


# Statements

class Stmt:
    pass


@dataclass(frozen=True)
class Assign(Stmt):
    target: Expr
    value: Expr


@dataclass(frozen=True)
class AugAssign(Stmt):
    target: Expr
    op: str
    value: Expr


@dataclass(frozen=True)
class ExprStmt(Stmt):
    value: Expr


@dataclass(frozen=True)
class If(Stmt):
    condition: Expr
    body: List[Stmt]
    orelse: List[Stmt]


@dataclass(frozen=True)
class While(Stmt):
    condition: Expr
    body: List[Stmt]


@dataclass(frozen=True)
class For(Stmt):
    var: str
    iterable: Expr
    body: List[Stmt]


@dataclass(frozen=True)
class Return(Stmt):
    value: Optional[Expr] = None


@dataclass(frozen=True)
class Break(Stmt):
    pass


@dataclass(frozen=True)
class Continue(Stmt):
    pass


# Declarations

@dataclass(frozen=True)
class Param:
    name: str
    type_name: Optional[str] = None


@dataclass(frozen=True)
class FieldDecl:
    name: str
    type_name: Optional[str] = None
    default: Optional[Expr] = None
    mutable: bool = True
    hidden: bool = False
    native: bool = False


@dataclass(frozen=True)
class MethodDecl:
    name: str
    params: List[Param]
    body: List[Stmt]
    interface: Optional[str] = None


@dataclass(frozen=True)
class InterfaceImpl:
    interface: str
    methods: List[MethodDecl]


@dataclass(frozen=True)
class ComponentIR:
    name: str
    base: str
    base_py_name: str
    fields: List[FieldDecl]
    implementations: List[InterfaceImpl]
    constant: bool = True


@dataclass(frozen=True)
class FunctionIR:
    name: str
    params: List[Param]
    body: List[Stmt]


@dataclass(frozen=True)
class GlobalDecl:
    name: str
    type_name: Optional[str] = None
    value: Optional[Expr] = None


@dataclass(frozen=True)
class ModuleIR:
    globals: List[GlobalDecl]
    functions: List[FunctionIR]
    components: List[ComponentIR]
    module_name: Optional[str] = None
