import ast

from hostcomp.runtime import SERIALIZED_DATA_FIELD

_ALLOWED_BIN = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.FloorDiv: "//",
    ast.Mod: "%",
    ast.Pow: "**",
}

_ALLOWED_BOOL = {
    ast.And: "and",
    ast.Or: "or",
}

_ALLOWED_CMP = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
    ast.Is: "is",
    ast.IsNot: "is not",
    ast.In: "in",
    ast.NotIn: "not in",
}

_ALLOWED_UNARY = {
    ast.Not: "not",
    ast.UAdd: "+",
    ast.USub: "-",
}

BUILTIN_FUNCTIONS = frozenset(
    {
        "abs",
        "bool",
        "float",
        "int",
        "isinstance",
        "len",
        "list",
        "max",
        "min",
        "print",
        "range",
        "round",
        "str",
    }
)

ACCESSOR_NAME = "get_component"
CAST_NAME = "cast"
REDEFINABLE_DECORATOR = "redefinable"

GENERATED_NAME_PREFIX = "_hc_"
RUNTIME_ALIAS = "hostcomp_runtime"

__all__ = [
    "_ALLOWED_BIN",
    "_ALLOWED_BOOL",
    "_ALLOWED_CMP",
    "_ALLOWED_UNARY",
    "BUILTIN_FUNCTIONS",
    "ACCESSOR_NAME",
    "CAST_NAME",
    "REDEFINABLE_DECORATOR",
    "GENERATED_NAME_PREFIX",
    "RUNTIME_ALIAS",
    "SERIALIZED_DATA_FIELD",
]
