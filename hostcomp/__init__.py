"""Public Python API for hostcomp.

Compiles component definitions written in Python syntax into Python modules
for the host engine, specializing type dispatches and component lookups where
static types allow it.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from hostcomp.compiler import ComponentCompiler, DefinitionCompiler, DuplicatePolicy
from hostcomp.errors import (
    DSLError,
    DSLValidationError,
    DuplicateMessageError,
    DuplicateMessageWarning,
    MissingInterfaceError,
    UnresolvedTypeError,
)
from hostcomp.exporter import (
    compile_components,
    export_components,
    module_to_dict,
    module_to_ir_dict,
)
from hostcomp.message_registry import MessageRegistry
from hostcomp.py_generator import PyGenerator
from hostcomp.specialize import INFERENCE_LOG, InferenceLog

try:
    __version__: str = version("hostcomp")
except PackageNotFoundError:  # pragma: no cover - editable local fallback
    __version__ = "0.1.0"


__all__ = [
    "__version__",
    "ComponentCompiler",
    "DefinitionCompiler",
    "DuplicatePolicy",
    "DSLError",
    "DSLValidationError",
    "DuplicateMessageError",
    "DuplicateMessageWarning",
    "MissingInterfaceError",
    "UnresolvedTypeError",
    "MessageRegistry",
    "PyGenerator",
    "INFERENCE_LOG",
    "InferenceLog",
    "compile_components",
    "export_components",
    "module_to_dict",
    "module_to_ir_dict",
]
