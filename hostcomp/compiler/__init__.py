from .core import ComponentCompiler
from .definition import DefinitionCompiler, DuplicatePolicy

__all__ = ["ComponentCompiler", "DefinitionCompiler", "DuplicatePolicy"]
