import sys
import textwrap
import types

import pytest

from fake_host import CountingIsinstance, host_namespace
from hostcomp.compiler import ComponentCompiler
from hostcomp.py_generator import PyGenerator


def generate_source(source: str, **options) -> str:
    module_ir = ComponentCompiler().compile(textwrap.dedent(source), **options)
    return PyGenerator().generate(module_ir, host_module=None)


@pytest.fixture
def load_generated(monkeypatch):
    """Execute generated code as a registered module over the fake host."""

    def load(code: str, name: str = "generated_components", module=None):
        if module is None:
            module = types.ModuleType(name)
            module.__dict__.update(host_namespace())
            module.__dict__["isinstance"] = CountingIsinstance()
            monkeypatch.setitem(sys.modules, name, module)
        exec(compile(code, f"<{name}>", "exec"), module.__dict__)
        return module

    return load


@pytest.fixture
def load_components(load_generated):
    """Compile DSL source and load the generated module."""

    def load(source: str, **options):
        return load_generated(generate_source(source, **options))

    return load
