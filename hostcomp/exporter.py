import json
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from hostcomp.compiler import ComponentCompiler
from hostcomp.compiler.definition import DuplicatePolicy
from hostcomp.ir import ComponentIR, ModuleIR
from hostcomp.message_registry import MessageRegistry
from hostcomp.py_generator import PyGenerator
from hostcomp.specialize.ranker import InferenceLog


def compile_components(
    source: str,
    source_path: Optional[str] = None,
    *,
    module_name: Optional[str] = None,
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.KEEP_LAST,
    extra_messages: Iterable[str] = (),
    inference_log: Optional[InferenceLog] = None,
) -> ModuleIR:
    """Compile component source into a :class:`ModuleIR`."""
    messages = MessageRegistry()
    for name in extra_messages:
        messages.register_message(name)
    compiler = ComponentCompiler(
        messages,
        duplicate_policy=duplicate_policy,
        inference_log=inference_log,
    )
    return compiler.compile(source, source_path=source_path, module_name=module_name)


def module_to_dict(module: ModuleIR) -> Dict[str, Any]:
    """Summarize a compiled module: components, fields and interfaces."""
    return {
        "module_name": module.module_name,
        "globals": [
            {"name": g.name, "type": g.type_name} for g in module.globals
        ],
        "functions": [fn.name for fn in module.functions],
        "components": [_component_to_dict(c) for c in module.components],
    }


def _component_to_dict(component: ComponentIR) -> Dict[str, Any]:
    return {
        "name": component.name,
        "base": component.base,
        "constant": component.constant,
        "fields": [
            {
                "name": f.name,
                "type": f.type_name,
                "mutable": f.mutable,
                "hidden": f.hidden,
                "native": f.native,
            }
            for f in component.fields
        ],
        "interfaces": {
            impl.interface: [method.name for method in impl.methods]
            for impl in component.implementations
        },
    }


def module_to_ir_dict(module: ModuleIR) -> Dict[str, Any]:
    """Serialize the full IR, tagging every node with its kind."""
    return {
        "globals": [_serialize_ir(g) for g in module.globals],
        "functions": [_serialize_ir(fn) for fn in module.functions],
        "components": [_serialize_ir(c) for c in module.components],
    }


def export_components(
    source: str,
    output_dir: str,
    source_path: Optional[str] = None,
    *,
    module_name: Optional[str] = None,
    host_module: Optional[str] = "UnityEngine",
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.KEEP_LAST,
    extra_messages: Iterable[str] = (),
    inference_log: Optional[InferenceLog] = None,
) -> ModuleIR:
    """Compile and write the generated module plus JSON summaries to ``output_dir``."""
    module = compile_components(
        source,
        source_path=source_path,
        module_name=module_name,
        duplicate_policy=duplicate_policy,
        extra_messages=extra_messages,
        inference_log=inference_log,
    )
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    stem = Path(source_path).stem if source_path else "components"
    code_path = out_dir / f"{stem}.py"
    spec_path = out_dir / "components.json"
    ir_path = out_dir / "components_ir.json"

    spec_path.write_text(
        json.dumps(module_to_dict(module), indent=2, sort_keys=True),
        encoding="utf-8",
    )
    ir_path.write_text(
        json.dumps(module_to_ir_dict(module), indent=2, sort_keys=True),
        encoding="utf-8",
    )

    generator = PyGenerator()
    code_path.write_text(
        generator.generate(
            module,
            host_module=host_module,
            source_name=Path(source_path).name if source_path else None,
        ),
        encoding="utf-8",
    )

    return module


def _serialize_ir(value):
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        data = {"node": type(value).__name__}
        for item in fields(value):
            data[item.name] = _serialize_ir(getattr(value, item.name))
        return data
    if isinstance(value, (list, tuple)):
        return [_serialize_ir(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _serialize_ir(v) for k, v in value.items()}
    return value
