import json
import textwrap

import pytest

from hostcomp.build_components import main
from hostcomp.compiler import DuplicatePolicy
from hostcomp.errors import DuplicateMessageError
from hostcomp.exporter import compile_components, export_components, module_to_dict
from hostcomp.specialize.ranker import InferenceLog

SOURCE = textwrap.dedent(
    """
    class Mover(MonoBehaviour):
        speed: float = 2.0
        target: Any

        def Update(self):
            match self.target:
                case Transform() as t:
                    t.Translate(self.speed)

        class IMovable:
            def Move(self, amount: float):
                self.speed = amount
    """
)


def test_export_components_writes_module_and_summaries(tmp_path):
    export_components(SOURCE, str(tmp_path), source_path="scenes/mover.py")

    code_path = tmp_path / "mover.py"
    summary_path = tmp_path / "components.json"
    ir_path = tmp_path / "components_ir.json"
    assert code_path.exists()
    assert summary_path.exists()
    assert ir_path.exists()

    code = code_path.read_text(encoding="utf-8")
    assert "from UnityEngine import MonoBehaviour, Transform" in code
    assert "hostcomp_runtime.require_module('mover')" in code

    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    (mover,) = summary["components"]
    assert summary["module_name"] == "mover"
    assert mover["constant"] is True
    assert mover["interfaces"]["IMovable"] == ["Move"]
    assert mover["interfaces"]["hostcomp.messages.IUpdate"] == ["Update"]
    assert [f["name"] for f in mover["fields"]] == ["speed", "target", "_serialized_data"]

    ir = json.loads(ir_path.read_text(encoding="utf-8"))
    update = ir["components"][0]["implementations"][0]["methods"][0]
    assert update["node"] == "MethodDecl"
    assert update["body"][0]["node"] == "Assign"
    assert update["body"][1]["condition"]["node"] == "IsInstance"


def test_export_without_source_path_uses_default_names(tmp_path):
    export_components(SOURCE, str(tmp_path), host_module=None)
    code = (tmp_path / "components.py").read_text(encoding="utf-8")
    assert "from UnityEngine" not in code
    assert "hostcomp_runtime.require_module(__name__)" in code


def test_compile_components_accepts_extra_messages_and_policy():
    source = textwrap.dedent(
        """
        class Jumper(MonoBehaviour):
            def OnJump(self):
                pass

            def OnJump(self):
                pass
        """
    )
    module = compile_components(
        source,
        extra_messages=["OnJump"],
        duplicate_policy=DuplicatePolicy.KEEP_FIRST,
    )
    interfaces = module_to_dict(module)["components"][0]["interfaces"]
    assert interfaces["hostcomp.messages.IOnJump"] == ["OnJump"]

    with pytest.raises(DuplicateMessageError):
        compile_components(
            source,
            extra_messages=["OnJump"],
            duplicate_policy=DuplicatePolicy.ERROR,
        )


def test_compile_components_records_inference_log():
    log = InferenceLog()
    compile_components(SOURCE, inference_log=log)
    assert log.snapshot() == [None]


def test_cli_builds_outputs_and_prints_inference_log(tmp_path, capsys):
    source_path = tmp_path / "mover.py"
    source_path.write_text(SOURCE, encoding="utf-8")
    output_dir = tmp_path / "build"

    exit_code = main(
        [
            str(source_path),
            "--output",
            str(output_dir),
            "--module-name",
            "game.mover",
            "--inference-log",
        ]
    )

    assert exit_code == 0
    assert (output_dir / "mover.py").exists()
    code = (output_dir / "mover.py").read_text(encoding="utf-8")
    assert "require_module('game.mover')" in code
    out = capsys.readouterr().out
    assert "Generated 1 component(s)" in out
    assert "dispatch 1: unknown" in out


def test_cli_reports_compile_errors(tmp_path, capsys):
    source_path = tmp_path / "broken.py"
    source_path.write_text("import os\n", encoding="utf-8")

    exit_code = main([str(source_path), "--output", str(tmp_path / "build")])

    assert exit_code == 1
    assert "Unsupported top-level statement" in capsys.readouterr().err


def test_cli_reports_missing_source(tmp_path, capsys):
    exit_code = main([str(tmp_path / "missing.py")])
    assert exit_code == 1
    assert "not found" in capsys.readouterr().err
