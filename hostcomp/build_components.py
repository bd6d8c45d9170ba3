#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from hostcomp.compiler.definition import DuplicatePolicy
from hostcomp.errors import DSLError
from hostcomp.exporter import export_components
from hostcomp.specialize.ranker import InferenceLog


def _read_source(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(f"Component source file not found: {path}")
    if not path.is_file():
        raise FileNotFoundError(f"Component source path is not a file: {path}")
    return path.read_text(encoding="utf-8")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Compile a hostcomp component definition file into a Python module "
            "the host engine can load, plus JSON summaries."
        )
    )
    parser.add_argument(
        "source",
        help="Path to the component definition file.",
    )
    parser.add_argument(
        "--output",
        default="build",
        help="Directory where the generated module and summaries will be written.",
    )
    parser.add_argument(
        "--host-module",
        default="UnityEngine",
        help="Module the generated code imports host types from.",
    )
    parser.add_argument(
        "--module-name",
        default=None,
        help=(
            "Module the host must load before early lifecycle messages run. "
            "Defaults to the source file stem."
        ),
    )
    parser.add_argument(
        "--duplicates",
        choices=[policy.value for policy in DuplicatePolicy],
        default=DuplicatePolicy.KEEP_LAST.value,
        help="What to do when a component declares the same method twice.",
    )
    parser.add_argument(
        "--inference-log",
        action="store_true",
        help="Print the static type inferred for every type dispatch.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    source_path = Path(args.source).resolve()
    output_dir = Path(args.output).resolve()
    log = InferenceLog()

    try:
        module = export_components(
            _read_source(source_path),
            str(output_dir),
            source_path=str(source_path),
            module_name=args.module_name,
            host_module=args.host_module,
            duplicate_policy=DuplicatePolicy(args.duplicates),
            inference_log=log,
        )
    except (DSLError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"Generated {len(module.components)} component(s) into {output_dir}")
    print(f"- {output_dir / (source_path.stem + '.py')}")
    print(f"- {output_dir / 'components.json'}")
    print(f"- {output_dir / 'components_ir.json'}")

    if args.inference_log:
        for index, entry in enumerate(log.snapshot(), start=1):
            print(f"dispatch {index}: {entry or 'unknown'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
