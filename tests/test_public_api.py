from __future__ import annotations

import hostcomp
import pytest

from hostcomp.errors import DSLValidationError


def test_public_api_exposes_version() -> None:
    assert isinstance(hostcomp.__version__, str)


def test_public_api_all_contains_core_exports() -> None:
    exported = set(hostcomp.__all__)
    assert "compile_components" in exported
    assert "export_components" in exported
    assert "ComponentCompiler" in exported
    assert "PyGenerator" in exported
    assert "__version__" in exported
    for name in exported:
        assert hasattr(hostcomp, name)


def test_compile_components_rejects_empty_source_with_actionable_message() -> None:
    with pytest.raises(DSLValidationError, match="Source is empty"):
        hostcomp.compile_components("   ")
