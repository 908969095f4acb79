from __future__ import annotations

import os

import pytest

from virtuakube.errors import MissingDependency
from virtuakube.tools import check_tools


@pytest.fixture
def isolated_path(bin_dir, monkeypatch):
    monkeypatch.setenv("PATH", str(bin_dir))
    return bin_dir


def test_all_tools_present(isolated_path, make_tool):
    make_tool("vde_switch")
    make_tool("qemu-img")

    check_tools(["vde_switch", "qemu-img"])


def test_missing_tools_are_all_reported(isolated_path, make_tool):
    make_tool("vde_switch")

    with pytest.raises(MissingDependency) as exc_info:
        check_tools(["vde_switch", "qemu-system-x86_64", "qemu-img"])

    assert exc_info.value.missing == ["qemu-system-x86_64", "qemu-img"]
    assert str(exc_info.value) == "required tools missing: qemu-system-x86_64, qemu-img"


def test_non_executable_file_on_path_is_missing(isolated_path):
    (isolated_path / "vde_switch").write_text("not a program")

    with pytest.raises(MissingDependency) as exc_info:
        check_tools(["vde_switch"])

    assert exc_info.value.missing == ["vde_switch"]


def test_explicit_path_that_does_not_exist_is_missing(tmp_path):
    missing = str(tmp_path / "nope" / "vde_switch")

    with pytest.raises(MissingDependency) as exc_info:
        check_tools([missing])

    assert exc_info.value.missing == [missing]


def test_explicit_path_resolution_error_short_circuits(tmp_path, isolated_path):
    not_executable = tmp_path / "vde_switch"
    not_executable.write_text("data")
    os.chmod(not_executable, 0o644)

    with pytest.raises(PermissionError):
        check_tools([str(not_executable), "qemu-img"])


def test_explicit_executable_path(make_tool):
    tool = make_tool("vde_switch")

    check_tools([str(tool)])
