from __future__ import annotations

import asyncio
import os
import stat
from pathlib import Path

import pytest

from virtuakube.config import Settings

FAKE_TOOLS = ("vde_switch", "qemu-system-x86_64", "qemu-img")


def write_fake_tool(bin_dir: Path, name: str, body: str = "exec sleep 3600") -> Path:
    """Write an executable shell script standing in for an external tool."""
    path = bin_dir / name
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    path = tmp_path / "bin"
    path.mkdir()
    return path


@pytest.fixture
def make_tool(bin_dir: Path):
    """Factory writing fake executables into bin_dir."""

    def _make(name: str, body: str = "exec sleep 3600") -> Path:
        return write_fake_tool(bin_dir, name, body)

    return _make


@pytest.fixture
def fake_tools(bin_dir: Path, monkeypatch) -> Path:
    """Put fake vde_switch and qemu tools first on PATH.

    The fake switch just sleeps, which is enough for the universe to
    supervise it.
    """
    for name in FAKE_TOOLS:
        write_fake_tool(bin_dir, name)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return bin_dir


@pytest.fixture
def temp_root(tmp_path: Path) -> Path:
    path = tmp_path / "tmp"
    path.mkdir()
    return path


@pytest.fixture
def universe_config(temp_root: Path) -> Settings:
    return Settings(temp_root=str(temp_root))


async def _drain(universe, timeout: float = 5.0) -> None:
    if universe._watchers:
        await asyncio.wait_for(asyncio.gather(*universe._watchers), timeout)


@pytest.fixture
def drain():
    """Wait for a universe's background watchers to finish."""
    return _drain
