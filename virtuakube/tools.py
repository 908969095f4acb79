"""External tool availability checks."""

from __future__ import annotations

import logging
import os
import shutil
from typing import Iterable

from virtuakube.errors import MissingDependency

logger = logging.getLogger(__name__)


def _resolve(tool: str) -> str | None:
    """Resolve a tool to an executable path, or None if it is not found.

    Explicit paths are checked directly so that problems other than a
    missing file (permissions, a non-executable file) surface as OSError.
    """
    if os.sep not in tool:
        return shutil.which(tool)

    try:
        st = os.stat(tool)
    except FileNotFoundError:
        return None
    if not os.path.isfile(tool) or not st.st_mode & 0o111:
        raise PermissionError(f"{tool} is not an executable file")
    if not os.access(tool, os.X_OK):
        raise PermissionError(f"{tool}: permission denied")
    return tool


def check_tools(tools: Iterable[str]) -> None:
    """Verify every tool is available.

    Raises:
        MissingDependency: listing every tool that could not be found.
        OSError: if resolving a tool failed for another reason.
    """
    missing: list[str] = []
    for tool in tools:
        path = _resolve(tool)
        if path is None:
            missing.append(tool)
            continue
        logger.debug(f"Found {tool} at {path}")

    if missing:
        raise MissingDependency(missing)
