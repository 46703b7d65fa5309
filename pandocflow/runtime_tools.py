"""Pandoc executable discovery.

Responsibilities:
- Locate the `pandoc` executable: explicit path, bundled `bin/`, then PATH.
- Ask the located executable for its version before a converter is bound.
"""

from __future__ import annotations

from pathlib import Path
import re
import shutil
import subprocess
import sys

from loguru import logger


_VERSION_LINE = re.compile(r"^pandoc(?:\.exe)?\s+(\d+(?:\.\d+)*)", re.IGNORECASE)
_VERSION_TIMEOUT_SECONDS = 10.0


def resolve_executable(command_name: str) -> str:
    """Return the path used to launch `command_name`.

    Falls back to the bare name so `subprocess` raises its own missing-binary error.
    """

    name = command_name.strip()
    if not name:
        return command_name

    explicit = Path(name).expanduser()
    if explicit.is_absolute():
        return str(explicit)

    bundled = _app_root() / "bin" / name
    for candidate in (bundled, bundled.with_name(f"{name}.exe")):
        if candidate.is_file():
            return str(candidate)

    return shutil.which(name) or name


def pandoc_version(command_name: str = "pandoc") -> str | None:
    """Return the version reported by `<pandoc> --version`, or `None` if it cannot run."""

    executable = resolve_executable(command_name)
    try:
        completed = subprocess.run(
            [executable, "--version"],
            capture_output=True,
            text=True,
            check=True,
            timeout=_VERSION_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("Pandoc version check failed for `{}`: {}", executable, exc)
        return None

    first_line = completed.stdout.strip().splitlines()[0] if completed.stdout.strip() else ""
    match = _VERSION_LINE.match(first_line)
    if match is None:
        logger.debug("Unrecognised `--version` output from `{}`: {!r}", executable, first_line)
        return None
    return match.group(1)


def _app_root() -> Path:
    """Resolve runtime application root for frozen and non-frozen execution."""

    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]
