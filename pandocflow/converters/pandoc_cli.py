"""Pandoc executable converter backend.

Responsibilities:
- Run the `pandoc` executable synchronously with the document on stdin.
- Map process failures into `ConverterError` with a failure classification.
"""

from __future__ import annotations

from collections.abc import Sequence
import subprocess

from loguru import logger

from ..errors import ConverterError
from ..runtime_tools import pandoc_version, resolve_executable


class PandocCliConverter:
    """Synchronous converter that shells out to a local `pandoc` executable."""

    _MAX_STDERR_CHARS = 400

    def __init__(
        self,
        executable: str = "pandoc",
        *,
        process_timeout_seconds: float | None = 60.0,
    ) -> None:
        self.executable = executable
        self.process_timeout_seconds = process_timeout_seconds

    def available(self) -> bool:
        """Return whether the configured executable runs and reports a version."""

        return pandoc_version(self.executable) is not None

    def __call__(self, document: str, arguments: Sequence[str]) -> str:
        """Convert `document` with `arguments` and return the converter stdout.

        Raises:
            ConverterError: If the executable is missing, not permitted, times out,
                or exits with a non-zero status.
        """

        command = [resolve_executable(self.executable), *arguments]
        try:
            completed = subprocess.run(
                command,
                input=document,
                text=True,
                encoding="utf-8",
                capture_output=True,
                check=True,
                timeout=self.process_timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise ConverterError(
                f"Pandoc executable not found: `{self.executable}`. "
                "Install pandoc or set `pandoc_executable`.",
                failure_kind="executable_missing",
            ) from exc
        except PermissionError as exc:
            raise ConverterError(
                f"Permission denied running `{self.executable}`.",
                failure_kind="permission",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ConverterError(
                f"Pandoc process timeout after {self.process_timeout_seconds}s.",
                failure_kind="timeout",
            ) from exc
        except subprocess.CalledProcessError as exc:
            stderr = self._short_stderr(exc.stderr)
            logger.debug("Pandoc exited with status {}: {}", exc.returncode, stderr)
            raise ConverterError(
                f"Pandoc exited with status {exc.returncode}: {stderr or 'no diagnostics'}",
                failure_kind="conversion_error",
            ) from exc

        if completed.stderr:
            logger.debug("Pandoc warnings: {}", self._short_stderr(completed.stderr))
        return completed.stdout

    @classmethod
    def _short_stderr(cls, stderr: str | bytes | None) -> str:
        """Normalize and cap process diagnostics length."""

        if stderr is None:
            return ""
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace")
        compact = " ".join(stderr.split())
        if len(compact) <= cls._MAX_STDERR_CHARS:
            return compact
        return f"{compact[: cls._MAX_STDERR_CHARS - 3]}..."
