"""HTTP converter backend for a running `pandoc-server`.

Responsibilities:
- Translate command-line style arguments into `pandoc-server` JSON options.
- POST conversion requests with `requests` and extract the converted output.
- Retry transient failures (timeouts, 429, 5xx) with bounded exponential backoff.
- Raise `ConverterError` with a deterministic failure classification.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import base64
from time import sleep
from typing import Any

from loguru import logger
import requests

from ..errors import ConverterError
from .arguments import iter_options


_OPTION_KEYS = {
    "--from": "from",
    "-f": "from",
    "--read": "from",
    "-r": "from",
    "--to": "to",
    "-t": "to",
    "--write": "to",
    "-w": "to",
    "--standalone": "standalone",
    "-s": "standalone",
    "--number-sections": "number-sections",
    "-N": "number-sections",
    "--toc": "table-of-contents",
    "--table-of-contents": "table-of-contents",
}
_MATH_METHODS = {
    "--mathjax": "mathjax",
    "--katex": "katex",
    "--mathml": "mathml",
    "--webtex": "webtex",
    "--gladtex": "gladtex",
}
_RETRYABLE_KINDS = frozenset({"timeout", "rate_limited", "server_error", "transport"})


def arguments_to_options(arguments: Sequence[str]) -> dict[str, Any]:
    """Convert command-line style arguments into `pandoc-server` options."""

    options: dict[str, Any] = {}
    for option, value in iter_options(arguments):
        if option in _MATH_METHODS:
            options["html-math-method"] = _MATH_METHODS[option]
        elif option in _OPTION_KEYS:
            options[_OPTION_KEYS[option]] = value if value is not None else True
        elif option.startswith("--"):
            options[option[2:]] = value if value is not None else True
    return options


class PandocServerConverter:
    """Synchronous converter backed by the `pandoc-server` JSON API."""

    _MAX_MESSAGE_CHARS = 180

    def __init__(
        self,
        base_url: str = "http://localhost:3030",
        *,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        sleeper: Callable[[float], None] = sleep,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.sleeper = sleeper
        self.session = session or requests.Session()
        self.retry_attempt_count = 0

    def available(self) -> bool:
        """Return whether the server answers its version endpoint."""

        try:
            response = self.session.get(f"{self.base_url}/version", timeout=self.timeout_seconds)
        except requests.RequestException:
            return False
        return response.ok

    def __call__(self, document: str, arguments: Sequence[str]) -> str:
        """Convert `document` through the server, retrying transient failures.

        Raises:
            ConverterError: If the request keeps failing or the payload is malformed.
        """

        payload = {"text": document, **arguments_to_options(arguments)}
        for retry_number in range(self.max_retries + 1):
            try:
                return self._post_once(payload)
            except ConverterError as exc:
                if exc.failure_kind not in _RETRYABLE_KINDS or retry_number >= self.max_retries:
                    raise
                wait_seconds = self.backoff_seconds * (2**retry_number)
                self.retry_attempt_count += 1
                logger.info(
                    "pandoc-server {} failure, retrying in {}s (retry {}/{})",
                    exc.failure_kind,
                    wait_seconds,
                    retry_number + 1,
                    self.max_retries,
                )
                self.sleeper(wait_seconds)
        raise ConverterError("pandoc-server request failed after retries.", failure_kind="unknown")

    def _post_once(self, payload: dict[str, Any]) -> str:
        """Send one conversion request and return the decoded output."""

        try:
            response = self.session.post(
                self.base_url,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error_to_converter_error(exc) from exc
        except requests.Timeout as exc:
            raise ConverterError(
                "pandoc-server request timed out.", failure_kind="timeout"
            ) from exc
        except requests.RequestException as exc:
            raise ConverterError(
                f"pandoc-server network transport error: {self._short_message(str(exc))}",
                failure_kind="transport",
            ) from exc
        return self._extract_output(response)

    @classmethod
    def _extract_output(cls, response: requests.Response) -> str:
        """Extract converted text from a JSON or plain-text server response."""

        content_type = response.headers.get("Content-Type", "")
        if "json" not in content_type:
            return response.text
        try:
            body = response.json()
        except ValueError as exc:
            raise ConverterError(
                "pandoc-server returned invalid JSON payload.", failure_kind="malformed_response"
            ) from exc
        if not isinstance(body, dict) or not isinstance(body.get("output"), str):
            raise ConverterError(
                "pandoc-server response missing `output` text.", failure_kind="malformed_response"
            )
        for message in body.get("messages") or []:
            logger.debug("pandoc-server message: {}", message)
        if body.get("base64"):
            return base64.b64decode(body["output"]).decode("utf-8", errors="replace")
        return body["output"]

    @staticmethod
    def _classify_http_failure(status_code: int) -> str:
        """Classify HTTP status codes into deterministic failure kinds."""

        if status_code in {408, 504}:
            return "timeout"
        if status_code == 429:
            return "rate_limited"
        if status_code in {401, 403}:
            return "permission"
        if status_code >= 500:
            return "server_error"
        return "conversion_error"

    @classmethod
    def _http_error_to_converter_error(cls, exc: requests.HTTPError) -> ConverterError:
        """Convert HTTP errors into normalized converter exceptions."""

        status_code = exc.response.status_code if exc.response is not None else 0
        body = exc.response.text if exc.response is not None else ""
        failure_kind = cls._classify_http_failure(status_code)
        headline = {
            "timeout": "pandoc-server request timed out",
            "rate_limited": "pandoc-server rate limit exceeded",
            "permission": "pandoc-server permission denied",
            "server_error": "pandoc-server internal error",
        }.get(failure_kind, "pandoc-server rejected the document")
        message = cls._short_message(body)
        detail = f"{headline} (HTTP {status_code})"
        if message:
            detail = f"{detail}: {message}"
        return ConverterError(detail, failure_kind=failure_kind)

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap diagnostic message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_MESSAGE_CHARS - 3]}..."
