"""Configuration model and loaders for pandocflow.

Responsibilities:
- Define conversion runtime settings as typed dataclasses.
- Provide loader entry points for mapping-, file-, and environment-based configuration.
- Validate timeout ordering and chunking limits before an engine is built.

Key types:
- `TimeoutBudgets`: wall-clock budgets per complexity level and fallback tier.
- `ChunkingConfig`: section splitting and pacing settings.
- `ConverterConfig`: normalized runtime settings for one orchestrator.
- `ConfigLoader`: static construction helpers for `ConverterConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models.datatypes import ComplexityLevel
from .parsing import (
    normalize_optional_string,
    parse_non_negative_float,
    parse_permissive_boolean,
    parse_positive_int,
)


DEFAULT_ARGUMENTS = "--from latex --to html5 --mathjax --number-sections"
SIMPLIFIED_ARGUMENTS = "--from latex --to html5 --mathjax"
_SUPPORTED_BACKENDS = frozenset({"cli", "server"})


@dataclass(frozen=True, slots=True)
class TimeoutBudgets:
    """Wall-clock budgets, in seconds, for individual conversion attempts.

    Attributes:
        basic: Standard-tier budget for basic documents.
        moderate: Standard-tier budget for moderate documents.
        complex: Standard-tier budget for complex documents.
        extreme: Standard-tier budget for extreme documents.
        simplified: Budget for the simplified-arguments tier.
        chunk: Budget for one section on the chunked tier.
        chunked_pass: Budget for one full chunked pass over all sections.
    """

    basic: float = 5.0
    moderate: float = 8.0
    complex: float = 15.0
    extreme: float = 20.0
    simplified: float = 8.0
    chunk: float = 5.0
    chunked_pass: float = 120.0

    def for_level(self, level: ComplexityLevel) -> float:
        """Return the standard-tier budget for a complexity level."""

        return {
            ComplexityLevel.BASIC: self.basic,
            ComplexityLevel.MODERATE: self.moderate,
            ComplexityLevel.COMPLEX: self.complex,
            ComplexityLevel.EXTREME: self.extreme,
        }[level]

    def validate(self) -> None:
        """Validate positivity and strict ordering of level budgets."""

        names = ("basic", "moderate", "complex", "extreme", "simplified", "chunk", "chunked_pass")
        for name in names:
            if getattr(self, name) <= 0.0:
                raise ValueError(f"`timeouts.{name}` must be a positive number of seconds.")
        if not self.basic < self.moderate < self.complex < self.extreme:
            raise ValueError(
                "`timeouts` must increase strictly: basic < moderate < complex < extreme."
            )


@dataclass(frozen=True, slots=True)
class ChunkingConfig:
    """Section splitting and pacing settings for the chunked tier.

    Attributes:
        max_chunk_size: Target maximum characters per section.
        boundary_window: Search window around a size cut for a paragraph break.
        processing_delay_seconds: Pause between consecutive section conversions.
        min_splittable_chars: Minimum document length for chunked fallback
            after the standard and simplified tiers fail.
    """

    max_chunk_size: int = 3000
    boundary_window: int = 200
    processing_delay_seconds: float = 0.05
    min_splittable_chars: int = 2000

    def validate(self) -> None:
        """Validate chunking limits."""

        if self.max_chunk_size <= 0:
            raise ValueError("`chunking.max_chunk_size` must be a positive integer.")
        if self.boundary_window < 0 or self.boundary_window >= self.max_chunk_size:
            raise ValueError(
                "`chunking.boundary_window` must be non-negative and smaller than "
                "`chunking.max_chunk_size`."
            )
        if self.processing_delay_seconds < 0.0:
            raise ValueError("`chunking.processing_delay_seconds` must be non-negative.")
        if self.min_splittable_chars <= 0:
            raise ValueError("`chunking.min_splittable_chars` must be a positive integer.")


@dataclass(slots=True)
class ConverterConfig:
    """Runtime configuration for one conversion orchestrator.

    Attributes:
        arguments: Default converter directives for the standard tier.
        simplified_arguments: Directives used when no format can be kept.
        backend: Converter backend identifier (`cli` or `server`).
        pandoc_executable: Executable name or path for the CLI backend.
        server_url: Base URL of a `pandoc-server` for the server backend.
        status_ttl_seconds: Status snapshot freshness window.
        debounce_seconds: Delay before a queued automatic trigger replays.
        max_complexity_score: Score above which chunking is required.
        max_document_length: Length above which chunking is required.
        automatic_conversions_disabled: Whether automatic triggers are ignored.
        timeouts: Attempt budgets per level and tier.
        chunking: Chunked tier settings.
    """

    arguments: str = DEFAULT_ARGUMENTS
    simplified_arguments: str = SIMPLIFIED_ARGUMENTS
    backend: str = "cli"
    pandoc_executable: str = "pandoc"
    server_url: str = "http://localhost:3030"
    status_ttl_seconds: float = 0.05
    debounce_seconds: float = 0.8
    max_complexity_score: int = 50
    max_document_length: int = 10000
    automatic_conversions_disabled: bool = False
    timeouts: TimeoutBudgets = field(default_factory=TimeoutBudgets)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)

    def validate(self) -> None:
        """Validate configuration values before an engine is built."""

        self._require_non_empty(self.arguments, "arguments")
        self._require_non_empty(self.simplified_arguments, "simplified_arguments")
        self._require_non_empty(self.pandoc_executable, "pandoc_executable")
        self._require_non_empty(self.server_url, "server_url")
        if self.backend not in _SUPPORTED_BACKENDS:
            supported = ", ".join(sorted(_SUPPORTED_BACKENDS))
            raise ValueError(f"`backend` must be one of: {supported}.")
        if self.status_ttl_seconds < 0.0:
            raise ValueError("`status_ttl_seconds` must be non-negative.")
        if self.debounce_seconds < 0.0:
            raise ValueError("`debounce_seconds` must be non-negative.")
        if self.max_complexity_score <= 0:
            raise ValueError("`max_complexity_score` must be a positive integer.")
        if self.max_document_length <= 0:
            raise ValueError("`max_document_length` must be a positive integer.")
        self.timeouts.validate()
        self.chunking.validate()

    def with_overrides(self, **overrides: object) -> ConverterConfig:
        """Return a validated copy with non-`None` overrides applied."""

        applied = {key: value for key, value in overrides.items() if value is not None}
        if not applied:
            return self
        updated = replace(self, **applied)
        updated.validate()
        return updated

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `ConverterConfig` from external sources."""

    _SUPPORTED_KEYS = frozenset(
        {
            "arguments",
            "simplified_arguments",
            "backend",
            "pandoc_executable",
            "server_url",
            "status_ttl_seconds",
            "debounce_seconds",
            "max_complexity_score",
            "max_document_length",
            "automatic_conversions_disabled",
            "timeouts",
            "chunking",
        }
    )
    _TIMEOUT_KEYS = frozenset(
        {"basic", "moderate", "complex", "extreme", "simplified", "chunk", "chunked_pass"}
    )
    _CHUNKING_KEYS = frozenset(
        {"max_chunk_size", "boundary_window", "processing_delay_seconds", "min_splittable_chars"}
    )
    _ENV_PREFIX = "PANDOCFLOW_"

    @staticmethod
    def from_yaml(path: Path) -> ConverterConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(path_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return ConfigLoader.from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_mapping(
        payload: Mapping[str, Any], source_label: str = "config"
    ) -> ConverterConfig:
        """Build a validated config from a mapping payload."""

        ConfigLoader._validate_keys(payload, ConfigLoader._SUPPORTED_KEYS, source_label)
        defaults = ConverterConfig()

        timeouts = ConfigLoader._timeouts_from_mapping(
            ConfigLoader._optional_mapping(payload, "timeouts", source_label),
            f"{source_label} `timeouts`",
        )
        chunking = ConfigLoader._chunking_from_mapping(
            ConfigLoader._optional_mapping(payload, "chunking", source_label),
            f"{source_label} `chunking`",
        )
        config = ConverterConfig(
            arguments=ConfigLoader._optional_string(payload, "arguments") or defaults.arguments,
            simplified_arguments=(
                ConfigLoader._optional_string(payload, "simplified_arguments")
                or defaults.simplified_arguments
            ),
            backend=(ConfigLoader._optional_string(payload, "backend") or defaults.backend).lower(),
            pandoc_executable=(
                ConfigLoader._optional_string(payload, "pandoc_executable")
                or defaults.pandoc_executable
            ),
            server_url=ConfigLoader._optional_string(payload, "server_url") or defaults.server_url,
            status_ttl_seconds=ConfigLoader._optional_float(
                payload, "status_ttl_seconds", source_label, defaults.status_ttl_seconds
            ),
            debounce_seconds=ConfigLoader._optional_float(
                payload, "debounce_seconds", source_label, defaults.debounce_seconds
            ),
            max_complexity_score=ConfigLoader._optional_int(
                payload, "max_complexity_score", source_label, defaults.max_complexity_score
            ),
            max_document_length=ConfigLoader._optional_int(
                payload, "max_document_length", source_label, defaults.max_document_length
            ),
            automatic_conversions_disabled=ConfigLoader._optional_boolean(
                payload,
                "automatic_conversions_disabled",
                source_label,
                defaults.automatic_conversions_disabled,
            ),
            timeouts=timeouts,
            chunking=chunking,
        )
        config.validate()
        return config

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> ConverterConfig:
        """Create a validated config from `PANDOCFLOW_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        prefix = ConfigLoader._ENV_PREFIX

        payload: dict[str, Any] = {}
        timeouts: dict[str, Any] = {}
        chunking: dict[str, Any] = {}
        for raw_key, raw_value in env_map.items():
            if not raw_key.startswith(prefix):
                continue
            if normalize_optional_string(raw_value) is None:
                continue
            key = raw_key[len(prefix):].lower()
            if key.startswith("timeout_"):
                timeouts[key[len("timeout_"):]] = raw_value
            elif key.startswith("chunking_"):
                chunking[key[len("chunking_"):]] = raw_value
            else:
                payload[key] = raw_value
        if timeouts:
            payload["timeouts"] = timeouts
        if chunking:
            payload["chunking"] = chunking
        return ConfigLoader.from_mapping(payload, source_label="Environment")

    @staticmethod
    def _timeouts_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> TimeoutBudgets:
        """Build timeout budgets from an optional nested mapping."""

        ConfigLoader._validate_keys(payload, ConfigLoader._TIMEOUT_KEYS, source_label)
        defaults = TimeoutBudgets()
        values = {
            key: ConfigLoader._optional_float(payload, key, source_label, getattr(defaults, key))
            for key in ConfigLoader._TIMEOUT_KEYS
        }
        return TimeoutBudgets(**values)

    @staticmethod
    def _chunking_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> ChunkingConfig:
        """Build chunking settings from an optional nested mapping."""

        ConfigLoader._validate_keys(payload, ConfigLoader._CHUNKING_KEYS, source_label)
        defaults = ChunkingConfig()
        return ChunkingConfig(
            max_chunk_size=ConfigLoader._optional_int(
                payload, "max_chunk_size", source_label, defaults.max_chunk_size
            ),
            boundary_window=ConfigLoader._optional_non_negative_int(
                payload, "boundary_window", source_label, defaults.boundary_window
            ),
            processing_delay_seconds=ConfigLoader._optional_float(
                payload,
                "processing_delay_seconds",
                source_label,
                defaults.processing_delay_seconds,
            ),
            min_splittable_chars=ConfigLoader._optional_int(
                payload, "min_splittable_chars", source_label, defaults.min_splittable_chars
            ),
        )

    @staticmethod
    def _validate_keys(
        payload: Mapping[str, Any], supported: frozenset[str], source_label: str
    ) -> None:
        """Reject keys the loader does not understand."""

        unknown = sorted(set(map(str, payload)).difference(supported))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _optional_mapping(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> Mapping[str, Any]:
        """Read an optional nested mapping field."""

        raw = payload.get(key)
        if raw is None:
            return {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"{source_label} field `{key}` must be a mapping/object.")
        return raw

    @staticmethod
    def _optional_string(payload: Mapping[str, Any], key: str) -> str | None:
        """Read an optional string field and normalize blank values to `None`."""

        if key not in payload:
            return None
        return normalize_optional_string(payload[key])

    @staticmethod
    def _optional_float(
        payload: Mapping[str, Any], key: str, source_label: str, default: float
    ) -> float:
        """Read and validate a non-negative number field."""

        if key not in payload or normalize_optional_string(payload[key]) is None:
            return default
        try:
            return parse_non_negative_float(payload[key], key)
        except ValueError as exc:
            raise ValueError(f"{source_label} field {exc}") from exc

    @staticmethod
    def _optional_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a positive integer field."""

        if key not in payload or normalize_optional_string(payload[key]) is None:
            return default
        try:
            return parse_positive_int(payload[key], key)
        except ValueError as exc:
            raise ValueError(f"{source_label} field {exc}") from exc

    @staticmethod
    def _optional_non_negative_int(
        payload: Mapping[str, Any], key: str, source_label: str, default: int
    ) -> int:
        """Read and validate a non-negative integer field."""

        if key not in payload:
            return default
        raw_value = payload[key]
        if not isinstance(raw_value, bool) and normalize_optional_string(raw_value) == "0":
            return 0
        return ConfigLoader._optional_int(payload, key, source_label, default)

    @staticmethod
    def _optional_boolean(
        payload: Mapping[str, Any], key: str, source_label: str, default: bool
    ) -> bool:
        """Read and validate a boolean field."""

        if key not in payload:
            return default
        parsed = parse_permissive_boolean(payload[key])
        if parsed is None:
            raise ValueError(
                f"{source_label} field `{key}` must be a boolean value "
                "(`true`/`false`, `1`/`0`, `yes`/`no`)."
            )
        return parsed
