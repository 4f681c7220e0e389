"""Configuration loading for the blip machine."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, MutableMapping

from .mixer import SAMPLE_FORMATS
from .scheduler import DEFAULT_FRAMES_PER_CHUNK, DEFAULT_SAMPLE_RATE

_REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = _REPO_ROOT / "configs" / "default.json"

SINK_KINDS = ("stdout", "file", "device")
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(slots=True)
class RuntimeConfig:
    """Rendering parameters that do not change the audio."""

    frames_per_chunk: int = DEFAULT_FRAMES_PER_CHUNK
    log_level: str = DEFAULT_LOG_LEVEL


@dataclass(slots=True)
class OutputConfig:
    sample_format: str = "u8"
    sink: str = "stdout"
    path: str | None = None


@dataclass(slots=True)
class AppConfig:
    sample_rate: int = DEFAULT_SAMPLE_RATE
    seed: int | None = 0
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


def normalise_log_level(value: Any) -> str:
    level = str(value).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"runtime.log_level: unknown level '{value}'")
    return level


def _normalise_runtime(data: MutableMapping[str, Any]) -> RuntimeConfig:
    frames = int(data.get("frames_per_chunk", DEFAULT_FRAMES_PER_CHUNK))
    if frames <= 0:
        raise ValueError("runtime.frames_per_chunk must be positive")
    return RuntimeConfig(
        frames_per_chunk=frames,
        log_level=normalise_log_level(data.get("log_level", DEFAULT_LOG_LEVEL)),
    )


def _normalise_output(data: Mapping[str, Any]) -> OutputConfig:
    sample_format = str(data.get("sample_format", "u8"))
    if sample_format not in SAMPLE_FORMATS:
        raise ValueError(
            f"output.sample_format must be one of {sorted(SAMPLE_FORMATS)}, got '{sample_format}'"
        )
    sink = str(data.get("sink", "stdout"))
    if sink not in SINK_KINDS:
        raise ValueError(f"output.sink must be one of {list(SINK_KINDS)}, got '{sink}'")
    path = data.get("path")
    if path is not None and not isinstance(path, str):
        raise TypeError("output.path must be a string")
    if sink == "file" and not path:
        raise ValueError("output.path must be provided for the file sink")
    return OutputConfig(sample_format=sample_format, sink=sink, path=path or None)


def _normalise_seed(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("seed must be an integer or null")
    if value < 0:
        raise ValueError("seed must not be negative")
    return value


def config_from_mapping(raw: Mapping[str, Any]) -> AppConfig:
    sample_rate = int(raw.get("sample_rate", DEFAULT_SAMPLE_RATE))
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    return AppConfig(
        sample_rate=sample_rate,
        seed=_normalise_seed(raw.get("seed", 0)),
        runtime=_normalise_runtime(dict(raw.get("runtime", {}) or {})),
        output=_normalise_output(raw.get("output", {}) or {}),
    )


def load_configuration(path: str | Path) -> AppConfig:
    """Load an :class:`AppConfig` from ``path``."""

    with open(path, "r", encoding="utf8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, dict):
        raise TypeError("configuration root must be a JSON object")
    return config_from_mapping(raw)


__all__ = [
    "AppConfig",
    "DEFAULT_CONFIG_PATH",
    "OutputConfig",
    "RuntimeConfig",
    "SINK_KINDS",
    "config_from_mapping",
    "load_configuration",
    "normalise_log_level",
]
