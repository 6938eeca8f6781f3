"""Configuration loading for archviz (archviz.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ArchvizError

CONFIG_FILENAME = "archviz.yml"
CONFIG_ENV_KEY = "ARCHVIZ_CONFIG"

REASONING_EFFORTS = ("low", "medium", "high")
PROMPT_PACKS = ("detailed", "concise")


class ConfigError(ArchvizError):
    """Raised when the configuration file cannot be parsed."""


@dataclass(frozen=True)
class LLMConfig:
    """Model endpoint settings from archviz.yml."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    request_timeout: Optional[float] = None


@dataclass(frozen=True)
class QuotaConfig:
    """Fixed-window admission settings."""

    limit: int = 5
    window_seconds: float = 1800.0


@dataclass(frozen=True)
class StageConfig:
    """Per-stage overrides for reasoning effort and output budget."""

    reasoning_effort: Optional[str] = None
    max_tokens: Optional[int] = None
    disable_reasoning: bool = False


@dataclass(frozen=True)
class PipelineConfig:
    """Prompt pack selection and input caps for the stage sequencer."""

    prompt_pack: str = "detailed"
    stage_delay: float = 0.5
    file_cap: int = 100
    readme_cap: int = 2000
    templates_dir: Optional[Path] = None
    stages: Dict[str, StageConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class ArchvizConfig:
    """Represents the process-wide settings defined in archviz.yml."""

    path: Optional[Path] = None
    llm: LLMConfig = field(default_factory=LLMConfig)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Return the configuration file to load, honouring ARCHVIZ_CONFIG."""
    if config_path is None:
        env_value = os.getenv(CONFIG_ENV_KEY)
        config_path = Path(env_value) if env_value else Path.cwd()
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def load_config(config_path: Path | None = None) -> ArchvizConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = resolve_config_path(config_path)
    if not config_file.exists():
        return ArchvizConfig()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        model=_as_str(llm_data.get("model")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )

    quota_data = _as_dict(data.get("quota"))
    defaults = QuotaConfig()
    limit = _as_int(quota_data.get("limit"))
    window = _as_float(quota_data.get("window_seconds"))
    if limit is not None and limit < 1:
        raise ConfigError("quota.limit must be a positive integer")
    if window is not None and window <= 0:
        raise ConfigError("quota.window_seconds must be positive")
    quota = QuotaConfig(
        limit=limit if limit is not None else defaults.limit,
        window_seconds=window if window is not None else defaults.window_seconds,
    )

    pipeline = _parse_pipeline(_as_dict(data.get("pipeline")), config_file.parent)

    return ArchvizConfig(path=config_file, llm=llm, quota=quota, pipeline=pipeline)


def _parse_pipeline(data: Dict[str, Any], root: Path) -> PipelineConfig:
    defaults = PipelineConfig()

    pack = _as_str(data.get("prompt_pack")) or defaults.prompt_pack
    if pack not in PROMPT_PACKS:
        raise ConfigError(
            f"pipeline.prompt_pack must be one of {', '.join(PROMPT_PACKS)}; got '{pack}'"
        )

    stage_delay = _as_float(data.get("stage_delay"))
    file_cap = _as_int(data.get("file_cap"))
    readme_cap = _as_int(data.get("readme_cap"))
    if file_cap is not None and file_cap < 0:
        raise ConfigError("pipeline.file_cap must not be negative")
    if readme_cap is not None and readme_cap < 0:
        raise ConfigError("pipeline.readme_cap must not be negative")

    templates_dir_str = _as_str(data.get("templates_dir"))
    templates_dir = root / templates_dir_str if templates_dir_str else None

    stages: Dict[str, StageConfig] = {}
    for name, raw in _as_dict(data.get("stages")).items():
        stage_data = _as_dict(raw)
        effort_value = stage_data.get("reasoning_effort")
        disable = "reasoning_effort" in stage_data and effort_value in (None, "none", False)
        effort = None if disable else _as_str(effort_value)
        if effort is not None and effort not in REASONING_EFFORTS:
            raise ConfigError(
                f"pipeline.stages.{name}.reasoning_effort must be one of "
                f"{', '.join(REASONING_EFFORTS)} or none"
            )
        stages[str(name)] = StageConfig(
            reasoning_effort=effort,
            max_tokens=_as_int(stage_data.get("max_tokens")),
            disable_reasoning=disable,
        )

    return PipelineConfig(
        prompt_pack=pack,
        stage_delay=stage_delay if stage_delay is not None else defaults.stage_delay,
        file_cap=file_cap if file_cap is not None else defaults.file_cap,
        readme_cap=readme_cap if readme_cap is not None else defaults.readme_cap,
        templates_dir=templates_dir,
        stages=stages,
    )


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None
