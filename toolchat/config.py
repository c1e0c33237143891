"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < env vars < explicit overrides
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

DEFAULT_API_URL = "http://localhost:11434/v1/chat/completions"
DEFAULT_MODEL = "qwen3:8b"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMConfig:
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    api_key: str = ""
    timeout_seconds: float = 120.0


@dataclass
class AgentConfig:
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_iterations: int = 8
    chunk_separator: str = " "
    stream_buffer: int = 10
    tool_timeout_seconds: float = 30.0
    tool_root: str = "."
    turn_timeout_seconds: float = 0.0


@dataclass
class LoggingConfig:
    level: str = "WARNING"


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class ToolchatConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self, redact: bool = True) -> dict:
        d = asdict(self)
        if redact and d["llm"]["api_key"]:
            d["llm"]["api_key"] = "***"
        return d


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    return value


def _build_section(cls: type, raw: dict | None) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in (raw or {}).items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "LLM_API_KEY":               ("llm.api_key", str),
    "LLM_API_URL":               ("llm.api_url", str),
    "LLM_MODEL":                 ("llm.model", str),
    "LLM_TIMEOUT":               ("llm.timeout_seconds", float),
    "TOOLCHAT_SYSTEM_PROMPT":    ("agent.system_prompt", str),
    "TOOLCHAT_MAX_ITERATIONS":   ("agent.max_iterations", int),
    "TOOLCHAT_CHUNK_SEPARATOR":  ("agent.chunk_separator", str),
    "TOOLCHAT_TOOL_TIMEOUT":     ("agent.tool_timeout_seconds", float),
    "TOOLCHAT_TOOL_ROOT":        ("agent.tool_root", str),
    "TOOLCHAT_TURN_TIMEOUT":     ("agent.turn_timeout_seconds", float),
    "TOOLCHAT_LOG_LEVEL":        ("logging.level", str),
}

# An empty value means "use the default" for these; for the rest an empty
# string is meaningful (no API key, concatenate chunks without separator).
_EMPTY_MEANS_UNSET = {"LLM_API_URL", "LLM_MODEL"}


def find_config_path() -> Path | None:
    """Find a config file in the standard locations."""
    candidates = [
        Path.cwd() / "toolchat.yaml",
        Path.cwd() / "toolchat.yml",
        Path.home() / ".config" / "toolchat" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> ToolchatConfig:
    """
    Build a ToolchatConfig by layering sources in precedence order:

        defaults  <  config file  <  env vars  <  overrides

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    overrides : dict of dotpath -> value applied last
    environ : mapping used instead of ``os.environ``
    """
    raw: dict[str, Any] = {}

    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}

    cfg = ToolchatConfig(
        llm=_build_section(LLMConfig, raw.get("llm")),
        agent=_build_section(AgentConfig, raw.get("agent")),
        logging=_build_section(LoggingConfig, raw.get("logging")),
    )

    env = os.environ if environ is None else environ
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = env.get(env_var)
        if val is None or (val == "" and env_var in _EMPTY_MEANS_UNSET):
            continue
        _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    if overrides:
        for dotpath, value in overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    return cfg
