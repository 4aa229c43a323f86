"""Runtime settings for the Polymind service.

Values come from the process environment (optionally seeded from a ``.env``
file by the API entrypoint). Settings are read once when the application is
created and treated as read-only afterwards.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing at process start."""


# OpenAI-compatible endpoints the completion client can talk to.
PROVIDER_CONFIG: Dict[str, Dict[str, Optional[str] | bool]] = {
    "groq": {
        "api_key_env": "GROQ_API_KEY",
        "default_model": "llama-3.1-8b-instant",
        "default_base_url": "https://api.groq.com/openai/v1",
    },
    "openai": {
        "api_key_env": "OPENAI_API_KEY",
        "default_model": "gpt-4o-mini",
        "default_base_url": "https://api.openai.com/v1",
    },
    "local": {
        "api_key_env": None,
        "default_model": "llama3.1:8b",
        "default_base_url": "http://127.0.0.1:11434/v1",
        "requires_api_key": False,
    },
}

DEFAULT_ENGINE_URLS = {
    "kroki": "https://kroki.io",
    "mermaid_ink": "https://mermaid.ink",
}


def _as_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _as_float(raw: Optional[str], default: float) -> float:
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


def _as_int(raw: Optional[str], default: int) -> int:
    try:
        return int(raw) if raw not in (None, "") else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    llm_provider: str = "groq"
    llm_model: str = "llama-3.1-8b-instant"
    llm_base_url: Optional[str] = None
    llm_api_key: Optional[str] = None
    llm_temperature: float = 0.7
    render_engine: str = "kroki"
    render_engine_url: str = DEFAULT_ENGINE_URLS["kroki"]
    render_timeout_s: float = 5.0
    sanitize_labels: bool = True
    max_label_length: int = 60
    diagram_theme: str = "dark"
    chat_store_impl: str = "memory"
    chat_store_file: Optional[str] = None
    cors_origins: Tuple[str, ...] = field(default=("http://localhost:3000", "http://127.0.0.1:3000"))

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = env if env is not None else os.environ
        provider = (env.get("POLYMIND_LLM_PROVIDER") or "groq").strip().lower()
        cfg = PROVIDER_CONFIG.get(provider, {})
        key_env = cfg.get("api_key_env")
        api_key = env.get("POLYMIND_LLM_API_KEY") or (env.get(str(key_env)) if key_env else None)
        engine = (env.get("POLYMIND_RENDER_ENGINE") or "kroki").strip().lower()
        origins = env.get("POLYMIND_CORS_ORIGINS")
        return cls(
            llm_provider=provider,
            llm_model=env.get("POLYMIND_LLM_MODEL") or str(cfg.get("default_model") or cls.llm_model),
            llm_base_url=env.get("POLYMIND_LLM_BASE_URL") or (str(cfg["default_base_url"]) if cfg.get("default_base_url") else None),
            llm_api_key=api_key or None,
            llm_temperature=_as_float(env.get("POLYMIND_LLM_TEMPERATURE"), 0.7),
            render_engine=engine,
            render_engine_url=env.get("POLYMIND_RENDER_ENGINE_URL") or DEFAULT_ENGINE_URLS.get(engine, DEFAULT_ENGINE_URLS["kroki"]),
            render_timeout_s=_as_float(env.get("POLYMIND_RENDER_TIMEOUT"), 5.0),
            sanitize_labels=_as_bool(env.get("POLYMIND_SANITIZE_LABELS"), True),
            max_label_length=_as_int(env.get("POLYMIND_MAX_LABEL_LENGTH"), 60),
            diagram_theme=env.get("POLYMIND_DIAGRAM_THEME") or "dark",
            chat_store_impl=(env.get("POLYMIND_CHAT_STORE_IMPL") or "memory").strip().lower(),
            chat_store_file=env.get("POLYMIND_CHAT_STORE_FILE") or None,
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) if origins else cls.cors_origins,
        )

    def require_credentials(self) -> None:
        cfg = PROVIDER_CONFIG.get(self.llm_provider)
        if cfg is None:
            raise ConfigurationError(f"Unknown LLM provider: {self.llm_provider}")
        if bool(cfg.get("requires_api_key", True)) and not self.llm_api_key:
            key_env = cfg.get("api_key_env") or "POLYMIND_LLM_API_KEY"
            raise ConfigurationError(f"Missing {key_env} environment variable")
