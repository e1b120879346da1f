"""Settings loading for the scoring core.

Reads ``config/settings.yaml`` and the optional ``.env`` file, then exposes
the values the auditor, prober and verifier need as a :class:`Settings`
object.  API keys only ever come from the environment.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ENGINES = ("perplexity", "openai", "google", "copilot")


@dataclass
class Settings:
    """Resolved configuration with defaults for every key."""

    app_name: str = "AI Visibility Core"
    data_dir: str = "data"
    database_url: Optional[str] = None
    database_echo: bool = False

    # llm
    openai_model: str = "gpt-4o-mini"
    perplexity_model: str = "sonar"
    gemini_model: str = "gemini-2.0-flash"
    gemini_search_grounding: bool = True
    max_tokens: int = 1024
    temperature: float = 0.3
    llm_timeout: int = 60
    rate_limits: dict[str, int] = field(default_factory=lambda: {
        "openai": 60, "perplexity": 50, "google": 15,
    })

    # engines
    engines: list[str] = field(default_factory=lambda: list(DEFAULT_ENGINES))

    # page_audit
    fetch_timeout: float = 10.0
    user_agent: str = "AIVisibilityBot/1.0 (+https://example.com/bot)"
    llm_answer_first: bool = True

    # correction
    cooldown_days: int = 14

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Settings":
        app_cfg = config.get("app", {}) or {}
        db_cfg = config.get("database", {}) or {}
        llm_cfg = config.get("llm", {}) or {}
        engines_cfg = config.get("engines", {}) or {}
        audit_cfg = config.get("page_audit", {}) or {}
        correction_cfg = config.get("correction", {}) or {}

        defaults = cls()
        rate_limits = dict(defaults.rate_limits)
        for provider, value in (llm_cfg.get("rate_limits", {}) or {}).items():
            rate_limits[provider] = int(value)

        enabled = engines_cfg.get("enabled")
        if enabled is None:
            enabled = list(DEFAULT_ENGINES)

        return cls(
            app_name=app_cfg.get("name", defaults.app_name),
            data_dir=app_cfg.get("data_dir", defaults.data_dir),
            database_url=db_cfg.get("url", defaults.database_url),
            database_echo=bool(db_cfg.get("echo", defaults.database_echo)),
            openai_model=llm_cfg.get("openai", {}).get("model", defaults.openai_model),
            perplexity_model=llm_cfg.get("perplexity", {}).get("model", defaults.perplexity_model),
            gemini_model=llm_cfg.get("gemini", {}).get("model", defaults.gemini_model),
            gemini_search_grounding=bool(
                llm_cfg.get("gemini", {}).get("search_grounding", defaults.gemini_search_grounding)
            ),
            max_tokens=int(llm_cfg.get("max_tokens", defaults.max_tokens)),
            temperature=float(llm_cfg.get("temperature", defaults.temperature)),
            llm_timeout=int(llm_cfg.get("timeout", defaults.llm_timeout)),
            rate_limits=rate_limits,
            engines=[str(e).strip().lower() for e in enabled],
            fetch_timeout=float(audit_cfg.get("timeout", defaults.fetch_timeout)),
            user_agent=audit_cfg.get("user_agent", defaults.user_agent),
            llm_answer_first=bool(audit_cfg.get("llm_answer_first", defaults.llm_answer_first)),
            cooldown_days=int(correction_cfg.get("cooldown_days", defaults.cooldown_days)),
        )


def _load_yaml(config_path: str) -> dict[str, Any]:
    """Load the YAML configuration file."""
    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning("Config file not found: %s, using defaults.", config_path)
        return {}
    with open(config_file, "r", encoding="utf-8") as fh:
        config = yaml.safe_load(fh) or {}
    logger.info("Configuration loaded from %s", config_path)
    return config


def load_settings(
    config_path: str = "config/settings.yaml",
    env_path: str = ".env",
) -> Settings:
    """Load ``.env`` into the environment and build :class:`Settings`."""
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)
        logger.info("Loaded environment from %s", env_path)
    return Settings.from_dict(_load_yaml(config_path))


def build_llm_client(settings: Settings):
    """Create an :class:`LLMClient` from *settings*; keys come from the environment."""
    from ai_visibility.integrations.llm_client import LLMClient

    return LLMClient(
        openai_model=settings.openai_model,
        perplexity_model=settings.perplexity_model,
        gemini_model=settings.gemini_model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        timeout=settings.llm_timeout,
        openai_rpm=settings.rate_limits.get("openai", 60),
        perplexity_rpm=settings.rate_limits.get("perplexity", 50),
        gemini_rpm=settings.rate_limits.get("google", 15),
        gemini_search_grounding=settings.gemini_search_grounding,
    )
