"""Configuration loader for the news digest pipeline."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_USER_AGENT = "ESG-News-Digest/1.0 (+https://github.com/esg-digest)"
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.5"


@dataclass
class DatabaseConfig:
    url: str = "sqlite:///news_digest.db"
    echo: bool = False


@dataclass
class FetchConfig:
    max_concurrent: int = 4
    timeout_seconds: float = 30.0
    per_host_interval_seconds: float = 1.0
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = DEFAULT_ACCEPT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE


@dataclass
class ExtractConfig:
    min_text_length: int = 100


@dataclass
class LLMConfig:
    provider: str = "openai"  # "openai", "ollama" or "offline"
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_text_length: int = 8000
    timeout_seconds: float = 120.0
    probe_timeout_seconds: float = 5.0
    ollama_host: str = "http://localhost:11434"


@dataclass
class WorkerConfig:
    poll_interval_seconds: float = 2.0
    item_concurrency: int = 4


@dataclass
class EventsConfig:
    page_size: int = 100
    stream_interval_seconds: float = 0.5


@dataclass
class DigestConfig:
    lookback_days: int = 7
    group_by_topic: bool = False


@dataclass
class Config:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    worker: WorkerConfig = field(default_factory=WorkerConfig)
    events: EventsConfig = field(default_factory=EventsConfig)
    digest: DigestConfig = field(default_factory=DigestConfig)


def load_config(config_name: str | None = None) -> Config:
    """Load configuration from a bundled YAML file.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses CONFIG_ENV env var or "default".

    Returns:
        Loaded Config object with environment overrides applied
    """
    if config_name is None:
        config_name = os.environ.get("CONFIG_ENV", "default")

    config_dir = Path(__file__).parent / "configs"
    config_path = config_dir / f"{config_name}.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return _apply_env_overrides(_parse_config(data))


def _parse_config(data: dict) -> Config:
    """Parse config dictionary into Config object."""
    database = data.get("database", {})
    fetch = data.get("fetch", {})
    extract = data.get("extract", {})
    llm = data.get("llm", {})
    worker = data.get("worker", {})
    events = data.get("events", {})
    digest = data.get("digest", {})

    return Config(
        database=DatabaseConfig(
            url=database.get("url", "sqlite:///news_digest.db"),
            echo=database.get("echo", False),
        ),
        fetch=FetchConfig(
            max_concurrent=fetch.get("max_concurrent", 4),
            timeout_seconds=fetch.get("timeout_seconds", 30.0),
            per_host_interval_seconds=fetch.get("per_host_interval_seconds", 1.0),
            user_agent=fetch.get("user_agent", DEFAULT_USER_AGENT),
            accept=fetch.get("accept", DEFAULT_ACCEPT),
            accept_language=fetch.get("accept_language", DEFAULT_ACCEPT_LANGUAGE),
        ),
        extract=ExtractConfig(
            min_text_length=extract.get("min_text_length", 100),
        ),
        llm=LLMConfig(
            provider=llm.get("provider", "openai"),
            model=llm.get("model", "gpt-4o-mini"),
            temperature=llm.get("temperature", 0.3),
            max_text_length=llm.get("max_text_length", 8000),
            timeout_seconds=llm.get("timeout_seconds", 120.0),
            probe_timeout_seconds=llm.get("probe_timeout_seconds", 5.0),
            ollama_host=llm.get("ollama_host", "http://localhost:11434"),
        ),
        worker=WorkerConfig(
            poll_interval_seconds=worker.get("poll_interval_seconds", 2.0),
            item_concurrency=worker.get("item_concurrency", 4),
        ),
        events=EventsConfig(
            page_size=events.get("page_size", 100),
            stream_interval_seconds=events.get("stream_interval_seconds", 0.5),
        ),
        digest=DigestConfig(
            lookback_days=digest.get("lookback_days", 7),
            group_by_topic=digest.get("group_by_topic", False),
        ),
    )


def _apply_env_overrides(config: Config) -> Config:
    """Override selected settings from environment variables."""
    if os.environ.get("DATABASE_URL"):
        config.database.url = os.environ["DATABASE_URL"]
    if os.environ.get("LLM_PROVIDER"):
        config.llm.provider = os.environ["LLM_PROVIDER"]
    if os.environ.get("LLM_MODEL"):
        config.llm.model = os.environ["LLM_MODEL"]
    if os.environ.get("OLLAMA_HOST"):
        config.llm.ollama_host = os.environ["OLLAMA_HOST"]
    if os.environ.get("WORKER_POLL_INTERVAL_MS"):
        config.worker.poll_interval_seconds = int(os.environ["WORKER_POLL_INTERVAL_MS"]) / 1000
    return config


# Global config instance (loaded on first access)
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration (lazy-loaded)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Config):
    """Set the global configuration (useful for testing)."""
    global _config
    _config = config


def reset_config():
    """Reset the global configuration (forces reload on next access)."""
    global _config
    _config = None
