"""
Application configuration with layered loading.

Configuration precedence (highest to lowest):
1. Environment variables
2. config.yml values
3. Default values defined here

This allows for flexible configuration across different environments
while maintaining sensible defaults.
"""
import os
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load .env file first (lowest priority, will be overridden by config.yml and env vars)
load_dotenv()

# Setup basic logging for config loading
logger = logging.getLogger(__name__)


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "config.example.yml").exists() or (parent / "pyproject.toml").exists():
            return parent
    return Path(os.getenv("WABOT_ROOT", os.getcwd()))


def _load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load configuration from YAML file if it exists."""
    if not config_path.exists():
        logger.debug(f"Config file not found: {config_path}")
        return {}

    try:
        import yaml
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except Exception as e:
        logger.error(f"Error loading config file {config_path}: {e}")
        return {}


def _get_nested(d: Dict, *keys, default=None):
    """Safely get a nested dictionary value."""
    for key in keys:
        if isinstance(d, dict):
            d = d.get(key, default)
        else:
            return default
    return d if d is not None else default


def _env_or_yaml(env_key: str, yaml_config: Dict, *yaml_keys, default=None):
    """Get value from environment variable, falling back to YAML config, then default."""
    env_value = os.getenv(env_key)
    if env_value is not None:
        return env_value

    yaml_value = _get_nested(yaml_config, *yaml_keys)
    if yaml_value is not None:
        return yaml_value

    return default


def _as_bool(value) -> bool:
    """Interpret env/yaml flag values ("true", "1", True...)."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# Find project root and load YAML config
PROJECT_ROOT = _find_project_root()
YAML_CONFIG = _load_yaml_config(PROJECT_ROOT / "config.yml")

# Resolve base paths from config
_paths_root = _env_or_yaml("WABOT_ROOT", YAML_CONFIG, "paths", "root", default=str(PROJECT_ROOT))
_paths_data = _env_or_yaml("WABOT_DATA_PATH", YAML_CONFIG, "paths", "data", default=f"{_paths_root}/data")
_paths_logs = _env_or_yaml("WABOT_LOGS_PATH", YAML_CONFIG, "paths", "logs", default=f"{_paths_root}/logs")


class BackendKind(str, Enum):
    """Which text-generation backend replies are produced with."""
    OPENAI = "openai"
    GEMINI = "gemini"
    NONE = "none"


def select_backend(openai_api_key: Optional[str], gemini_api_key: Optional[str]) -> BackendKind:
    """OpenAI wins when both keys are configured; no key means template replies."""
    if openai_api_key:
        return BackendKind.OPENAI
    if gemini_api_key:
        return BackendKind.GEMINI
    return BackendKind.NONE


class PathsConfig(BaseModel):
    """Path configuration."""
    root: Path = Path(_paths_root)
    data: Path = Path(_paths_data)
    logs: Path = Path(_paths_logs)


class ServerConfig(BaseModel):
    """HTTP server configuration."""
    host: str = _env_or_yaml("HOST", YAML_CONFIG, "server", "host", default="0.0.0.0")
    port: int = int(_env_or_yaml("PORT", YAML_CONFIG, "server", "port", default=3000))
    dev_mode: bool = _as_bool(_env_or_yaml("WABOT_DEV_MODE", YAML_CONFIG, "server", "dev_mode", default=False))


def _default_database_url() -> str:
    """Build the SQLAlchemy URL from DATABASE_URL, the MySQL DB_* variables, or a local SQLite file."""
    url = _env_or_yaml("DATABASE_URL", YAML_CONFIG, "database", "url", default=None)
    if url:
        return url

    host = _env_or_yaml("DB_HOST", YAML_CONFIG, "database", "host", default=None)
    if host:
        port = _env_or_yaml("DB_PORT", YAML_CONFIG, "database", "port", default=3306)
        user = _env_or_yaml("DB_USER", YAML_CONFIG, "database", "user", default="root")
        password = _env_or_yaml("DB_PASSWORD", YAML_CONFIG, "database", "password", default="")
        name = _env_or_yaml("DB_NAME", YAML_CONFIG, "database", "name", default="wabot_ai")
        return f"mysql+pymysql://{user}:{password}@{host}:{port}/{name}?charset=utf8mb4"

    return f"sqlite:///{_paths_data}/wabot.db"


class DatabaseConfig(BaseModel):
    """Database configuration."""
    url: str = _default_database_url()
    pool_size: int = int(_get_nested(YAML_CONFIG, "database", "pool_size", default=10))
    echo: bool = _as_bool(_get_nested(YAML_CONFIG, "database", "echo", default=False))


class LLMConfig(BaseModel):
    """Text-generation backend configuration."""
    openai_api_key: Optional[str] = _env_or_yaml("OPENAI_API_KEY", YAML_CONFIG, "llm", "openai", "api_key", default=None)
    openai_model: str = _env_or_yaml("OPENAI_MODEL", YAML_CONFIG, "llm", "openai", "model", default="gpt-3.5-turbo")
    openai_base_url: Optional[str] = _env_or_yaml("OPENAI_BASE_URL", YAML_CONFIG, "llm", "openai", "base_url", default=None)
    gemini_api_key: Optional[str] = _env_or_yaml("GEMINI_API_KEY", YAML_CONFIG, "llm", "gemini", "api_key", default=None)
    gemini_model: str = _env_or_yaml("GEMINI_MODEL", YAML_CONFIG, "llm", "gemini", "model", default="gemini-1.5-pro")
    gemini_base_url: str = _env_or_yaml(
        "GEMINI_BASE_URL", YAML_CONFIG, "llm", "gemini", "base_url",
        default="https://generativelanguage.googleapis.com/v1beta"
    )
    temperature: float = float(_env_or_yaml("LLM_TEMPERATURE", YAML_CONFIG, "llm", "temperature", default=0.7))
    max_tokens: int = int(_env_or_yaml("LLM_MAX_TOKENS", YAML_CONFIG, "llm", "max_tokens", default=500))
    presence_penalty: float = float(_get_nested(YAML_CONFIG, "llm", "presence_penalty", default=0.1))
    frequency_penalty: float = float(_get_nested(YAML_CONFIG, "llm", "frequency_penalty", default=0.1))
    timeout_seconds: float = float(_env_or_yaml("LLM_TIMEOUT_SECONDS", YAML_CONFIG, "llm", "timeout_seconds", default=30.0))

    @property
    def backend_kind(self) -> BackendKind:
        """Backend resolved from the configured credentials."""
        return select_backend(self.openai_api_key, self.gemini_api_key)


class AssistantConfig(BaseModel):
    """Reply pipeline configuration."""
    bot_name: str = _env_or_yaml("WABOT_BOT_NAME", YAML_CONFIG, "assistant", "bot_name", default="WABOT")
    knowledge_limit: int = int(_get_nested(YAML_CONFIG, "assistant", "knowledge_limit", default=3))
    history_window: int = int(_get_nested(YAML_CONFIG, "assistant", "history_window", default=10))
    # "unfiltered" searches the whole knowledge base for intents without a category, "skip" does not search
    unmapped_intent_search: str = _get_nested(YAML_CONFIG, "assistant", "unmapped_intent_search", default="unfiltered")


class WebhookConfig(BaseModel):
    """Outbound workflow (n8n) webhook configuration."""
    n8n_url: Optional[str] = _env_or_yaml("N8N_WEBHOOK_URL", YAML_CONFIG, "webhook", "n8n_url", default=None)
    timeout_seconds: float = float(_get_nested(YAML_CONFIG, "webhook", "timeout_seconds", default=10.0))


DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = _env_or_yaml("WABOT_LOG_LEVEL", YAML_CONFIG, "logging", "level", default="INFO")
    format: str = _env_or_yaml("WABOT_LOG_FORMAT", YAML_CONFIG, "logging", "format", default=DEFAULT_LOG_FORMAT)


class Settings(BaseModel):
    """
    Application settings with layered configuration.

    Configuration is loaded from (in order of precedence):
    1. Environment variables
    2. config.yml
    3. Default values
    """

    paths: PathsConfig = Field(default_factory=PathsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def backend_kind(self) -> BackendKind:
        return self.llm.backend_kind

    @property
    def n8n_webhook_url(self) -> Optional[str]:
        return self.webhook.n8n_url


# Create singleton instance
settings = Settings()


# Dotted config.yml paths whose environment variable is not the path upper-cased
ENV_KEYS = {
    "llm.openai.api_key": "OPENAI_API_KEY",
    "llm.gemini.api_key": "GEMINI_API_KEY",
    "webhook.n8n_url": "N8N_WEBHOOK_URL",
    "database.url": "DATABASE_URL",
    "server.port": "PORT",
    "logging.level": "WABOT_LOG_LEVEL",
}


def get_config_source(key: str) -> str:
    """
    Get the source of a configuration value.

    Args:
        key: Dotted config.yml path, e.g. "llm.openai.api_key"

    Returns 'env', 'yaml', or 'default'.
    """
    env_key = ENV_KEYS.get(key, key.upper().replace(".", "_"))
    if os.getenv(env_key) is not None:
        return "env"

    keys = key.split(".")
    yaml_value = _get_nested(YAML_CONFIG, *keys)
    if yaml_value is not None:
        return "yaml"

    return "default"
