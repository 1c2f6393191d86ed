"""Configuration management with environment variables and CLI overrides."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class LLMConfig(BaseSettings):
    """LLM configuration (any OpenAI-compatible endpoint, DeepSeek by default)."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: str = Field(default="", description="API key")
    base_url: str = Field(default="https://api.deepseek.com", description="API base URL")
    model: str = Field(default="deepseek-chat", description="Model name")
    max_tokens: int = Field(default=8192, description="Max tokens per request")
    temperature: float = Field(default=1.3, description="Temperature for generation")
    timeout_seconds: float = Field(default=600.0, description="Request timeout in seconds")


class CrawlerConfig(BaseSettings):
    """Crawler configuration."""

    model_config = SettingsConfigDict(env_prefix="CRAWLER_")

    timeout_seconds: int = Field(default=30, description="Request timeout in seconds")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
            " (KHTML, like Gecko) Chrome/136.0.0.0 Safari/537.36 Edg/136.0.0.0"
        ),
        description="User agent string",
    )
    accept_language: str = Field(
        default="ja,en-US;q=0.9,en;q=0.8", description="Accept-Language header"
    )


class PipelineConfig(BaseSettings):
    """Pipeline coordinator configuration."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    poll_interval_ms: int = Field(
        default=200, description="Tick interval of the front-end polling loop in ms"
    )


class StorageConfig(BaseSettings):
    """Glossary and translation cache storage."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Field(default=Path("."), description="Directory holding the store files")
    glossary_file: str = Field(default="keywords.json", description="Glossary file name")
    cache_file: str = Field(default="translations.json", description="Translation cache file name")
    strict_reads: bool = Field(
        default=False,
        description="Fail instead of treating a corrupt store file as empty",
    )

    @property
    def glossary_path(self) -> Path:
        return self.data_dir / self.glossary_file

    @property
    def cache_path(self) -> Path:
        return self.data_dir / self.cache_file


# ---------------------------------------------------------------------------
# Main AppConfig
# ---------------------------------------------------------------------------


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", description="Logging level")

    llm: LLMConfig = Field(default_factory=LLMConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "AppConfig":
        """Load configuration from environment and .env file."""
        from dotenv import load_dotenv

        if env_file and env_file.exists():
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls(
            llm=LLMConfig(),
            crawler=CrawlerConfig(),
            pipeline=PipelineConfig(),
            storage=StorageConfig(),
        )


# ---------------------------------------------------------------------------
# Global config singleton
# ---------------------------------------------------------------------------

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
