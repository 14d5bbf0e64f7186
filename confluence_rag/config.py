"""Configuration management for the Confluence RAG service."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Application configuration loaded from environment variables."""

    # OpenAI Configuration
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get OpenAI API key from environment variables.

        Returns:
            OpenAI API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
    OPENAI_TIMEOUT: float = float(os.getenv("OPENAI_TIMEOUT", "60"))

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Embedding Configuration
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    EMBEDDING_BATCH_SIZE: int = int(os.getenv("EMBEDDING_BATCH_SIZE", "100"))

    # Chat Model Configuration
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-3.5-turbo")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "500"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))

    # Query Rewriting Configuration
    QUERY_REWRITE_ENABLED: bool = _env_flag("QUERY_REWRITE_ENABLED")
    QUERY_REWRITE_MAX_TOKENS: int = int(os.getenv("QUERY_REWRITE_MAX_TOKENS", "150"))
    QUERY_REWRITE_TEMPERATURE: float = float(
        os.getenv("QUERY_REWRITE_TEMPERATURE", "0.1")
    )

    # Confluence Configuration
    CONFLUENCE_URL: str = os.getenv("CONFLUENCE_URL", "").rstrip("/")
    CONFLUENCE_USERNAME: str = os.getenv("CONFLUENCE_USERNAME", "")
    CONFLUENCE_API_TOKEN: str = os.getenv("CONFLUENCE_API_TOKEN", "")
    CONFLUENCE_SPACE_KEY: str = os.getenv("CONFLUENCE_SPACE_KEY", "")
    CONFLUENCE_PAGE_LIMIT: int = int(os.getenv("CONFLUENCE_PAGE_LIMIT", "100"))
    CONFLUENCE_MAX_PAGES: int = int(os.getenv("CONFLUENCE_MAX_PAGES", "1000"))
    CONFLUENCE_TIMEOUT: float = float(os.getenv("CONFLUENCE_TIMEOUT", "30"))

    # Retrieval Configuration
    RETRIEVAL_TOP_K: int = int(os.getenv("RETRIEVAL_TOP_K", "4"))
    MAX_HISTORY_TURNS: int = int(os.getenv("MAX_HISTORY_TURNS", "10"))
    EXCERPT_LENGTH: int = int(os.getenv("EXCERPT_LENGTH", "200"))

    # Server Configuration
    HOST: str = os.getenv("HOST", "0.0.0.0")  # noqa: S104
    PORT: int = int(os.getenv("PORT", "3000"))
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    STATIC_DIR: Path = Path(os.getenv("STATIC_DIR", "public"))

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "ConfluenceRAG/1.0")

    @classmethod
    def missing_confluence_settings(cls) -> list[str]:
        """List Confluence settings that are not configured.

        Returns:
            Environment variable names with empty values, in declaration order.
        """
        settings = {
            "CONFLUENCE_URL": cls.CONFLUENCE_URL,
            "CONFLUENCE_USERNAME": cls.CONFLUENCE_USERNAME,
            "CONFLUENCE_API_TOKEN": cls.CONFLUENCE_API_TOKEN,
            "CONFLUENCE_SPACE_KEY": cls.CONFLUENCE_SPACE_KEY,
        }
        return [name for name, value in settings.items() if not value]

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Raises:
            ConfigurationError: If the OpenAI key or any Confluence setting
                is missing.
        """
        missing = []
        if not cls.get_openai_api_key():
            missing.append("OPENAI_API_KEY")
        missing.extend(cls.missing_confluence_settings())
        if missing:
            msg = (
                f"Missing required configuration: {', '.join(missing)}. "
                "Please set it in .env file or environment."
            )
            raise ConfigurationError(msg)

    @classmethod
    def cors_origins(cls) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        Returns:
            Origins allowed to call the HTTP API.
        """
        return [
            origin.strip() for origin in cls.CORS_ORIGINS.split(",") if origin.strip()
        ]

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment.

        Returns:
            True if environment is development.
        """
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment.

        Returns:
            True if environment is production.
        """
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at process startup with console output,
        a simple format and a level taken from the environment.
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        third_party_level = getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        for name in ("openai", "httpx"):
            logging.getLogger(name).setLevel(third_party_level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
