"""
Configuration validation and management for the FAQ Chat Widget API.

This module validates all required environment variables on startup
and provides centralized configuration access.
"""

import os
from typing import Optional, List
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful customer support assistant. Be friendly, professional, "
    "and concise. Use the FAQ context to give accurate answers. If you don't "
    "know something, say so."
)

# 30 days
DEFAULT_SESSION_TTL_SECONDS = 30 * 24 * 60 * 60

GENERATION_PROVIDERS = ("gemini", "workers_ai")


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    key: str
    message: str
    is_critical: bool = True


@dataclass
class AppConfig:
    """Application configuration with validated values."""

    # API Keys
    gemini_api_key: str = ""
    cohere_api_key: str = ""

    # Qdrant
    qdrant_url: str = ""
    qdrant_api_key: str = ""
    qdrant_collection_name: str = "faq_entries"

    # Model Configuration
    embedding_model: str = "embed-english-v3.0"
    generation_provider: str = "gemini"
    gemini_model_name: str = "gemini-2.5-flash"
    workers_ai_account_id: str = ""
    workers_ai_api_token: str = ""
    workers_ai_model: str = "@cf/meta/llama-3-8b-instruct"
    request_timeout: int = 60

    # Sessions
    redis_url: str = ""
    session_key_prefix: str = "chatbot_session:"
    session_cookie_name: str = "chatbot_session"
    session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS

    # Chat behaviour
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    history_window: int = 10
    retrieval_top_k: int = 3

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Static assets
    static_directory: str = "public"
    static_cache_control: str = "public, max-age=31536000, immutable"

    # CORS
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    cors_allow_methods: List[str] = field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: List[str] = field(default_factory=lambda: ["Content-Type"])


class ConfigValidator:
    """Validates and loads application configuration."""

    REQUIRED_VARS = [
        ("COHERE_API_KEY", "Required for FAQ embeddings"),
        ("QDRANT_URL", "Required for the FAQ vector index"),
    ]

    PROVIDER_VARS = {
        "gemini": [
            ("GEMINI_API_KEY", "Required for Gemini chat generation"),
        ],
        "workers_ai": [
            ("WORKERS_AI_ACCOUNT_ID", "Required for Workers AI chat generation"),
            ("WORKERS_AI_API_TOKEN", "Required for Workers AI chat generation"),
        ],
    }

    OPTIONAL_VARS = [
        ("QDRANT_API_KEY", "Required for Qdrant Cloud authentication"),
        ("REDIS_URL", "Sessions are kept in process memory when unset"),
    ]

    def __init__(self):
        self.errors: List[ConfigValidationError] = []
        self.warnings: List[str] = []
        self.config: Optional[AppConfig] = None

    def validate(self) -> bool:
        """
        Validate all configuration values.

        Returns:
            bool: True if all critical validations pass
        """
        self.errors = []
        self.warnings = []

        required = list(self.REQUIRED_VARS)
        provider = os.getenv("GENERATION_PROVIDER", "gemini").strip().lower()
        if provider not in GENERATION_PROVIDERS:
            self.errors.append(ConfigValidationError(
                key="GENERATION_PROVIDER",
                message=f"Invalid GENERATION_PROVIDER: {provider}. Must be one of {', '.join(GENERATION_PROVIDERS)}",
                is_critical=True
            ))
        else:
            required.extend(self.PROVIDER_VARS[provider])

        # Check required variables
        for var_name, description in required:
            value = os.getenv(var_name)
            if not value or value.strip() == "":
                self.errors.append(ConfigValidationError(
                    key=var_name,
                    message=f"Missing required environment variable: {var_name}. {description}",
                    is_critical=True
                ))

        # Check optional variables
        for var_name, description in self.OPTIONAL_VARS:
            value = os.getenv(var_name)
            if not value or value.strip() == "":
                self.warnings.append(f"Optional variable not set: {var_name}. {description}")

        # Validate specific formats
        self._validate_qdrant_url()
        self._validate_redis_url()
        self._validate_port()
        self._validate_numeric_values()

        return len([e for e in self.errors if e.is_critical]) == 0

    def _validate_qdrant_url(self) -> None:
        """Validate Qdrant URL format."""
        url = os.getenv("QDRANT_URL", "")
        if url and url != ":memory:" and not (url.startswith("http://") or url.startswith("https://")):
            self.errors.append(ConfigValidationError(
                key="QDRANT_URL",
                message=f"Invalid QDRANT_URL format: {url}. Must start with http:// or https:// (or be :memory:)",
                is_critical=True
            ))

    def _validate_redis_url(self) -> None:
        """Validate Redis URL scheme."""
        url = os.getenv("REDIS_URL", "")
        if url and not url.startswith(("redis://", "rediss://", "unix://")):
            self.errors.append(ConfigValidationError(
                key="REDIS_URL",
                message=f"Invalid REDIS_URL format: {url}. Must start with redis://, rediss:// or unix://",
                is_critical=True
            ))

    def _validate_port(self) -> None:
        """Validate port number."""
        port_str = os.getenv("PORT", "8000")
        try:
            port = int(port_str)
            if port < 1 or port > 65535:
                self.errors.append(ConfigValidationError(
                    key="PORT",
                    message=f"Invalid PORT: {port}. Must be between 1 and 65535",
                    is_critical=False
                ))
        except ValueError:
            self.errors.append(ConfigValidationError(
                key="PORT",
                message=f"Invalid PORT: {port_str}. Must be a number",
                is_critical=False
            ))

    def _validate_numeric_values(self) -> None:
        """Validate numeric configuration values."""
        numeric_vars = [
            ("SESSION_TTL_SECONDS", 60, 365 * 24 * 60 * 60),
            ("HISTORY_WINDOW", 1, 100),
            ("RETRIEVAL_TOP_K", 1, 20),
            ("REQUEST_TIMEOUT", 1, 600),
        ]

        for var_name, min_val, max_val in numeric_vars:
            value_str = os.getenv(var_name)
            if value_str:
                try:
                    value = int(value_str)
                    if value < min_val or value > max_val:
                        self.warnings.append(
                            f"{var_name}={value} is outside recommended range [{min_val}, {max_val}]"
                        )
                except ValueError:
                    self.errors.append(ConfigValidationError(
                        key=var_name,
                        message=f"Invalid {var_name}: {value_str}. Must be a number",
                        is_critical=False
                    ))

    def load_config(self) -> AppConfig:
        """
        Load and return configuration from the environment.

        Never raises: unparsable values fall back to their defaults.

        Returns:
            AppConfig: Loaded configuration object
        """
        def safe_int(value: str, default: int) -> int:
            try:
                return int(value) if value else default
            except (ValueError, TypeError):
                return default

        def safe_bool(value: str, default: bool) -> bool:
            if not value:
                return default
            return value.lower() in ("true", "1", "yes")

        cors_origins_str = os.getenv("CORS_ORIGINS", "*")
        cors_origins = [o.strip() for o in cors_origins_str.split(",") if o.strip()]

        self.config = AppConfig(
            gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
            cohere_api_key=os.getenv("COHERE_API_KEY", "").strip(),
            qdrant_url=os.getenv("QDRANT_URL", "").strip(),
            qdrant_api_key=os.getenv("QDRANT_API_KEY", "").strip(),
            qdrant_collection_name=os.getenv("QDRANT_COLLECTION_NAME", "faq_entries"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "embed-english-v3.0"),
            generation_provider=os.getenv("GENERATION_PROVIDER", "gemini").strip().lower(),
            gemini_model_name=os.getenv("GEMINI_MODEL_NAME", "gemini-2.5-flash"),
            workers_ai_account_id=os.getenv("WORKERS_AI_ACCOUNT_ID", "").strip(),
            workers_ai_api_token=os.getenv("WORKERS_AI_API_TOKEN", "").strip(),
            workers_ai_model=os.getenv("WORKERS_AI_MODEL", "@cf/meta/llama-3-8b-instruct"),
            request_timeout=safe_int(os.getenv("REQUEST_TIMEOUT"), 60),
            redis_url=os.getenv("REDIS_URL", "").strip(),
            session_key_prefix=os.getenv("SESSION_KEY_PREFIX", "chatbot_session:"),
            session_ttl_seconds=safe_int(os.getenv("SESSION_TTL_SECONDS"), DEFAULT_SESSION_TTL_SECONDS),
            history_window=safe_int(os.getenv("HISTORY_WINDOW"), 10),
            retrieval_top_k=safe_int(os.getenv("RETRIEVAL_TOP_K"), 3),
            host=os.getenv("HOST", "0.0.0.0"),
            port=safe_int(os.getenv("PORT"), 8000),
            debug=safe_bool(os.getenv("DEBUG"), False),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            static_directory=os.getenv("STATIC_DIRECTORY", "public"),
            cors_origins=cors_origins or ["*"],
        )

        return self.config

    def print_status(self) -> None:
        """Print configuration status to console."""
        print("\n" + "=" * 60)
        print("CONFIGURATION VALIDATION")
        print("=" * 60)

        if self.errors:
            print("\n[X] ERRORS:")
            for error in self.errors:
                critical = "[CRITICAL]" if error.is_critical else "[WARNING]"
                print(f"  {critical} {error.key}: {error.message}")

        if self.warnings:
            print("\n[!] WARNINGS:")
            for warning in self.warnings:
                print(f"  - {warning}")

        if not self.errors and not self.warnings:
            print("\n[OK] All configuration values are valid!")

        print("=" * 60 + "\n")


def load_config() -> AppConfig:
    """Load configuration without validating it."""
    return ConfigValidator().load_config()


def validate_config_on_startup() -> AppConfig:
    """
    Validate configuration on application startup.

    Raises:
        ValueError: If critical configuration is missing (instead of SystemExit for serverless compatibility)

    Returns:
        AppConfig: Validated configuration
    """
    validator = ConfigValidator()
    is_valid = validator.validate()
    config = validator.load_config()

    validator.print_status()

    if not is_valid:
        error_msgs = [f"{error.key}: {error.message}" for error in validator.errors if error.is_critical]
        raise ValueError(
            f"Cannot start application due to configuration errors. "
            f"Missing or invalid: {', '.join(error_msgs)}"
        )

    return config


# Global config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global configuration instance.

    Returns:
        AppConfig: Application configuration
    """
    global _config
    if _config is None:
        _config = validate_config_on_startup()
    return _config
