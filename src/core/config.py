#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for the analysis core's configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict
from pathlib import Path

import pytz

logger = logging.getLogger(__name__)


@dataclass
class AnalysisConfig:
    """Analysis core configuration."""
    # Result cache
    cache_size: int = 1000
    cache_timeout_seconds: int = 300  # 5 minutes

    # Retry policy
    max_retries: int = 3
    retry_base_delay_ms: int = 100
    retry_max_delay_ms: int = 5000
    retry_backoff_multiplier: float = 2.0

    # Circuit breaker / fallback
    circuit_breaker_threshold: int = 5
    fallback_enabled: bool = True
    validation_enabled: bool = True

    # Monitoring and learning
    performance_monitoring: bool = True
    max_session_history: int = 1000
    max_recovery_attempts: int = 3

    # Used to derive time of day when the context does not provide one
    timezone: str = "UTC"


@dataclass
class IntegrationConfig:
    """External integration configuration."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    openai_timeout_seconds: float = 30.0


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    analysis: AnalysisConfig
    integrations: IntegrationConfig
    app: ApplicationConfig

    # Environment info
    environment: str = field(default_factory=lambda: os.getenv('ENVIRONMENT', 'development'))
    is_ci: bool = field(default_factory=lambda: bool(os.getenv('CI') or os.getenv('GITHUB_ACTIONS')))

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ['dev', 'development', 'local']

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ['prod', 'production']

    def has_openai(self) -> bool:
        """Check if the OpenAI strategy is available."""
        return bool(self.integrations.openai_api_key)

    def tzinfo(self):
        return pytz.timezone(self.analysis.timezone)


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        self._env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self) -> None:
        """Load environment variables from .env file."""
        project_root = Path(__file__).parent.parent.parent
        env_path = project_root / self._env_file_path

        if env_path.exists():
            self._load_env_file(env_path)
        else:
            logger.debug(f"No .env file found at {env_path}")

    def _load_env_file(self, env_path: Path) -> None:
        """Load variables from .env file."""
        try:
            with open(env_path, 'r', encoding='utf-8') as f:
                lines = f.readlines()
        except OSError as e:
            logger.error(f"Error loading .env file {env_path}: {e}")
            return

        loaded_count = 0
        for line_num, line in enumerate(lines, 1):
            line = line.strip()

            if not line or line.startswith('#'):
                continue

            if '=' not in line:
                logger.warning(f"Invalid .env format at line {line_num}: {line}")
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]

            # Environment variables take precedence
            if key not in os.environ:
                os.environ[key] = value
                loaded_count += 1
                logger.debug(f"Loaded {key} from .env")
            else:
                logger.debug(f"Skipped {key} (already in environment)")

        logger.info(f"Loaded {loaded_count} variables from {env_path}")

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""
        analysis_config = AnalysisConfig(
            cache_size=int(os.getenv('ANALYSIS_CACHE_SIZE', '1000')),
            cache_timeout_seconds=int(os.getenv('ANALYSIS_CACHE_TTL', '300')),
            max_retries=int(os.getenv('ANALYSIS_MAX_RETRIES', '3')),
            retry_base_delay_ms=int(os.getenv('ANALYSIS_RETRY_BASE_DELAY_MS', '100')),
            retry_max_delay_ms=int(os.getenv('ANALYSIS_RETRY_MAX_DELAY_MS', '5000')),
            retry_backoff_multiplier=float(os.getenv('ANALYSIS_RETRY_BACKOFF', '2.0')),
            circuit_breaker_threshold=int(os.getenv('CIRCUIT_BREAKER_THRESHOLD', '5')),
            fallback_enabled=os.getenv('ANALYSIS_FALLBACK_ENABLED', 'true').lower() == 'true',
            validation_enabled=os.getenv('ANALYSIS_VALIDATION_ENABLED', 'true').lower() == 'true',
            performance_monitoring=os.getenv('PERFORMANCE_MONITORING', 'true').lower() == 'true',
            max_session_history=int(os.getenv('MAX_SESSION_HISTORY', '1000')),
            max_recovery_attempts=int(os.getenv('MAX_RECOVERY_ATTEMPTS', '3')),
            timezone=os.getenv('ANALYSIS_TIMEZONE', 'UTC')
        )

        integration_config = IntegrationConfig(
            openai_api_key=os.getenv('OPENAI_API_KEY'),
            openai_model=os.getenv('OPENAI_MODEL', 'gpt-4o'),
            openai_timeout_seconds=float(os.getenv('OPENAI_TIMEOUT', '30'))
        )

        app_config = ApplicationConfig(
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=os.getenv('VERBOSE_LOGGING', 'false').lower() == 'true'
        )

        config = Config(
            analysis=analysis_config,
            integrations=integration_config,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []
        analysis = config.analysis

        if analysis.cache_size < 1:
            errors.append("ANALYSIS_CACHE_SIZE must be at least 1")

        if analysis.cache_timeout_seconds < 1:
            errors.append("ANALYSIS_CACHE_TTL must be at least 1 second")

        if analysis.max_retries < 0 or analysis.max_retries > 10:
            errors.append("ANALYSIS_MAX_RETRIES must be between 0 and 10")

        if analysis.retry_base_delay_ms < 0 or analysis.retry_max_delay_ms < analysis.retry_base_delay_ms:
            errors.append("ANALYSIS_RETRY_MAX_DELAY_MS must be at least ANALYSIS_RETRY_BASE_DELAY_MS")

        if analysis.retry_backoff_multiplier < 1:
            errors.append("ANALYSIS_RETRY_BACKOFF must be at least 1")

        if analysis.circuit_breaker_threshold < 1:
            errors.append("CIRCUIT_BREAKER_THRESHOLD must be at least 1")

        if analysis.max_session_history < 1:
            errors.append("MAX_SESSION_HISTORY must be at least 1")

        if analysis.timezone not in pytz.all_timezones_set:
            errors.append(f"ANALYSIS_TIMEZONE is not a known timezone: {analysis.timezone}")

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.info("Configuration validation passed")

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        numeric_level = getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        if config.app.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)

    def get_integration_status(self) -> Dict[str, bool]:
        """Get status of all integrations."""
        config = self.get_config()
        return {
            'openai': config.has_openai()
        }


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
