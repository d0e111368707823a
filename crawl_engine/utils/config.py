"""
Configuration management for the crawl engine.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior and budgets."""
    max_connections: int = 200
    max_host_connections: int = 6
    max_total: int = 100
    max_requests: int = 500
    max_link_per_page: int = 5
    follow_relative_links: bool = False
    min_body_size: int = 100
    min_link_length: int = 20
    poll_interval: float = 1.0
    request_timeout: float = 5.0
    connect_timeout: float = 2.0
    max_redirects: int = 10
    user_agent: str = "Crawler Project"
    random_seed: Optional[int] = None


@dataclass
class OutputConfig:
    """Configuration for the result sink."""
    file: str = "datafile.txt"


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _build_section(section_cls, data: Optional[Dict[str, Any]]):
    """Build a config section, rejecting keys the dataclass does not know."""
    data = data or {}
    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(
            f"Unknown keys in '{section_cls.__name__}': {', '.join(sorted(unknown))}"
        )
    return section_cls(**data)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from a YAML file, or defaults when no path is set."""
        config_data: Dict[str, Any] = {}
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}

        if not isinstance(config_data, dict):
            raise ValueError("Configuration root must be a mapping")

        self._config = Config(
            crawler=_build_section(CrawlerConfig, config_data.get('crawler')),
            output=_build_section(OutputConfig, config_data.get('output')),
            logging=_build_section(LoggingConfig, config_data.get('logging')),
            monitoring=_build_section(MonitoringConfig, config_data.get('monitoring')),
        )

        validate_config(self._config)
        return self._config

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def validate_config(config: Config):
    """Validate configuration values."""
    crawler = config.crawler

    if crawler.max_connections < 1:
        raise ValueError("max_connections must be at least 1")

    if crawler.max_host_connections < 1:
        raise ValueError("max_host_connections must be at least 1")

    if crawler.max_total < 1:
        raise ValueError("max_total must be at least 1")

    if crawler.max_requests < 1:
        raise ValueError("max_requests must be at least 1")

    if crawler.max_link_per_page < 0:
        raise ValueError("max_link_per_page must be non-negative")

    if crawler.min_body_size < 0 or crawler.min_link_length < 0:
        raise ValueError("min_body_size and min_link_length must be non-negative")

    if crawler.poll_interval <= 0:
        raise ValueError("poll_interval must be positive")

    if crawler.request_timeout <= 0 or crawler.connect_timeout <= 0:
        raise ValueError("request_timeout and connect_timeout must be positive")

    if crawler.max_redirects < 0:
        raise ValueError("max_redirects must be non-negative")

    if not config.output.file:
        raise ValueError("output.file must not be empty")

    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ValueError(f"Unknown log level: {config.logging.level}")

    logging.getLogger(__name__).debug("Configuration validation passed")


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file, falling back to defaults."""
    return ConfigManager(config_path).load_config()
