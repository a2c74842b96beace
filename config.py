"""
Configuration management for the site crawler.
"""

import os
import threading
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, asdict
from pathlib import Path
import json
import logging
from jsonschema import validate, ValidationError as SchemaValidationError

from site_crawler.utils.errors import ConfigurationError


@dataclass
class CrawlerConfig:
    """Crawler configuration settings."""
    url: str = "https://crawler-test.com/"
    max_workers: int = 2
    request_deadline: int = 5
    same_subdomain: bool = True
    ignore_fragments: bool = True
    ignored_extensions: List[str] = field(default_factory=list)
    ignored_paths: List[str] = field(default_factory=list)
    at_most_once: bool = False
    poll_interval: float = 0.2


@dataclass
class OutputConfig:
    """Result output settings."""
    format: str = "text"
    file: Optional[str] = None
    interactive: bool = False


@dataclass
class SystemConfig:
    """Main system configuration."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    log_level: str = "INFO"
    json_log: bool = False
    log_file: Optional[str] = None


# Configuration schema for validation
CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "crawler": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "minLength": 1},
                "max_workers": {"type": "integer", "minimum": 1, "maximum": 512},
                "request_deadline": {"type": "integer", "minimum": 1, "maximum": 300},
                "same_subdomain": {"type": "boolean"},
                "ignore_fragments": {"type": "boolean"},
                "ignored_extensions": {"type": "array", "items": {"type": "string"}},
                "ignored_paths": {"type": "array", "items": {"type": "string"}},
                "at_most_once": {"type": "boolean"},
                "poll_interval": {"type": "number", "exclusiveMinimum": 0, "maximum": 10.0}
            },
            "additionalProperties": False
        },
        "output": {
            "type": "object",
            "properties": {
                "format": {"type": "string", "enum": ["text", "json", "xml"]},
                "file": {"type": ["string", "null"]},
                "interactive": {"type": "boolean"}
            },
            "additionalProperties": False
        },
        "log_level": {
            "type": "string",
            "enum": ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        },
        "json_log": {"type": "boolean"},
        "log_file": {"type": ["string", "null"]}
    },
    "additionalProperties": False
}

# Environment variable -> (section, field, converter)
ENV_OVERRIDES = {
    "CRAWLER_URL": ("crawler", "url", str),
    "CRAWLER_WORKERS": ("crawler", "max_workers", int),
    "CRAWLER_DEADLINE": ("crawler", "request_deadline", int),
    "CRAWLER_OUTPUT_FORMAT": ("output", "format", str),
    "CRAWLER_LOG_LEVEL": (None, "log_level", str.upper),
}


class ConfigManager:
    """Loads, validates and saves the crawler configuration."""

    def __init__(self, config_path: str = "crawler.json"):
        self.config_path = Path(config_path)
        self._config: Optional[SystemConfig] = None
        self._lock = threading.RLock()

    def validate_config(self, config_data: Dict[str, Any]) -> None:
        """Validate configuration data against schema."""
        try:
            validate(instance=config_data, schema=CONFIG_SCHEMA)
        except SchemaValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e.message}",
                                     {"path": list(e.absolute_path)})

    def load_config(self) -> SystemConfig:
        """
        Load configuration from the JSON file when it exists, then apply
        and validate environment overrides.

        Raises:
            ConfigurationError: If the file is unreadable or invalid
        """
        with self._lock:
            if self.config_path.exists():
                self._config = self._load_from_file()
            else:
                self._config = SystemConfig()

            self._override_with_env_vars(self._config)
            self.validate_current()
            return self._config

    def validate_current(self) -> None:
        """
        Validate the loaded configuration after overrides were applied.

        Raises:
            ConfigurationError: If any value falls outside the schema
        """
        with self._lock:
            if not self._config:
                raise ConfigurationError("No configuration loaded to validate")
            self.validate_config(self.export_config())

    def _load_from_file(self) -> SystemConfig:
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {self.config_path}: {e}")

        self.validate_config(config_data)
        config = self._dict_to_config(config_data)

        logging.getLogger(__name__).debug(f"Configuration loaded and validated from {self.config_path}")
        return config

    def _override_with_env_vars(self, config: SystemConfig) -> None:
        """Override configuration with environment variables."""
        for env_name, (section, attr, convert) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except ValueError:
                raise ConfigurationError(f"Invalid value for {env_name}: {raw!r}")

            target = getattr(config, section) if section else config
            setattr(target, attr, value)

    def _dict_to_config(self, data: Dict[str, Any]) -> SystemConfig:
        """Convert dictionary to SystemConfig object."""
        config = SystemConfig()

        if "crawler" in data:
            config.crawler = CrawlerConfig(**data["crawler"])

        if "output" in data:
            config.output = OutputConfig(**data["output"])

        config.log_level = data.get("log_level", config.log_level)
        config.json_log = data.get("json_log", config.json_log)
        config.log_file = data.get("log_file", config.log_file)

        return config

    def export_config(self) -> Dict[str, Any]:
        """Export current configuration as dictionary."""
        with self._lock:
            if not self._config:
                return {}

            return {
                "crawler": asdict(self._config.crawler),
                "output": asdict(self._config.output),
                "log_level": self._config.log_level,
                "json_log": self._config.json_log,
                "log_file": self._config.log_file
            }

    def save_config(self, config_path: Optional[str] = None) -> None:
        """Save current configuration to file."""
        with self._lock:
            if not self._config:
                raise ConfigurationError("No configuration loaded to save")

            save_path = Path(config_path) if config_path else self.config_path
            config_dict = self.export_config()

            # Validate before saving
            self.validate_config(config_dict)

            with open(save_path, 'w', encoding='utf-8') as f:
                json.dump(config_dict, f, indent=2, ensure_ascii=False)

            logging.getLogger(__name__).info(f"Configuration saved to {save_path}")


def get_config(config_path: Optional[str] = None) -> SystemConfig:
    """Load the configuration from ``config_path`` (default ``crawler.json``)."""
    return ConfigManager(config_path or "crawler.json").load_config()
