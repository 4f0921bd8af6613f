"""
Configuration module for snowproxy.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Project file looked up in the working directory when no path is given
DEFAULT_PROJECT_FILE = "project.yaml"

CONFIG_PATH_ENV = "SNOWPROXY_CONFIG_PATH"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section) or {}
    value = section_defaults.get(key, fallback)
    # Lists are copied so instances never share mutable defaults
    if isinstance(value, list):
        return list(value)
    return value


@dataclass
class ProjectConfig:
    """Project identification."""

    name: str = field(
        default_factory=lambda: _get_default("project", "name", "snow-cli-mcp-server")
    )
    version: str = field(default_factory=lambda: _get_default("project", "version", "1.0.0"))


@dataclass
class ExclusionConfig:
    """Objects that may never be read, described, synced or modified."""

    patterns: list[str] = field(
        default_factory=lambda: _get_default(
            "exclusions",
            "patterns",
            ["^PROD_", "_PROD$", "_BACKUP$", "_ARCHIVE$", "^SYSTEM_"],
        )
    )
    object_types: list[str] = field(
        default_factory=lambda: _get_default("exclusions", "object_types", ["SNAPSHOT"])
    )


@dataclass
class SnowCLIConfig:
    """Configuration for the snow CLI executor."""

    command: str = field(default_factory=lambda: _get_default("snowcli", "command", "snow"))
    connection: str = field(
        default_factory=lambda: _get_default("snowcli", "connection", "dev")
    )
    warehouse: Optional[str] = field(
        default_factory=lambda: _get_default("snowcli", "warehouse", None)
    )
    role: Optional[str] = field(default_factory=lambda: _get_default("snowcli", "role", None))
    timeout: float = field(default_factory=lambda: _get_default("snowcli", "timeout", 30.0))


@dataclass
class GuardrailConfig:
    """Limits applied by the query guardrail."""

    max_scalar_rows: int = field(
        default_factory=lambda: _get_default("guardrail", "max_scalar_rows", 1000)
    )


@dataclass
class SyncConfig:
    """Configuration for the object repository sync."""

    target_dir: str = field(default_factory=lambda: _get_default("sync", "target_dir", "./src"))
    record_fetch_failures: bool = field(
        default_factory=lambda: _get_default("sync", "record_fetch_failures", False)
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class ProxyConfig:
    """Main configuration class for snowproxy."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    exclusions: ExclusionConfig = field(default_factory=ExclusionConfig)
    snowcli: SnowCLIConfig = field(default_factory=SnowCLIConfig)
    guardrail: GuardrailConfig = field(default_factory=GuardrailConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "ProxyConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            ProxyConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported or a section is malformed
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            try:
                data = yaml.safe_load(content) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {path}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "ProxyConfig":
        """Create ProxyConfig from a dictionary."""
        config = cls()

        sections = {
            "project": ProjectConfig,
            "exclusions": ExclusionConfig,
            "snowcli": SnowCLIConfig,
            "guardrail": GuardrailConfig,
            "sync": SyncConfig,
            "logging": LoggingConfig,
        }
        for name, section_cls in sections.items():
            if name not in data or data[name] is None:
                continue
            try:
                setattr(config, name, section_cls(**data[name]))
            except TypeError as e:
                raise ValueError(f"Invalid '{name}' configuration section: {e}") from e

        return config

    def apply_env_overrides(self) -> "ProxyConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: SNOWPROXY_<SECTION>_<KEY>
        Examples:
            - SNOWPROXY_SNOWCLI_CONNECTION
            - SNOWPROXY_SNOWCLI_TIMEOUT
            - SNOWPROXY_EXCLUSIONS_PATTERNS (comma-separated)
            - SNOWPROXY_LOGGING_LEVEL

        SNOWFLAKE_CONNECTION is also honoured for the connection name.

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Exclusions
            "SNOWPROXY_EXCLUSIONS_PATTERNS": ("exclusions", "patterns", _parse_list),
            "SNOWPROXY_EXCLUSIONS_OBJECT_TYPES": ("exclusions", "object_types", _parse_list),
            # snow CLI
            "SNOWFLAKE_CONNECTION": ("snowcli", "connection", str),
            "SNOWPROXY_SNOWCLI_COMMAND": ("snowcli", "command", str),
            "SNOWPROXY_SNOWCLI_CONNECTION": ("snowcli", "connection", str),
            "SNOWPROXY_SNOWCLI_WAREHOUSE": ("snowcli", "warehouse", str),
            "SNOWPROXY_SNOWCLI_ROLE": ("snowcli", "role", str),
            "SNOWPROXY_SNOWCLI_TIMEOUT": ("snowcli", "timeout", float),
            # Guardrail
            "SNOWPROXY_GUARDRAIL_MAX_SCALAR_ROWS": ("guardrail", "max_scalar_rows", int),
            # Sync
            "SNOWPROXY_SYNC_TARGET_DIR": ("sync", "target_dir", str),
            "SNOWPROXY_SYNC_RECORD_FETCH_FAILURES": (
                "sync",
                "record_fetch_failures",
                _parse_bool,
            ),
            # Logging
            "SNOWPROXY_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string into a list of non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(config_path: Optional[Path | str] = None, apply_env: bool = True) -> ProxyConfig:
    """
    Load configuration with optional environment variable overrides.

    Resolution order for the file: the explicit ``config_path``, then
    ``$SNOWPROXY_CONFIG_PATH``, then ``./project.yaml`` if it exists. An
    explicit path that fails to load raises; an implicit one falls back to
    defaults with a warning.

    Args:
        config_path: Optional path to config file. If None, uses the lookup above.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        ProxyConfig instance
    """
    if config_path:
        config = ProxyConfig.from_file(config_path)
    else:
        implicit = os.environ.get(CONFIG_PATH_ENV) or DEFAULT_PROJECT_FILE
        if Path(implicit).exists():
            try:
                config = ProxyConfig.from_file(implicit)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load config from {implicit}, using defaults: {e}")
                config = ProxyConfig()
        else:
            config = ProxyConfig()

    if apply_env:
        config.apply_env_overrides()

    return config


class ConfigStore:
    """
    Holds the process-wide configuration.

    The configuration is loaded on first access and only replaced through
    an explicit ``reload()``; consumers receive the ProxyConfig value and
    never observe a half-updated instance.
    """

    def __init__(self, config_path: Optional[Path | str] = None, apply_env: bool = True):
        self._config_path = config_path
        self._apply_env = apply_env
        self._config: ProxyConfig | None = None

    def get(self) -> ProxyConfig:
        """Return the cached configuration, loading it on first use."""
        if self._config is None:
            self._config = load_config(self._config_path, apply_env=self._apply_env)
        return self._config

    def reload(self, config_path: Optional[Path | str] = None) -> ProxyConfig:
        """Load the configuration again, optionally from a different file."""
        if config_path is not None:
            self._config_path = config_path
        self._config = load_config(self._config_path, apply_env=self._apply_env)
        logger.info("Configuration reloaded", extra={"config_path": str(self._config_path)})
        return self._config

    def clear(self) -> None:
        """Drop the cached configuration."""
        self._config = None


def configure_logging(config: LoggingConfig) -> None:
    """
    Install a stderr handler on the root logger.

    stdout is reserved for the MCP stdio transport, so log records must
    never be written there.
    """
    root = logging.getLogger()
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    for handler in root.handlers:
        if getattr(handler, "_snowproxy_handler", False):
            handler.setFormatter(logging.Formatter(config.format))
            handler.setStream(sys.stderr)
            return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(config.format))
    handler._snowproxy_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
