"""
Configuration Module - Load and manage chat memory configuration.

This module provides support for loading configuration from:
- YAML configuration files (.chat-memory.yml)
- Environment variables
- Programmatic configuration

Configuration precedence (highest to lowest):
1. Programmatic configuration (passed as overrides)
2. Environment variables
3. Configuration file
4. Default values

Memory settings left unset (None) keep whatever the persisted store holds.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .memory.types import DEFAULT_SEARCH_LIMIT, DEFAULT_SEARCH_THRESHOLD


logger = logging.getLogger(__name__)


# Default configuration file names (in order of precedence)
CONFIG_FILE_NAMES = [
    ".chat-memory.yml",
    ".chat-memory.yaml",
    "chat-memory.yml",
    "chat-memory.yaml",
]

STORAGE_BACKENDS = ("json", "sqlite", "memory")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class StorageConfig:
    """Where memories are persisted."""

    backend: str = "json"  # "json", "sqlite" or "memory"
    path: Optional[str] = None


@dataclass
class SearchConfig:
    """Defaults for semantic search."""

    limit: int = DEFAULT_SEARCH_LIMIT
    threshold: float = DEFAULT_SEARCH_THRESHOLD


@dataclass
class ProviderOptions:
    """Connection options for one embedding provider."""

    api_key: Optional[str] = None
    api_base: Optional[str] = None
    timeout: float = 30.0


@dataclass
class ChatMemoryConfig:
    """
    Complete configuration for chat memory.

    Example YAML configuration:
        ```yaml
        memory:
          enabled: true
          embed_provider: "ollama"
          embed_model: "nomic-embed-text"

        storage:
          backend: "sqlite"
          path: "~/.chat_memory/memory.db"

        search:
          limit: 5
          threshold: 0.7

        providers:
          ollama:
            api_base: "http://localhost:11434"
        ```
    """

    # Memory settings (None keeps the persisted value)
    enabled: Optional[bool] = None
    embed_provider: Optional[str] = None
    embed_model: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None

    # Sub-configurations
    storage: StorageConfig = field(default_factory=StorageConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    providers: Dict[str, ProviderOptions] = field(default_factory=dict)

    def provider_options(self, provider_id: str) -> ProviderOptions:
        """Options for a provider, defaults if none are configured."""
        return self.providers.get(provider_id.lower(), ProviderOptions())

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMemoryConfig":
        """Create configuration from dictionary."""
        memory_data = data.get("memory", {}) or {}
        storage_data = data.get("storage", {}) or {}
        search_data = data.get("search", {}) or {}
        providers_data = data.get("providers", {}) or {}

        backend = storage_data.get("backend", "json")
        if backend not in STORAGE_BACKENDS:
            raise ConfigError(
                f"Unknown storage backend: {backend}. "
                f"Available backends: {', '.join(STORAGE_BACKENDS)}"
            )

        enabled = memory_data.get("enabled")
        return cls(
            enabled=_parse_bool(enabled) if enabled is not None else None,
            embed_provider=memory_data.get("embed_provider"),
            embed_model=memory_data.get("embed_model"),
            provider=memory_data.get("provider"),
            model=memory_data.get("model"),
            storage=StorageConfig(
                backend=backend,
                path=storage_data.get("path"),
            ),
            search=SearchConfig(
                limit=int(search_data.get("limit", DEFAULT_SEARCH_LIMIT)),
                threshold=float(search_data.get("threshold", DEFAULT_SEARCH_THRESHOLD)),
            ),
            providers={
                name.lower(): ProviderOptions(
                    api_key=(options or {}).get("api_key"),
                    api_base=(options or {}).get("api_base"),
                    timeout=float((options or {}).get("timeout", 30.0)),
                )
                for name, options in providers_data.items()
            },
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            "memory": {
                "enabled": self.enabled,
                "embed_provider": self.embed_provider,
                "embed_model": self.embed_model,
                "provider": self.provider,
                "model": self.model,
            },
            "storage": {
                "backend": self.storage.backend,
                "path": self.storage.path,
            },
            "search": {
                "limit": self.search.limit,
                "threshold": self.search.threshold,
            },
            "providers": {
                name: {
                    "api_key": "***" if options.api_key else None,  # Redact API key
                    "api_base": options.api_base,
                    "timeout": options.timeout,
                }
                for name, options in self.providers.items()
            },
        }


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean value: {value!r}")


def find_config_file(start_path: Optional[str] = None) -> Optional[Path]:
    """
    Find the configuration file starting from the given path.

    Searches the start path (or current directory), its parents, then the
    user home directory.

    Args:
        start_path: Directory to start searching from.

    Returns:
        Path to configuration file if found, None otherwise.
    """
    start = Path(start_path) if start_path else Path.cwd()
    search_dirs = [start, *start.parents, Path.home()]

    for directory in search_dirs:
        for config_name in CONFIG_FILE_NAMES:
            config_path = directory / config_name
            if config_path.is_file():
                logger.debug(f"Found config file: {config_path}")
                return config_path

    return None


def load_yaml_file(file_path: Path) -> dict:
    """
    Load a YAML configuration file.

    Args:
        file_path: Path to the YAML file.

    Returns:
        Dictionary with configuration data.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error loading config file {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {file_path} must contain a mapping")
    return data


def load_config_from_env() -> dict:
    """
    Load configuration from environment variables.

    Supported environment variables:
    - CHAT_MEMORY_ENABLED: Enable or disable memory (true/false)
    - CHAT_MEMORY_EMBED_PROVIDER: Embedding provider id
    - CHAT_MEMORY_EMBED_MODEL: Embedding model id
    - CHAT_MEMORY_STORAGE: Storage backend (json, sqlite, memory)
    - CHAT_MEMORY_PATH: Storage file path
    - OPENAI_API_KEY: OpenAI API key
    - OLLAMA_HOST: Ollama host URL

    Returns:
        Dictionary with configuration from environment.
    """
    config: Dict[str, dict] = {"memory": {}, "storage": {}, "providers": {}}

    if os.environ.get("CHAT_MEMORY_ENABLED"):
        config["memory"]["enabled"] = _parse_bool(os.environ["CHAT_MEMORY_ENABLED"])

    if os.environ.get("CHAT_MEMORY_EMBED_PROVIDER"):
        config["memory"]["embed_provider"] = os.environ["CHAT_MEMORY_EMBED_PROVIDER"]

    if os.environ.get("CHAT_MEMORY_EMBED_MODEL"):
        config["memory"]["embed_model"] = os.environ["CHAT_MEMORY_EMBED_MODEL"]

    if os.environ.get("CHAT_MEMORY_STORAGE"):
        config["storage"]["backend"] = os.environ["CHAT_MEMORY_STORAGE"]

    if os.environ.get("CHAT_MEMORY_PATH"):
        config["storage"]["path"] = os.environ["CHAT_MEMORY_PATH"]

    if os.environ.get("OPENAI_API_KEY"):
        config["providers"]["openai"] = {"api_key": os.environ["OPENAI_API_KEY"]}

    if os.environ.get("OLLAMA_HOST"):
        config["providers"]["ollama"] = {"api_base": os.environ["OLLAMA_HOST"]}

    return config


def load_config(
    config_path: Optional[str] = None,
    start_path: Optional[str] = None,
    **overrides: Any,
) -> ChatMemoryConfig:
    """
    Load configuration from all sources.

    Args:
        config_path: Optional explicit path to config file.
        start_path: Optional directory to search for a config file.
        **overrides: Configuration overrides (enabled, embed_provider,
            embed_model, backend, path, limit, threshold).

    Returns:
        Merged ChatMemoryConfig.

    Raises:
        ConfigError: If an explicit config file is missing or invalid.
    """
    merged_config: dict = {}

    if config_path:
        file_path = Path(config_path)
        if not file_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        merged_config = _deep_merge(merged_config, load_yaml_file(file_path))
    else:
        config_file = find_config_file(start_path)
        if config_file:
            try:
                merged_config = _deep_merge(merged_config, load_yaml_file(config_file))
            except ConfigError as e:
                logger.warning(f"Ignoring config file: {e}")

    merged_config = _deep_merge(merged_config, load_config_from_env())

    if overrides:
        override_config: Dict[str, dict] = {"memory": {}, "storage": {}, "search": {}}
        for key, value in overrides.items():
            if key in ("enabled", "embed_provider", "embed_model", "provider", "model"):
                override_config["memory"][key] = value
            elif key in ("backend", "path"):
                override_config["storage"][key] = value
            elif key in ("limit", "threshold"):
                override_config["search"][key] = value
            else:
                override_config[key] = value
        merged_config = _deep_merge(merged_config, override_config)

    return ChatMemoryConfig.from_dict(merged_config)


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Dictionary with override values.

    Returns:
        Merged dictionary.
    """
    result = base.copy()

    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = _deep_merge(result[key], value)
        elif value is not None:
            result[key] = value

    return result


def create_default_config_file(path: Optional[str] = None) -> Path:
    """
    Create a default configuration file.

    Args:
        path: Optional path for the config file.

    Returns:
        Path to the created config file.
    """
    config_path = Path(path) if path else Path.cwd() / ".chat-memory.yml"

    default_content = """# Chat Memory Configuration

memory:
  # Turn automatic memory on or off
  enabled: true

  # Embedding provider: local, openai, ollama
  embed_provider: "local"

  # Embedding model (hash-<dimension> for the local provider)
  embed_model: "hash-256"

# Persistence: json, sqlite or memory
storage:
  backend: "json"
  # path: "~/.chat_memory/memory.json"

# Semantic search defaults
search:
  limit: 5
  threshold: 0.7

# Provider connection options
# providers:
#   openai:
#     api_key: "sk-..."
#   ollama:
#     api_base: "http://localhost:11434"
"""

    config_path.write_text(default_content)
    logger.info(f"Created default config file: {config_path}")

    return config_path
