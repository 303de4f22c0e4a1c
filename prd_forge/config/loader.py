"""
Configuration management and loading.

Reads application settings from a YAML file and resolves the model API key
from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from prd_forge.core.export import DEFAULT_DELAY_SECONDS
from prd_forge.core.generation import DEFAULT_MAX_TOKENS
from prd_forge.core.limits import DEFAULT_LIMITS, DEFAULT_WARNINGS
from prd_forge.sdk.generator import DEFAULT_BASE_URL, DEFAULT_MODEL
from prd_forge.sdk.notion_client import DEFAULT_TIMEOUT, NOTION_API_URL, NOTION_VERSION
from prd_forge.storage.models import GENERATION_TYPES


@dataclass(frozen=True)
class GeneratorConfig:
    """Model API settings."""
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    api_key_env: str = "ANTHROPIC_API_KEY"
    api_key: Optional[str] = None
    max_tokens: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_MAX_TOKENS))

    def __post_init__(self):
        """Validate token budgets are positive."""
        for generation_type, budget in self.max_tokens.items():
            if budget <= 0:
                raise ValueError(f"max_tokens for {generation_type} must be > 0")

    def max_tokens_for(self, generation_type: str) -> int:
        return self.max_tokens.get(generation_type, DEFAULT_MAX_TOKENS["user_story"])


@dataclass(frozen=True)
class LimitsConfig:
    """Free-tier limits and warning counts per generation type."""
    limits: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_LIMITS))
    warnings: Dict[str, Tuple[int, ...]] = field(default_factory=lambda: dict(DEFAULT_WARNINGS))

    def __post_init__(self):
        """Validate limits are positive."""
        for generation_type, limit in self.limits.items():
            if limit <= 0:
                raise ValueError(f"limit for {generation_type} must be > 0")


@dataclass(frozen=True)
class NotionConfig:
    """Notion API settings."""
    api_url: str = NOTION_API_URL
    version: str = NOTION_VERSION
    request_delay_seconds: float = DEFAULT_DELAY_SECONDS
    timeout_seconds: float = DEFAULT_TIMEOUT

    def __post_init__(self):
        if self.request_delay_seconds < 0:
            raise ValueError("request_delay_seconds cannot be negative")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")


@dataclass(frozen=True)
class StorageConfig:
    """Locations of the shared and local stores."""
    db_path: str = ".prd-forge.db"
    local_path: str = ".prd-forge-local.db"


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    notion: NotionConfig = field(default_factory=NotionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> AppConfig:
    """Load and validate application configuration.

    Without a path the defaults are used. The API key is always read from
    the environment variable named by generator.api_key_env.

    Args:
        path: Path to YAML configuration file, optional
        environ: Environment mapping, defaults to os.environ

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    environ = os.environ if environ is None else environ
    raw_config: Dict[str, Any] = {}

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                raw_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

        if not isinstance(raw_config, dict):
            raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'generator', 'limits', 'warnings', 'notion', 'storage'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    generator = _parse_generator(_section(raw_config, 'generator'), environ)
    limits = _parse_limits(_section(raw_config, 'limits'), _section(raw_config, 'warnings'))
    notion = _parse_notion(_section(raw_config, 'notion'))
    storage = _parse_storage(_section(raw_config, 'storage'))

    return AppConfig(generator=generator, limits=limits, notion=notion, storage=storage)


def _section(raw_config: Dict[str, Any], name: str) -> Dict[str, Any]:
    data = raw_config.get(name) or {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _check_keys(data: Dict[str, Any], allowed: set, path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")


def _parse_counts(data: Dict[str, Any], path: str) -> Dict[str, int]:
    counts = {}
    for generation_type, value in data.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"'{path}.{generation_type}' must be an integer")
        counts[generation_type] = value
    return counts


def _parse_generator(data: Dict[str, Any], environ) -> GeneratorConfig:
    _check_keys(data, {'model', 'base_url', 'api_key_env', 'max_tokens'}, 'generator')

    for key in ('model', 'base_url', 'api_key_env'):
        if key in data and (not isinstance(data[key], str) or not data[key].strip()):
            raise ValueError(f"'generator.{key}' must be a non-empty string")

    max_tokens = dict(DEFAULT_MAX_TOKENS)
    if 'max_tokens' in data:
        if not isinstance(data['max_tokens'], dict):
            raise ValueError("'generator.max_tokens' must be a dictionary")
        max_tokens.update(_parse_counts(data['max_tokens'], 'generator.max_tokens'))

    api_key_env = data.get('api_key_env', GeneratorConfig.api_key_env)
    return GeneratorConfig(
        model=data.get('model', DEFAULT_MODEL),
        base_url=data.get('base_url', DEFAULT_BASE_URL),
        api_key_env=api_key_env,
        api_key=environ.get(api_key_env) or None,
        max_tokens=max_tokens
    )


def _parse_limits(limits_data: Dict[str, Any], warnings_data: Dict[str, Any]) -> LimitsConfig:
    _check_keys(limits_data, set(GENERATION_TYPES), 'limits')
    _check_keys(warnings_data, set(GENERATION_TYPES), 'warnings')

    limits = dict(DEFAULT_LIMITS)
    limits.update(_parse_counts(limits_data, 'limits'))

    warnings = dict(DEFAULT_WARNINGS)
    for generation_type, counts in warnings_data.items():
        if not isinstance(counts, list):
            raise ValueError(f"'warnings.{generation_type}' must be a list of integers")
        parsed = _parse_counts(dict(enumerate(counts)), f"warnings.{generation_type}")
        warnings[generation_type] = tuple(parsed.values())

    return LimitsConfig(limits=limits, warnings=warnings)


def _parse_notion(data: Dict[str, Any]) -> NotionConfig:
    _check_keys(data, {'api_url', 'version', 'request_delay_seconds', 'timeout_seconds'}, 'notion')

    for key in ('request_delay_seconds', 'timeout_seconds'):
        if key in data and (isinstance(data[key], bool) or not isinstance(data[key], (int, float))):
            raise ValueError(f"'notion.{key}' must be a number")

    return NotionConfig(
        api_url=str(data.get('api_url', NOTION_API_URL)),
        version=str(data.get('version', NOTION_VERSION)),
        request_delay_seconds=float(data.get('request_delay_seconds', DEFAULT_DELAY_SECONDS)),
        timeout_seconds=float(data.get('timeout_seconds', DEFAULT_TIMEOUT))
    )


def _parse_storage(data: Dict[str, Any]) -> StorageConfig:
    _check_keys(data, {'db_path', 'local_path'}, 'storage')
    return StorageConfig(
        db_path=str(data.get('db_path', StorageConfig.db_path)),
        local_path=str(data.get('local_path', StorageConfig.local_path))
    )
