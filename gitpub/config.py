"""
Configuration management for gitpub.

This module handles loading and accessing configuration values from config.yaml.
Environment variables of the deployment (ME, GIT_TOKEN, MAPBOX_TOKEN, ...)
override values from the file, so secrets never have to be written to disk.

The core modules never read this global configuration; `publish_settings()`,
`github_settings()` and `enrichment_settings()` build the explicit settings
objects they are given.
"""

import yaml
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple
import logging

from .models import PublishSettings, GitHubSettings, EnrichmentSettings


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ("", "0", "false", "no", "off")


def _parse_yaml(value: str) -> Any:
    return yaml.safe_load(value)


# Environment variable -> (config key path, converter)
ENVIRONMENT_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "ME": ("site.me", str),
    "CONTENT_DIR": ("site.content_dir", str),
    "MEDIA_DIR": ("site.media_dir", str),
    "FILENAME_FULL_DATE": ("site.filename_full_date", _parse_bool),
    "PERMANENT_DELETE": ("site.permanent_delete", _parse_bool),
    "MEDIA_ENDPOINT": ("site.media_endpoint", str),
    "SYNDICATE_TO": ("site.syndicate_to", _parse_yaml),
    "GIT_BRANCH": ("storage.branch", str),
    "GITHUB_USER": ("github.user", str),
    "GITHUB_REPO": ("github.repo", str),
    "GIT_TOKEN": ("github.token", str),
    "AUTHOR_NAME": ("author.name", str),
    "AUTHOR_EMAIL": ("author.email", str),
    "MAPBOX_TOKEN": ("enrichment.mapbox_token", str),
}


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge `overrides` into a copy of `base`."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """
    Manages configuration loading and access for gitpub.
    """

    def __init__(self, config_path: str = "config.yaml",
                 environ: Optional[Dict[str, str]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
            environ: Environment to read overrides from (defaults to os.environ)
        """
        self.config_path = Path(config_path)
        self.environ = os.environ if environ is None else environ
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file, then apply environment overrides."""
        defaults = self._get_default_config()
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"Configuration root must be a mapping, got {type(loaded).__name__}")

            self._config = _merge(defaults, loaded)
            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, ValueError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration: {e}")
            # Fall back to default configuration
            self._config = defaults

        self._apply_environment()

    def _apply_environment(self) -> None:
        """Override configuration values from environment variables."""
        for variable, (key_path, convert) in ENVIRONMENT_OVERRIDES.items():
            raw = self.environ.get(variable)
            if raw is None or raw == "":
                continue
            try:
                value = convert(raw)
            except yaml.YAMLError as e:
                logging.error(f"Ignoring invalid {variable}: {e}")
                continue
            self.set(key_path, value)
            logging.debug(f"Configuration {key_path} set from ${variable}")

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "site": {
                "me": "https://example.com/",
                "content_dir": "src",
                "media_dir": "uploads",
                "filename_full_date": False,
                "permanent_delete": False,
                "media_endpoint": None,
                "syndicate_to": []
            },
            "storage": {
                "backend": "github",
                "branch": "main",
                "local_path": "site.git"
            },
            "github": {
                "user": "",
                "repo": "",
                "token": None,
                "api_url": "https://api.github.com",
                "timeout": 30.0
            },
            "author": {
                "name": None,
                "email": None
            },
            "enrichment": {
                "fetch_like_titles": True,
                "mapbox_token": None,
                "map_zoom": 14,
                "map_width": 748,
                "map_height": 420,
                "map_styles": ["dark-v11", "light-v11"],
                "timeout": 10.0
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "file": None
            },
            "performance": {
                "max_concurrent_blobs": 4
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "site.me")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("site.content_dir")  # Returns "src"
            config.get("storage.backend")  # Returns "github"
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key_path.split('.')
        section = self._config
        for key in keys[:-1]:
            if not isinstance(section.get(key), dict):
                section[key] = {}
            section = section[key]
        section[keys[-1]] = value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties for commonly used values

    @property
    def storage_backend(self) -> str:
        """Get the storage backend name (github or local)."""
        return self.get("storage.backend", "github")

    @property
    def branch(self) -> str:
        """Get the branch posts are committed to."""
        return self.get("storage.branch", "main")

    @property
    def local_repository_path(self) -> str:
        """Get the path of the local bare repository."""
        return self.get("storage.local_path", "site.git")

    @property
    def log_level(self) -> str:
        """Get logging level."""
        return self.get("logging.level", "INFO")

    @property
    def log_format(self) -> str:
        """Get logging format."""
        return self.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    @property
    def log_filename(self) -> Optional[str]:
        """Get log file name."""
        return self.get("logging.file")

    def publish_settings(self) -> PublishSettings:
        """Build the site settings used by the formatter and the publisher."""
        site = self.get_section("site")
        return PublishSettings(
            me=site.get("me") or "https://example.com/",
            content_dir=site.get("content_dir") or "src",
            media_dir=site.get("media_dir") or "uploads",
            filename_full_date=bool(site.get("filename_full_date")),
            permanent_delete=bool(site.get("permanent_delete")),
            media_endpoint=site.get("media_endpoint"),
            syndicate_to=site.get("syndicate_to") or [],
            max_concurrent_blobs=self.get("performance.max_concurrent_blobs", 4),
        )

    def github_settings(self) -> GitHubSettings:
        """Build the GitHub backend settings."""
        github = self.get_section("github")
        return GitHubSettings(
            user=github.get("user") or "",
            repo=github.get("repo") or "",
            token=github.get("token"),
            branch=self.branch,
            api_url=github.get("api_url") or "https://api.github.com",
            timeout=github.get("timeout", 30.0),
            author_name=self.get("author.name"),
            author_email=self.get("author.email"),
        )

    def enrichment_settings(self) -> EnrichmentSettings:
        """Build the enrichment settings."""
        enrichment = {
            key: value for key, value in self.get_section("enrichment").items()
            if value is not None
        }
        enrichment["mapbox_token"] = self.get("enrichment.mapbox_token")
        return EnrichmentSettings(**enrichment)


# Global configuration instance
config = ConfigManager()


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config
