"""
Engine configuration management.

This module handles loading and accessing engine configuration from multiple
sources with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/atlas.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The AtlasConfig
dataclass provides typed access to all settings.

Usage:
    from atlas_engine.config import config

    # Access settings
    print(config.storage.backend)
    print(config.graph.max_containment_depth)

Environment Variable Mapping:
    ATLAS_STORAGE_BACKEND        -> storage.backend
    ATLAS_DB_PATH                -> storage.path
    ATLAS_MAX_CONTAINMENT_DEPTH  -> graph.max_containment_depth
    ATLAS_RENDERING_ENABLED      -> rendering.enabled
    ATLAS_LOG_LEVEL              -> logging.level
"""

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Config file paths
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "atlas.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "atlas.example.ini"

_LOG_FORMATS = {
    "simple": "%(levelname)s %(message)s",
    "detailed": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
}


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class StorageSettings:
    """Backing store configuration."""

    backend: Literal["memory", "sqlite"] = "memory"
    path: str = "data/atlas.db"

    @property
    def absolute_path(self) -> Path:
        """Get absolute path to the SQLite database file."""
        p = Path(self.path)
        if p.is_absolute():
            return p
        return PROJECT_ROOT / p


@dataclass
class GraphSettings:
    """Realm graph traversal limits."""

    # Hard cap on upward containment hops; guards against corrupted cyclic data.
    max_containment_depth: int = 50


@dataclass
class RenderingSettings:
    """Markup rendering for composed descriptions."""

    enabled: bool = True
    markdown_extensions: list[str] = field(default_factory=list)


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed"] = "detailed"


@dataclass
class AtlasConfig:
    """
    Complete engine configuration.

    This is the main configuration object that aggregates all settings sections.
    Access via the module-level `config` singleton.
    """

    storage: StorageSettings = field(default_factory=StorageSettings)
    graph: GraphSettings = field(default_factory=GraphSettings)
    rendering: RenderingSettings = field(default_factory=RenderingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def uses_sqlite(self) -> bool:
        """Convenience property for the persistent backend check."""
        return self.storage.backend == "sqlite"


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string to list, stripping whitespace."""
    if not value or value.strip() == "":
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_from_ini(parser: configparser.ConfigParser, cfg: AtlasConfig) -> None:
    """Load configuration from parsed INI file into AtlasConfig."""
    # Storage section
    if parser.has_section("storage"):
        if parser.has_option("storage", "backend"):
            val = parser.get("storage", "backend").lower()
            if val in ("memory", "sqlite"):
                cfg.storage.backend = val  # type: ignore[assignment]
        if parser.has_option("storage", "path"):
            cfg.storage.path = parser.get("storage", "path")

    # Graph section
    if parser.has_section("graph"):
        if parser.has_option("graph", "max_containment_depth"):
            cfg.graph.max_containment_depth = parser.getint("graph", "max_containment_depth")

    # Rendering section
    if parser.has_section("rendering"):
        if parser.has_option("rendering", "enabled"):
            cfg.rendering.enabled = _parse_bool(parser.get("rendering", "enabled"))
        if parser.has_option("rendering", "markdown_extensions"):
            cfg.rendering.markdown_extensions = _parse_list(
                parser.get("rendering", "markdown_extensions")
            )

    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed"):
                cfg.logging.format = val  # type: ignore[assignment]


def _apply_env_overrides(cfg: AtlasConfig) -> None:
    """Apply environment variable overrides to configuration."""
    # Storage settings
    if env_backend := os.getenv("ATLAS_STORAGE_BACKEND"):
        if env_backend.lower() in ("memory", "sqlite"):
            cfg.storage.backend = env_backend.lower()  # type: ignore[assignment]
    if env_db := os.getenv("ATLAS_DB_PATH"):
        cfg.storage.path = env_db

    # Graph settings
    if env_depth := os.getenv("ATLAS_MAX_CONTAINMENT_DEPTH"):
        cfg.graph.max_containment_depth = int(env_depth)

    # Rendering settings
    if env_render := os.getenv("ATLAS_RENDERING_ENABLED"):
        cfg.rendering.enabled = _parse_bool(env_render)

    # Logging settings
    if env_log := os.getenv("ATLAS_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()


def load_config() -> AtlasConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/atlas.ini
        3. config/atlas.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        AtlasConfig: Fully populated configuration object.
    """
    cfg = AtlasConfig()

    # Determine which config file to use
    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "AtlasConfig":
    """
    Reload configuration from disk and environment.

    This updates the module-level `config` singleton. Services that were
    already built keep the settings they were built with.

    Returns:
        AtlasConfig: The newly loaded configuration.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def configure_logging(cfg: AtlasConfig | None = None) -> None:
    """Apply the configured log level and format to the root logger."""
    cfg = cfg or config
    level = getattr(logging, cfg.logging.level, logging.INFO)
    logging.basicConfig(level=level, format=_LOG_FORMATS[cfg.logging.format], force=True)


def get_config_status() -> dict:
    """
    Get configuration status for diagnostics.

    Returns a dictionary with configuration source information,
    useful for debugging from the CLI.
    """
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "storage_backend": config.storage.backend,
        "database_path": str(config.storage.absolute_path),
        "max_containment_depth": config.graph.max_containment_depth,
        "rendering_enabled": config.rendering.enabled,
    }


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_database:
    """
    Context manager for pointing the SQLite backend at a temporary database.

    Usage:
        from atlas_engine.config import use_test_database

        def test_something(tmp_path):
            with use_test_database(tmp_path / "test.db"):
                init_database()

    Args:
        db_path: Path to the test database file
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.original_path: str | None = None

    def __enter__(self) -> Path:
        """Set up test database path."""
        self.original_path = config.storage.path
        config.storage.path = str(self.db_path)
        return self.db_path

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Restore original database path."""
        if self.original_path is not None:
            config.storage.path = self.original_path
        return None
