"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, CacheConfig) are defined in quakeview/core/config.py
to avoid information leakage between layers.
"""

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from quakeview.core.config import CacheConfig, Config, validate_config
from quakeview.core.geo import DEFAULT_REGION, BoundingBox, Region


logger = logging.getLogger(__name__)


def _parse_bounds(data: dict[str, Any]) -> BoundingBox:
    """Parse a bounding box from config data."""
    return BoundingBox(
        min_latitude=float(data["min_latitude"]),
        max_latitude=float(data["max_latitude"]),
        min_longitude=float(data["min_longitude"]),
        max_longitude=float(data["max_longitude"]),
    )


def _parse_bounds_string(value: str) -> BoundingBox | None:
    """Parse "min_lat,max_lat,min_lon,max_lon" into a bounding box."""
    try:
        parts = [float(p.strip()) for p in value.split(",")]
    except ValueError:
        logger.warning("Invalid bounds %r, expected four numbers", value)
        return None

    if len(parts) != 4:
        logger.warning("Invalid bounds %r, expected four numbers", value)
        return None

    return BoundingBox(
        min_latitude=parts[0],
        max_latitude=parts[1],
        min_longitude=parts[2],
        max_longitude=parts[3],
    )


def _parse_region(data: dict[str, Any]) -> Region:
    """Parse the region of interest from config data."""
    name = data.get("name", DEFAULT_REGION.name)
    return Region(
        name=name,
        slug=data.get("slug", name.lower().replace(" ", "-")),
        bounds=_parse_bounds(data["bounds"]) if "bounds" in data else DEFAULT_REGION.bounds,
    )


def _parse_cache(data: dict[str, Any]) -> CacheConfig:
    """Parse cache settings from config data."""
    defaults = CacheConfig()
    return CacheConfig(
        backend=data.get("backend", defaults.backend),
        directory=data.get("directory", defaults.directory),
        firestore_database=data.get("firestore_database"),
        firestore_collection=data.get("firestore_collection", defaults.firestore_collection),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    Pure function.

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    defaults = Config()

    region = _parse_region(data["region"]) if "region" in data else defaults.region
    cache = _parse_cache(data.get("cache") or {})

    return Config(
        feed_base_url=data.get("feed_base_url", defaults.feed_base_url),
        query_base_url=data.get("query_base_url", defaults.query_base_url),
        request_timeout_seconds=int(
            data.get("request_timeout_seconds", defaults.request_timeout_seconds)
        ),
        user_agent=data.get("user_agent", defaults.user_agent),
        historical_limit=int(data.get("historical_limit", defaults.historical_limit)),
        region=region,
        cache=cache,
        refresh_interval_seconds=int(
            data.get("refresh_interval_seconds", defaults.refresh_interval_seconds)
        ),
        default_min_magnitude=float(
            data.get("default_min_magnitude", defaults.default_min_magnitude)
        ),
        default_lookback_days=int(
            data.get("default_lookback_days", defaults.default_lookback_days)
        ),
    )


def apply_env_overrides(config: Config) -> Config:
    """Override configuration fields from environment variables.

    Environment variables:
        REGION_BOUNDS: Comma-separated bounds (min_lat,max_lat,min_lon,max_lon)
        CACHE_BACKEND: file, memory, firestore or none
        CACHE_DIR: Directory for the file cache
        FIRESTORE_DATABASE: Firestore database for the firestore cache
        REQUEST_TIMEOUT: Upstream timeout in seconds
        USER_AGENT: User-Agent header sent upstream

    Args:
        config: Base configuration

    Returns:
        Config with overrides applied
    """
    region = config.region
    bounds_str = os.environ.get("REGION_BOUNDS")
    if bounds_str:
        bounds = _parse_bounds_string(bounds_str)
        if bounds is not None:
            region = replace(region, bounds=bounds)

    cache = replace(
        config.cache,
        backend=os.environ.get("CACHE_BACKEND", config.cache.backend),
        directory=os.environ.get("CACHE_DIR", config.cache.directory),
        firestore_database=os.environ.get(
            "FIRESTORE_DATABASE", config.cache.firestore_database
        ),
    )

    timeout = config.request_timeout_seconds
    timeout_str = os.environ.get("REQUEST_TIMEOUT")
    if timeout_str:
        try:
            timeout = int(timeout_str)
        except ValueError:
            logger.warning("Invalid REQUEST_TIMEOUT %r, keeping %d", timeout_str, timeout)

    return replace(
        config,
        region=region,
        cache=cache,
        request_timeout_seconds=timeout,
        user_agent=os.environ.get("USER_AGENT", config.user_agent),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
        ValueError: If the configuration has critical errors
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = check_config(load_config_from_dict(data))

    logger.info(
        "Loaded config: region %s, cache backend %s",
        config.region.name,
        config.cache.backend,
    )

    return config


def check_config(config: Config) -> Config:
    """Validate configuration, logging warnings.

    Returns:
        The same config

    Raises:
        ValueError: If the configuration has critical errors
    """
    result = validate_config(config)
    for warning in result.warnings:
        logger.warning("Config %s: %s", warning.field, warning.message)
    if not result.valid:
        messages = "; ".join(f"{e.field}: {e.message}" for e in result.critical_errors)
        raise ValueError(f"Invalid configuration: {messages}")
    return config


def load_config_from_env(config_path: str | Path | None = None) -> Config:
    """Load configuration from file, then apply environment overrides.

    Useful for container deployments where only a few settings change.
    The overridden configuration is validated again.

    Returns:
        Config object

    Raises:
        ValueError: If the overrides make the configuration invalid
    """
    return check_config(apply_env_overrides(load_config(config_path)))
