"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field

from quakeview.core.filters import DEFAULT_LOOKBACK_DAYS, DEFAULT_MIN_MAGNITUDE
from quakeview.core.geo import DEFAULT_REGION, BoundingBox, Region
from quakeview.core.query import HISTORICAL_LIMIT


# USGS real-time summary feeds
USGS_FEED_BASE = "https://earthquake.usgs.gov/earthquakes/feed/v1.0"

# USGS FDSN Event Web Service base URL
USGS_QUERY_BASE = "https://earthquake.usgs.gov/fdsnws/event/1/query"

DEFAULT_TIMEOUT = 30
DEFAULT_USER_AGENT = "EarthquakeViewer/1.0"
DEFAULT_REFRESH_INTERVAL = 300

CACHE_BACKENDS = ("file", "memory", "firestore", "none")


@dataclass
class CacheConfig:
    """Cache storage configuration.

    Attributes:
        backend: One of "file", "memory", "firestore" or "none"
        directory: Directory for the file backend
        firestore_database: Firestore database name (None for default)
        firestore_collection: Firestore collection holding cache entries
    """
    backend: str = "file"
    directory: str = ".cache/quakeview"
    firestore_database: str | None = None
    firestore_collection: str = "earthquake_cache"


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        feed_base_url: Base URL of the real-time summary feeds
        query_base_url: URL of the historical search endpoint
        request_timeout_seconds: Upstream request timeout
        user_agent: User-Agent header sent upstream
        historical_limit: Maximum events per historical search
        region: Region of interest
        cache: Cache storage settings
        refresh_interval_seconds: Auto-refresh period in real-time mode
        default_min_magnitude: Initial magnitude filter
        default_lookback_days: Initial historical range length
    """
    feed_base_url: str = USGS_FEED_BASE
    query_base_url: str = USGS_QUERY_BASE
    request_timeout_seconds: int = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    historical_limit: int = HISTORICAL_LIMIT
    region: Region = DEFAULT_REGION
    cache: CacheConfig = field(default_factory=CacheConfig)
    refresh_interval_seconds: int = DEFAULT_REFRESH_INTERVAL
    default_min_magnitude: float = DEFAULT_MIN_MAGNITUDE
    default_lookback_days: int = DEFAULT_LOOKBACK_DAYS


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_coordinates(lat: float, lon: float, field_name: str) -> list[ValidationError]:
    """Validate latitude/longitude coordinates.

    Pure function.

    Args:
        lat: Latitude value
        lon: Longitude value
        field_name: Name of the field for error messages

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not -90 <= lat <= 90:
        errors.append(ValidationError(
            field=field_name,
            message=f"Latitude {lat} out of range [-90, 90]",
        ))

    if not -180 <= lon <= 180:
        errors.append(ValidationError(
            field=field_name,
            message=f"Longitude {lon} out of range [-180, 180]",
        ))

    return errors


def validate_bounds(bounds: BoundingBox, field_name: str) -> list[ValidationError]:
    """Validate a bounding box.

    Pure function.

    Args:
        bounds: Bounding box to validate
        field_name: Name of the field for error messages

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    errors.extend(validate_coordinates(
        bounds.min_latitude, bounds.min_longitude,
        f"{field_name}.min",
    ))
    errors.extend(validate_coordinates(
        bounds.max_latitude, bounds.max_longitude,
        f"{field_name}.max",
    ))

    if bounds.min_latitude > bounds.max_latitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_latitude ({bounds.min_latitude}) > max_latitude ({bounds.max_latitude})",
        ))

    if bounds.min_longitude > bounds.max_longitude:
        errors.append(ValidationError(
            field=field_name,
            message=f"min_longitude ({bounds.min_longitude}) > max_longitude ({bounds.max_longitude})",
        ))

    return errors


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    errors.extend(validate_bounds(config.region.bounds, "region.bounds"))

    if config.request_timeout_seconds <= 0:
        errors.append(ValidationError(
            field="request_timeout_seconds",
            message=f"Timeout must be positive, got {config.request_timeout_seconds}",
        ))

    # FDSN caps a single search at 20000 events
    if not 1 <= config.historical_limit <= 20000:
        errors.append(ValidationError(
            field="historical_limit",
            message=f"Limit {config.historical_limit} out of range [1, 20000]",
        ))

    if config.cache.backend not in CACHE_BACKENDS:
        errors.append(ValidationError(
            field="cache.backend",
            message=(
                f"Unknown cache backend '{config.cache.backend}', "
                f"expected one of {', '.join(CACHE_BACKENDS)}"
            ),
        ))

    if config.cache.backend == "none":
        errors.append(ValidationError(
            field="cache.backend",
            message="Caching disabled, every load hits upstream",
            severity="warning",
        ))

    if config.refresh_interval_seconds < 60:
        errors.append(ValidationError(
            field="refresh_interval_seconds",
            message=(
                f"Refresh every {config.refresh_interval_seconds}s is under a "
                "minute; most refreshes will be served from cache"
            ),
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
