"""Earthquake Viewer API - FastAPI service for the map front end.

Serves normalized earthquake collections for the region of interest.
This is the presentation boundary: filters coming from the UI are
repaired with the same rule the data service applies, and classified
errors are turned into short user-facing messages here and nowhere else.
"""

import logging
import os
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from quakeview.core.config import Config
from quakeview.core.errors import ErrorKind, FetchError, HttpError
from quakeview.core.filters import (
    DateRange,
    Filters,
    Mode,
    TimeRange,
    default_filters,
    repair_filters,
    utc_today,
)
from quakeview.core.formatter import format_error_message, format_load_summary
from quakeview.data_service import DataService
from quakeview.shell.config_loader import load_config_from_env


log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Earthquake Viewer API",
    description="Serves USGS earthquake data for the region of interest",
    version="1.0.0",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get(
        "CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"
    ).split(","),
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


# ===== Response Models =====

class BoundsResponse(BaseModel):
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float


class CenterResponse(BaseModel):
    lat: float
    lng: float


class RegionResponse(BaseModel):
    name: str
    slug: str
    bounds: BoundsResponse
    center: CenterResponse
    refresh_interval_seconds: int


class FiltersResponse(BaseModel):
    mode: Mode
    time_range: TimeRange
    min_magnitude: float
    start_date: date
    end_date: date


class EarthquakesResponse(BaseModel):
    filters: FiltersResponse
    summary: str
    data: dict[str, Any]


# ===== Dependencies =====

@lru_cache(maxsize=1)
def get_config() -> Config:
    """Load configuration once per process."""
    return load_config_from_env()


@lru_cache(maxsize=1)
def get_service() -> DataService:
    """Create the data service once per process."""
    return DataService(get_config())


def get_today() -> date:
    """Current UTC calendar date."""
    return utc_today(datetime.now(timezone.utc))


# ===== Helper Functions =====

def _build_filters(
    today: date,
    mode: Mode,
    time_range: TimeRange,
    min_magnitude: float | None,
    start_date: date | None,
    end_date: date | None,
    config: Config,
) -> Filters:
    """Build filters from query parameters, then repair them."""
    defaults = default_filters(
        today,
        min_magnitude=config.default_min_magnitude,
        lookback_days=config.default_lookback_days,
    )

    filters = Filters(
        mode=mode,
        time_range=time_range,
        min_magnitude=defaults.min_magnitude if min_magnitude is None else min_magnitude,
        date_range=DateRange(
            start=start_date or defaults.date_range.start,
            end=end_date or defaults.date_range.end,
        ),
    )

    return repair_filters(filters, today)


def _filters_to_dict(filters: Filters) -> dict[str, Any]:
    """Convert Filters to the response format."""
    return {
        "mode": filters.mode.value,
        "time_range": filters.time_range.value,
        "min_magnitude": filters.min_magnitude,
        "start_date": filters.date_range.start.isoformat(),
        "end_date": filters.date_range.end.isoformat(),
    }


def _status_for(error: FetchError) -> int:
    """HTTP status returned to the UI for a classified error."""
    if error.kind == ErrorKind.TIMEOUT:
        return 504
    if isinstance(error, HttpError) and 400 <= error.status < 500 and not error.is_rate_limited:
        return 400
    return 502


# ===== Public Endpoints =====

@app.get("/api-earthquakes", response_model=EarthquakesResponse)
def get_earthquakes(
    mode: Mode = Query(default=Mode.REALTIME),
    time_range: TimeRange = Query(default=TimeRange.DAY),
    min_magnitude: float | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    service: DataService = Depends(get_service),
    today: date = Depends(get_today),
):
    """Get earthquakes for the region matching the filters."""
    filters = _build_filters(
        today,
        mode,
        time_range,
        min_magnitude,
        start_date,
        end_date,
        service.config,
    )

    try:
        collection = service.load(filters)
    except FetchError as e:
        logger.error("Failed to load earthquakes: %s", e)
        raise HTTPException(
            status_code=_status_for(e),
            detail={
                "error": e.kind.value,
                "message": format_error_message(e, is_historical=filters.is_historical),
            },
        )

    return {
        "filters": _filters_to_dict(filters),
        "summary": format_load_summary(collection, filters, service.config.region.name),
        "data": collection.to_geojson(),
    }


@app.get("/api-region", response_model=RegionResponse)
def get_region(service: DataService = Depends(get_service)):
    """Get the region of interest and viewer defaults."""
    region = service.config.region
    lat, lng = region.center
    return {
        "name": region.name,
        "slug": region.slug,
        "bounds": {
            "min_latitude": region.bounds.min_latitude,
            "max_latitude": region.bounds.max_latitude,
            "min_longitude": region.bounds.min_longitude,
            "max_longitude": region.bounds.max_longitude,
        },
        "center": {"lat": lat, "lng": lng},
        "refresh_interval_seconds": service.config.refresh_interval_seconds,
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
