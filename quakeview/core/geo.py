"""Geographic bounds - Pure functions.

This module defines the region of interest used to restrict earthquake
results and the checks applied against it.
All functions are pure with no side effects.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box.

    Attributes:
        min_latitude: Southern boundary
        max_latitude: Northern boundary
        min_longitude: Western boundary
        max_longitude: Eastern boundary
    """
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within this bounding box (edges included)."""
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )

    @property
    def center(self) -> tuple[float, float]:
        """Return the (latitude, longitude) midpoint of the box."""
        return (
            (self.min_latitude + self.max_latitude) / 2,
            (self.min_longitude + self.max_longitude) / 2,
        )


@dataclass(frozen=True)
class Region:
    """The named region of interest shown by the viewer.

    Attributes:
        name: Human-readable name (e.g., "Iran")
        slug: Short identifier used in cache keys
        bounds: Geographic bounding box
    """
    name: str
    slug: str
    bounds: BoundingBox

    @property
    def center(self) -> tuple[float, float]:
        """Return the (latitude, longitude) center of the region."""
        return self.bounds.center


# Iran lies roughly between 25-40N latitude and 44-63E longitude
IRAN_BOUNDS = BoundingBox(
    min_latitude=25.0,
    max_latitude=40.0,
    min_longitude=44.0,
    max_longitude=63.0,
)

DEFAULT_REGION = Region(name="Iran", slug="iran", bounds=IRAN_BOUNDS)


def is_within_bounds(
    longitude: float,
    latitude: float,
    bounds: BoundingBox,
) -> bool:
    """Check if a (longitude, latitude) point is within a bounding box.

    Pure function. Arguments follow GeoJSON coordinate order.

    Args:
        longitude: Point longitude
        latitude: Point latitude
        bounds: Bounding box to check against

    Returns:
        True if the point is within bounds
    """
    return bounds.contains(latitude, longitude)
