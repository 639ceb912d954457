"""Earthquake data models and parsing - Pure functions.

This module handles parsing USGS GeoJSON data into typed SeismicEvent
objects and serialising collections back to GeoJSON.
All functions are pure with no side effects.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from quakeview.core.errors import DecodeError


@dataclass(frozen=True)
class SeismicEvent:
    """Immutable earthquake record.

    Attributes:
        id: Unique USGS event ID
        magnitude: Earthquake magnitude
        place: Human-readable location description (may be empty)
        time_ms: Event time in milliseconds since the epoch (UTC)
        longitude: Epicenter longitude
        latitude: Epicenter latitude
        depth_km: Depth in kilometers (negative above the reference surface)
        tsunami: Whether the tsunami flag was set
        properties: All upstream properties, passed through unvalidated
    """
    id: str
    magnitude: float
    place: str
    time_ms: int
    longitude: float
    latitude: float
    depth_km: float
    tsunami: bool = False
    properties: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @property
    def time(self) -> datetime:
        """Event time as a UTC datetime."""
        return datetime.fromtimestamp(self.time_ms / 1000, tz=timezone.utc)

    @property
    def coordinates(self) -> tuple[float, float, float]:
        """Return (longitude, latitude, depth_km) in GeoJSON order."""
        return (self.longitude, self.latitude, self.depth_km)

    @property
    def url(self) -> str | None:
        return self.properties.get("url")

    @property
    def detail_url(self) -> str | None:
        return self.properties.get("detail")

    @property
    def felt(self) -> int | None:
        return self.properties.get("felt")

    @property
    def alert(self) -> str | None:
        return self.properties.get("alert")

    @property
    def status(self) -> str | None:
        return self.properties.get("status")

    @property
    def significance(self) -> int | None:
        return self.properties.get("sig")


@dataclass(frozen=True)
class CollectionMetadata:
    """Metadata describing one fetched collection.

    Attributes:
        generated_ms: When upstream generated the payload (epoch ms)
        url: Source URL of the payload
        count: Number of events in the collection
        title: Upstream feed title
        status: Upstream status code reported in the payload
        api: Upstream API version
    """
    generated_ms: int
    url: str
    count: int
    title: str = ""
    status: int = 200
    api: str = ""


@dataclass(frozen=True)
class EarthquakeCollection:
    """Result of one successful fetch cycle.

    Events keep the order upstream delivered them in.
    """
    events: tuple[SeismicEvent, ...]
    metadata: CollectionMetadata

    def __len__(self) -> int:
        return len(self.events)

    def to_geojson(self) -> dict[str, Any]:
        """Serialise to the upstream FeatureCollection shape."""
        return {
            "type": "FeatureCollection",
            "metadata": {
                "generated": self.metadata.generated_ms,
                "url": self.metadata.url,
                "title": self.metadata.title,
                "status": self.metadata.status,
                "api": self.metadata.api,
                "count": self.metadata.count,
            },
            "features": [event_to_feature(e) for e in self.events],
        }


def parse_event(feature: Any) -> SeismicEvent | None:
    """Parse a single GeoJSON feature into a SeismicEvent.

    Pure function: takes raw dict, returns typed SeismicEvent or None if
    the record is missing an id, magnitude, time or coordinates. A missing
    depth defaults to 0.

    Args:
        feature: GeoJSON feature dict from USGS

    Returns:
        SeismicEvent or None if parsing fails
    """
    try:
        props = feature.get("properties") or {}
        geometry = feature.get("geometry") or {}
        coords = geometry.get("coordinates") or []

        if len(coords) < 2 or coords[0] is None or coords[1] is None:
            return None

        event_id = feature.get("id")
        if not event_id:
            return None

        magnitude = props.get("mag")
        if magnitude is None:
            return None

        # USGS uses milliseconds since epoch
        time_ms = props.get("time")
        if time_ms is None:
            return None

        depth = coords[2] if len(coords) > 2 and coords[2] is not None else 0.0

        return SeismicEvent(
            id=str(event_id),
            magnitude=float(magnitude),
            place=props.get("place") or "",
            time_ms=int(time_ms),
            longitude=float(coords[0]),
            latitude=float(coords[1]),
            depth_km=float(depth),
            tsunami=bool(props.get("tsunami", 0)),
            properties=dict(props),
        )
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def parse_events(features: Iterable[Any]) -> list[SeismicEvent]:
    """Parse features, dropping malformed records and repeated ids.

    Pure function. Order is preserved; the first occurrence of an id wins.

    Args:
        features: GeoJSON features

    Returns:
        List of valid events
    """
    events: list[SeismicEvent] = []
    seen: set[str] = set()

    for feature in features:
        event = parse_event(feature)
        if event is None or event.id in seen:
            continue
        seen.add(event.id)
        events.append(event)

    return events


def get_features(payload: Any) -> list[Any]:
    """Return the features list of a FeatureCollection payload.

    Pure function.

    Raises:
        DecodeError: If the payload is not an object with a features list
    """
    if not isinstance(payload, Mapping):
        raise DecodeError("payload is not a JSON object")

    features = payload.get("features")
    if not isinstance(features, list):
        raise DecodeError("payload has no features list")

    return features


def parse_metadata(
    payload: Mapping[str, Any],
    count: int,
    default_url: str = "",
) -> CollectionMetadata:
    """Build collection metadata, recomputing the count.

    Pure function. The upstream count is never trusted.
    """
    raw = payload.get("metadata")
    if not isinstance(raw, Mapping):
        raw = {}

    try:
        generated = int(raw.get("generated") or 0)
    except (TypeError, ValueError):
        generated = 0

    try:
        status = int(raw.get("status") or 200)
    except (TypeError, ValueError):
        status = 200

    return CollectionMetadata(
        generated_ms=generated,
        url=str(raw.get("url") or default_url),
        count=count,
        title=str(raw.get("title") or ""),
        status=status,
        api=str(raw.get("api") or ""),
    )


def make_collection(
    events: Iterable[SeismicEvent],
    payload: Mapping[str, Any],
    default_url: str = "",
) -> EarthquakeCollection:
    """Assemble a collection whose count matches its events.

    Pure function.
    """
    events = tuple(events)
    return EarthquakeCollection(
        events=events,
        metadata=parse_metadata(payload, len(events), default_url),
    )


def collection_from_geojson(payload: Any) -> EarthquakeCollection:
    """Rebuild a collection from its GeoJSON serialisation.

    Pure function. Used to read back cached collections.

    Raises:
        DecodeError: If the document is not a FeatureCollection
    """
    features = get_features(payload)
    return make_collection(parse_events(features), payload)


def event_to_feature(event: SeismicEvent) -> dict[str, Any]:
    """Serialise one event to a GeoJSON feature.

    Pure function.
    """
    properties = dict(event.properties)
    properties.update({
        "mag": event.magnitude,
        "place": event.place,
        "time": event.time_ms,
    })
    if event.tsunami or "tsunami" in properties:
        properties["tsunami"] = 1 if event.tsunami else 0

    return {
        "type": "Feature",
        "id": event.id,
        "properties": properties,
        "geometry": {
            "type": "Point",
            "coordinates": [event.longitude, event.latitude, event.depth_km],
        },
    }

