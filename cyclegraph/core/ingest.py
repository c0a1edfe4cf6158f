"""
GeoJSON Source Loading
========================

Read GeoJSON feature collections and turn their ``LineString`` features
into :class:`~cyclegraph.core.graph.Polyline` objects. Every other
geometry type is ignored.

Example::

    from cyclegraph.core.ingest import load_polylines

    polylines = load_polylines("highway.geojson")
    print(f"{len(polylines)} LineString features")
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from shapely.errors import GEOSException
from shapely.geometry import LineString, shape

from cyclegraph.core.graph import Node, Polyline
from cyclegraph.errors import IngestionFailure
from cyclegraph.utils.logger import get_logger

logger = get_logger(__name__)

GeoJSONSource = Union[str, Path, Mapping[str, Any]]


def read_feature_collection(source: GeoJSONSource) -> Dict[str, Any]:
    """Read a GeoJSON FeatureCollection from a path or an in-memory mapping.

    Raises:
        IngestionFailure: If the file cannot be read or parsed, or has no
            ``features`` list.
    """
    label = str(source) if isinstance(source, (str, Path)) else "<mapping>"
    if isinstance(source, (str, Path)):
        try:
            with open(source, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise IngestionFailure(
                f"Cannot read GeoJSON source {label}: {exc}", source=label
            ) from exc
    else:
        data = source

    features = data.get("features") if isinstance(data, Mapping) else None
    if not isinstance(features, list):
        raise IngestionFailure(
            f"GeoJSON source {label} has no 'features' list", source=label
        )
    return dict(data)


def feature_to_polyline(feature: Mapping[str, Any]) -> Polyline:
    """Convert one LineString feature into a Polyline.

    A LineString with fewer than two positions becomes a polyline with
    no segments; its single position is still kept as a node.

    Raises:
        IngestionFailure: If the geometry is not a valid LineString.
    """
    properties = feature.get("properties") or {}
    geometry = feature.get("geometry")
    coords = geometry.get("coordinates") if isinstance(geometry, Mapping) else None
    if isinstance(coords, list) and len(coords) < 2:
        logger.warning(f"LineString with {len(coords)} position(s) has no segments")
        try:
            points = [Node.from_lnglat(c) for c in coords]
        except (IndexError, TypeError, ValueError) as exc:
            raise IngestionFailure(f"Malformed LineString geometry: {exc}") from exc
        return Polyline(points=points, properties=dict(properties))

    try:
        geom = shape(feature["geometry"])
    except (KeyError, TypeError, ValueError, AttributeError, GEOSException) as exc:
        raise IngestionFailure(f"Malformed LineString geometry: {exc}") from exc
    if not isinstance(geom, LineString):
        raise IngestionFailure(f"Expected LineString, got {geom.geom_type}")

    return Polyline(
        points=[Node.from_lnglat(c) for c in geom.coords],
        properties=dict(properties),
    )


def load_polylines(source: GeoJSONSource) -> List[Polyline]:
    """Load all LineString features of a GeoJSON source.

    Args:
        source: Path to a ``.geojson`` file or an already parsed mapping.

    Returns:
        Polylines in feature order.

    Raises:
        IngestionFailure: If the source or any LineString in it is malformed.
    """
    data = read_feature_collection(source)
    features = data["features"]

    polylines: List[Polyline] = []
    for feature in features:
        geometry = feature.get("geometry") if isinstance(feature, Mapping) else None
        if not geometry or geometry.get("type") != "LineString":
            continue
        polylines.append(feature_to_polyline(feature))

    logger.debug(
        f"Loaded {len(polylines)} LineString features out of {len(features)}"
    )
    return polylines
