"""
Shared fixtures for CycleGraph tests.
"""

import json

import pytest

from cyclegraph.core.graph import Node, Polyline
from cyclegraph.core.graph_store import GraphStore


def line_feature(coords, **properties):
    """GeoJSON LineString feature from [lng, lat] pairs."""
    return {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [list(c) for c in coords]},
        "properties": properties,
    }


def polyline(coords, **properties):
    """Polyline from [lng, lat] pairs."""
    return Polyline(points=[Node.from_lnglat(c) for c in coords], properties=properties)


@pytest.fixture
def store():
    s = GraphStore(":memory:").open()
    yield s
    s.close()


@pytest.fixture
def write_geojson(tmp_path):
    def _write(name, features):
        path = tmp_path / name
        path.write_text(
            json.dumps({"type": "FeatureCollection", "features": features}),
            encoding="utf-8",
        )
        return path

    return _write
