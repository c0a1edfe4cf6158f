"""
Tests for the query facade and configuration loading.
"""

from pathlib import Path

import numpy as np
import pytest

from cyclegraph.config import BuildConfig
from cyclegraph.core.graph import Bounds, Collection
from cyclegraph.errors import NotInitialized
from cyclegraph.service import NetworkService
from cyclegraph.traffic.density import DensityGrid

from conftest import polyline


@pytest.fixture
def service(store):
    store.ingest_polylines(
        Collection.ROADS,
        [polyline([(121.50, 25.00), (121.51, 25.01), (121.52, 25.00)])],
    )
    return NetworkService(store, DensityGrid(np.ones((200, 200))))


class TestNetworkService:
    def test_queries(self, service):
        bounds = Bounds(25.005, 25.015, 121.505, 121.515)
        assert len(service.query_nodes_in_bounds(bounds)) == 1
        assert [s.id for s in service.query_segments_touching_bounds(bounds)] == [1, 2]
        assert [s.id for s in service.query_segments_adjacent_to(2)] == [1, 2]
        assert len(service.query_all_segments()) == 2

    def test_matching_without_bike_lanes(self, service):
        assert service.run_matching_pipeline() == 0

    def test_point_density(self, service):
        assert service.point_density(121.6, 25.1) == 0
        assert service.point_density(121.5005, 25.0005, radius=0) == 1

    def test_point_density_without_grid(self, store):
        with pytest.raises(NotInitialized):
            NetworkService(store).point_density(121.5, 25.0)


class TestBuildConfig:
    def test_defaults(self):
        config = BuildConfig()
        assert config.matching.buffer_width == 0.0005
        assert config.matching.slope_tolerance == 0.1
        assert config.matching.chunk_size == 900
        assert config.skip_init is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CYCLEGRAPH_SKIP_INIT", "true")
        monkeypatch.setenv("CYCLEGRAPH_DB_PATH", "other.db")
        monkeypatch.setenv("CYCLEGRAPH_BIKE_PATH", "lanes.geojson")
        monkeypatch.setenv("CYCLEGRAPH_BUFFER_WIDTH", "0.001")
        config = BuildConfig.from_env(highway_path=Path("roads.geojson"))
        assert config.skip_init is True
        assert config.db_path == "other.db"
        assert config.bike_path == Path("lanes.geojson")
        assert config.highway_path == Path("roads.geojson")
        assert config.matching.buffer_width == 0.001
        assert config.matching.slope_tolerance == 0.1

    def test_from_env_unset(self, monkeypatch):
        monkeypatch.delenv("CYCLEGRAPH_SKIP_INIT", raising=False)
        assert BuildConfig.from_env().skip_init is False
