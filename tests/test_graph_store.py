"""
Tests for the SQLite graph store.
"""

import sqlite3

import pytest

from cyclegraph.core.graph import Bounds, Collection, Node
from cyclegraph.core.graph_store import (
    ChunkedWriteResult,
    GraphStore,
    chunked,
    write_in_chunks,
)
from cyclegraph.errors import IngestionFailure, NotInitialized, WriteFailure

from conftest import polyline

# Three road segments: A->B, B->C, C->D, plus a spur B->E
ROAD = polyline(
    [(121.540, 25.010), (121.541, 25.011), (121.542, 25.012), (121.543, 25.013)],
    name="Main St",
)
SPUR = polyline([(121.541, 25.011), (121.541, 25.020)], name="Side St")


@pytest.fixture
def loaded(store):
    store.ingest_polylines(Collection.ROADS, [ROAD, SPUR])
    return store


class TestLifecycle:
    def test_query_before_open(self):
        store = GraphStore()
        with pytest.raises(NotInitialized):
            store.fetch_road_segments()

    def test_query_before_ingestion(self, store):
        with pytest.raises(NotInitialized):
            store.find_nodes_in_bounds(Bounds(0, 1, 0, 1))
        with pytest.raises(NotInitialized):
            store.fetch_bike_segments()

    def test_context_manager(self):
        with GraphStore() as store:
            assert store.is_open
            assert not store.is_initialized()
        assert not store.is_open

    def test_reset(self, loaded):
        loaded.reset()
        assert loaded.count_nodes() == 0
        assert loaded.count_segments() == 0
        assert not loaded.is_initialized()

    def test_file_database_persists(self, tmp_path):
        path = tmp_path / "graph.db"
        with GraphStore(path) as store:
            store.ingest_polylines(Collection.ROADS, [ROAD])
        with GraphStore(path) as store:
            assert store.is_initialized()
            assert store.count_segments() == 3


class TestIngestion:
    def test_polyline_decomposition(self, loaded):
        segments = loaded.all_segments()
        assert [s.id for s in segments] == [1, 2, 3, 4]
        assert segments[0].name == "line1"
        assert segments[0].source_label == "Main St"
        assert segments[3].source_label == "Side St"
        assert segments[1].start == Node(lat=25.011, lng=121.541)
        assert segments[1].end == Node(lat=25.012, lng=121.542)
        assert all(s.sidewalk is None and not s.bike_compatible for s in segments)

    def test_node_deduplication(self, loaded):
        # B is shared by the main road and the spur
        assert loaded.count_nodes() == 5

    def test_ingesting_twice_keeps_node_count(self, store):
        line = polyline([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)])
        store.ingest_polylines(Collection.ROADS, [line])
        store.ingest_polylines(Collection.ROADS, [line])
        assert store.count_segments(Collection.ROADS) == 4
        assert store.count_nodes() == 3
        assert [s.id for s in store.all_segments()] == [1, 2, 3, 4]

    def test_collections_numbered_independently(self, loaded):
        bike = polyline([(121.540, 25.010), (121.545, 25.010)], **{"路段名稱": "River Path"})
        loaded.ingest_polylines(Collection.BIKE, [bike], label_key="路段名稱")
        bikes = loaded.fetch_bike_segments()
        assert [b.id for b in bikes] == [1]
        assert loaded.count_segments(Collection.BIKE) == 1
        # One new node; the start point already exists
        assert loaded.count_nodes() == 6

    def test_failed_ingestion_stores_nothing(self, store):
        good = polyline([(0.0, 0.0), (1.0, 1.0)])
        bad = polyline([(2.0, 2.0), (3.0, 3.0)])
        bad.points[1] = Node(lat=None, lng=3.0)
        with pytest.raises(IngestionFailure):
            store.ingest_polylines(Collection.ROADS, [good, bad])
        assert store.count_nodes() == 0
        assert store.count_segments() == 0
        assert not store.is_initialized()

    def test_empty_label_stored_as_null(self, store):
        store.ingest_polylines(
            Collection.ROADS,
            [
                polyline([(0.0, 0.0), (1.0, 1.0)], name=""),
                polyline([(2.0, 2.0), (3.0, 3.0)], name="Ring Rd"),
            ],
        )
        assert [s.source_label for s in store.all_segments()] == [None, "Ring Rd"]

    def test_single_point_line_yields_no_segments(self, store):
        assert store.ingest_polylines(Collection.ROADS, [polyline([(5.0, 5.0)])]) == 0
        assert store.count_nodes() == 1
        assert store.is_initialized()


class TestSidewalks:
    def test_reverse_direction_match(self, loaded):
        walk = polyline([(121.542, 25.012), (121.541, 25.011)], sidewalk="both")
        assert loaded.annotate_sidewalks([walk]) == 1
        sidewalks = {s.id: s.sidewalk for s in loaded.all_segments()}
        assert sidewalks == {1: None, 2: "both", 3: None, 4: None}

    def test_no_value_is_skipped(self, loaded):
        walk = polyline([(121.540, 25.010), (121.541, 25.011)], sidewalk="no")
        assert loaded.annotate_sidewalks([walk]) == 0
        assert loaded.get_segment(1).sidewalk is None

    def test_unmatched_is_not_an_error(self, loaded):
        walk = polyline([(0.0, 0.0), (1.0, 1.0)], sidewalk="left")
        assert loaded.annotate_sidewalks([walk]) == 0

    def test_requires_roads(self, store):
        with pytest.raises(NotInitialized):
            store.annotate_sidewalks([])


class TestQueries:
    def test_nodes_in_bounds_inclusive(self, loaded):
        nodes = loaded.find_nodes_in_bounds(Bounds(25.010, 25.011, 121.540, 121.541))
        assert set(nodes) == {Node(25.010, 121.540), Node(25.011, 121.541)}

    def test_nodes_in_empty_area(self, loaded):
        assert loaded.find_nodes_in_bounds(Bounds(0.0, 1.0, 0.0, 1.0)) == []

    def test_segments_touching_bounds(self, loaded):
        # Only node D (end of segment 3) is inside
        segments = loaded.find_segments_touching_bounds(
            Bounds(25.0125, 25.0135, 121.5425, 121.5435)
        )
        assert [s.id for s in segments] == [3]

        segments = loaded.find_segments_touching_bounds(
            Bounds(25.0105, 25.0115, 121.5405, 121.5415)
        )
        assert [s.id for s in segments] == [1, 2, 4]

    def test_adjacent_includes_self(self, loaded):
        assert [s.id for s in loaded.find_segments_adjacent_to(1)] == [1, 2, 4]
        assert [s.id for s in loaded.find_segments_adjacent_to(3)] == [2, 3]

    def test_adjacent_unknown_id(self, loaded):
        assert loaded.find_segments_adjacent_to(999) == []

    def test_inverted_bounds_rejected(self):
        with pytest.raises(ValueError):
            Bounds(1.0, 0.0, 0.0, 1.0)

    def test_segment_serialization(self, loaded):
        data = loaded.get_segment(1).to_dict()
        assert data["id"] == 1
        assert data["rd_from"] == "Main St"
        assert data["start_lat"] == 25.010
        assert data["bike"] is False


class TestBikeCompatibleWrites:
    def _many_roads(self, store, n):
        lines = [polyline([(float(i), 0.0), (float(i), 1.0)]) for i in range(n)]
        store.ingest_polylines(Collection.ROADS, lines)

    def test_chunked_update(self, store):
        self._many_roads(store, 5)
        result = store.set_bike_compatible([1, 2, 3, 4, 5], chunk_size=2)
        assert result.committed == [2, 2, 1]
        assert result.total == 5
        assert all(s.bike_compatible for s in store.all_segments())

    def test_idempotent(self, store):
        self._many_roads(store, 3)
        store.set_bike_compatible([1, 2])
        result = store.set_bike_compatible([1, 2, 3])
        assert result.total == 1

    def test_empty_id_list(self, loaded):
        assert loaded.set_bike_compatible([]).total == 0

    def test_large_id_list(self, store):
        self._many_roads(store, 2000)
        result = store.set_bike_compatible(list(range(1, 2001)))
        assert result.committed == [900, 900, 200]

    def test_failing_chunk_keeps_committed_chunks(self, store, monkeypatch):
        self._many_roads(store, 5)
        original = store._update_bike_chunk
        calls = []

        def flaky(ids):
            calls.append(list(ids))
            if len(calls) == 2:
                raise sqlite3.OperationalError("disk I/O error")
            return original(ids)

        monkeypatch.setattr(store, "_update_bike_chunk", flaky)
        with pytest.raises(WriteFailure) as excinfo:
            store.set_bike_compatible([1, 2, 3, 4, 5], chunk_size=2)

        assert excinfo.value.committed == [2]
        assert excinfo.value.failed_chunk == 1
        assert excinfo.value.total_committed == 2
        flagged = [s.id for s in store.all_segments() if s.bike_compatible]
        assert flagged == [1, 2]

    def test_retry_recovers(self, store, monkeypatch):
        self._many_roads(store, 2)
        original = store._update_bike_chunk
        failures = [sqlite3.OperationalError("database is locked")]

        def flaky(ids):
            if failures:
                raise failures.pop()
            return original(ids)

        monkeypatch.setattr(store, "_update_bike_chunk", flaky)
        result = store.set_bike_compatible([1, 2], retries=1)
        assert result.total == 2

    def test_locked_commit_is_rolled_back(self, tmp_path):
        path = tmp_path / "graph.db"
        store = GraphStore(path, timeout=0.1).open()
        self._many_roads(store, 2)

        # An open read transaction blocks the writer's COMMIT
        reader = sqlite3.connect(str(path), isolation_level=None)
        reader.execute("BEGIN")
        reader.execute("SELECT * FROM lines").fetchall()
        try:
            with pytest.raises(WriteFailure) as excinfo:
                store.set_bike_compatible([1])
            assert excinfo.value.committed == []
            assert excinfo.value.failed_chunk == 0
            assert not store._conn.in_transaction
        finally:
            reader.execute("COMMIT")
            reader.close()

        assert store.get_segment(1).bike_compatible is False
        # The handle is still usable once the lock is gone
        assert store.set_bike_compatible([1]).total == 1
        assert store.get_segment(1).bike_compatible is True
        store.close()

    def test_interrupt_between_chunks(self, store):
        self._many_roads(store, 5)
        result = store.set_bike_compatible(
            [1, 2, 3, 4, 5], chunk_size=2, should_continue=lambda: False
        )
        assert result.interrupted
        assert result.committed == [2]


class TestChunking:
    def test_chunked(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([], 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunked([1], 0))

    def test_write_in_chunks_sums(self):
        result = write_in_chunks(list(range(7)), len, chunk_size=3)
        assert isinstance(result, ChunkedWriteResult)
        assert result.committed == [3, 3, 1]
        assert result.total == 7
        assert not result.interrupted
