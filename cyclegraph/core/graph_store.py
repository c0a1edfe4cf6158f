"""
SQLite Graph Store
====================

Persist the road graph as deduplicated nodes plus two independently
numbered segment collections (base roads and bike lanes), and answer
bounding-box and adjacency queries against it.

Every ingestion runs inside a single transaction, so a collection is
either fully visible or not at all. The bike-compatible flag is written
in bounded chunks, each its own transaction.

Example::

    from cyclegraph.core import GraphStore, Bounds, Collection
    from cyclegraph.core.ingest import load_polylines

    with GraphStore("highway.db") as store:
        store.reset()
        store.ingest_polylines(Collection.ROADS, load_polylines("highway.geojson"))
        nodes = store.find_nodes_in_bounds(Bounds(25.01, 25.02, 121.540, 121.542))
        print(f"{len(nodes)} nodes in view")
"""

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Union

from cyclegraph.config import DEFAULT_CHUNK_SIZE
from cyclegraph.core.graph import Bounds, Collection, Node, Polyline, Segment, decompose
from cyclegraph.errors import IngestionFailure, NotInitialized, WriteFailure
from cyclegraph.utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE TABLE IF NOT EXISTS nodes (
    node_id INTEGER PRIMARY KEY AUTOINCREMENT,
    lat REAL NOT NULL,
    lng REAL NOT NULL,
    UNIQUE(lat, lng)
);

CREATE TABLE IF NOT EXISTS lines (
    id INTEGER PRIMARY KEY,
    name TEXT,
    rd_from TEXT,
    sidewalk TEXT,
    start_lat REAL,
    start_lng REAL,
    end_lat REAL,
    end_lng REAL,
    bike INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS bike (
    id INTEGER PRIMARY KEY,
    name TEXT,
    rd_from TEXT,
    start_lat REAL,
    start_lng REAL,
    end_lat REAL,
    end_lng REAL
);

CREATE INDEX IF NOT EXISTS idx_nodes_lat_lng ON nodes (lat, lng);
CREATE INDEX IF NOT EXISTS idx_lines_start ON lines (start_lat, start_lng);
CREATE INDEX IF NOT EXISTS idx_lines_end ON lines (end_lat, end_lng);
"""

# Segment name prefix per collection
NAME_PREFIX = {Collection.ROADS: "line", Collection.BIKE: "bike"}


@dataclass
class ChunkedWriteResult:
    """Outcome of a chunked batch write.

    Attributes:
        committed: Rows changed by each committed chunk, in order.
        interrupted: True if the write stopped early on request.
    """

    committed: List[int] = field(default_factory=list)
    interrupted: bool = False

    @property
    def total(self) -> int:
        return sum(self.committed)


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    """Split a sequence into consecutive slices of at most ``size`` items."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for i in range(0, len(items), size):
        yield items[i : i + size]


def write_in_chunks(
    items: Sequence,
    write_chunk: Callable[[Sequence], int],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    retries: int = 0,
    should_continue: Optional[Callable[[], bool]] = None,
) -> ChunkedWriteResult:
    """Apply ``write_chunk`` to each chunk in order and collect row counts.

    ``write_chunk`` must be atomic: it either commits its whole chunk and
    returns the changed row count, or raises having changed nothing.

    Args:
        items: Items to write.
        write_chunk: Atomic writer for one chunk.
        chunk_size: Maximum items per chunk.
        retries: Extra attempts for a failing chunk.
        should_continue: Polled before every chunk after the first; a
            False return stops the write early.

    Returns:
        ChunkedWriteResult with one count per committed chunk.

    Raises:
        WriteFailure: If a chunk still fails after all retries. Chunks
            committed before it are reported in ``committed``.
    """
    result = ChunkedWriteResult()
    for index, chunk in enumerate(chunked(items, chunk_size)):
        if index > 0 and should_continue is not None and not should_continue():
            logger.warning(
                f"Chunked write interrupted after {index} chunks "
                f"({result.total} rows committed)"
            )
            result.interrupted = True
            return result

        attempt = 0
        while True:
            try:
                changes = write_chunk(chunk)
                break
            except (sqlite3.Error, WriteFailure) as exc:
                attempt += 1
                if attempt > retries:
                    raise WriteFailure(
                        f"Chunk {index + 1} failed: {exc}",
                        committed=result.committed,
                        failed_chunk=index,
                    ) from exc
                logger.warning(
                    f"Chunk {index + 1} failed ({exc}), retry {attempt}/{retries}"
                )

        logger.debug(
            f"  ... chunk {index + 1} (ids {chunk[0]}...{chunk[-1]}): "
            f"{changes} rows"
        )
        result.committed.append(changes)
    return result


class GraphStore:
    """Handle to the SQLite-backed road graph.

    The handle owns one connection for its lifetime. Use it as a context
    manager, or call :meth:`open` and :meth:`close` explicitly.

    Args:
        path: Database file path, or ``":memory:"`` for a transient store.
        timeout: Seconds to wait on a locked database before failing.
    """

    def __init__(self, path: Union[str, Path] = ":memory:", timeout: float = 5.0):
        self.path = str(path)
        self.timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "GraphStore":
        """Connect and make sure the schema exists."""
        if self._conn is not None:
            return self
        # Autocommit mode: transactions are opened explicitly
        self._conn = sqlite3.connect(
            self.path, timeout=self.timeout, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)
        logger.info(f"Connected to graph store at {self.path}")
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Graph store connection closed.")

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def __enter__(self) -> "GraphStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotInitialized("Graph store is not open. Call open() first.")
        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connection()
        conn.execute("BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            # A failed COMMIT (e.g. SQLITE_BUSY) leaves the transaction open
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def reset(self) -> None:
        """Delete every node, segment and load marker."""
        with self._transaction() as conn:
            for table in ("lines", "nodes", "bike", "metadata"):
                conn.execute(f"DELETE FROM {table}")
        logger.info("Cleared existing data from all tables.")

    # ------------------------------------------------------------------
    # Load state
    # ------------------------------------------------------------------

    def _mark_loaded(self, conn: sqlite3.Connection, collection: Collection) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, '1')",
            (f"{collection.value}_loaded",),
        )

    def is_loaded(self, collection: Collection) -> bool:
        row = self._connection().execute(
            "SELECT value FROM metadata WHERE key = ?",
            (f"{collection.value}_loaded",),
        ).fetchone()
        return row is not None

    def is_initialized(self) -> bool:
        """True once the base road collection has been ingested."""
        return self.is_loaded(Collection.ROADS)

    def _require_initialized(self) -> sqlite3.Connection:
        conn = self._connection()
        if not self.is_initialized():
            raise NotInitialized(
                "Road segments have not been ingested yet."
            )
        return conn

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest_polylines(
        self,
        collection: Collection,
        polylines: Iterable[Polyline],
        label_key: Optional[str] = None,
    ) -> int:
        """Decompose polylines into segments and store them atomically.

        Each endpoint is inserted into the node table (duplicates are
        ignored). Segment ids continue from the highest id already in the
        collection.

        Args:
            collection: Target collection.
            polylines: Source polylines.
            label_key: Feature property copied into ``source_label``.
                Defaults to ``"name"``. Empty values are stored as NULL.

        Returns:
            Number of segments inserted.

        Raises:
            IngestionFailure: If any insert fails; nothing is stored.
        """
        collection = Collection(collection)
        label_key = label_key or "name"
        prefix = NAME_PREFIX[collection]
        table = collection.value

        if collection is Collection.ROADS:
            insert_sql = (
                "INSERT INTO lines (id, name, rd_from, sidewalk, start_lat, "
                "start_lng, end_lat, end_lng) VALUES (?, ?, ?, NULL, ?, ?, ?, ?)"
            )
        else:
            insert_sql = (
                "INSERT INTO bike (id, name, rd_from, start_lat, start_lng, "
                "end_lat, end_lng) VALUES (?, ?, ?, ?, ?, ?, ?)"
            )
        node_sql = "INSERT OR IGNORE INTO nodes (lat, lng) VALUES (?, ?)"

        polylines = list(polylines)
        inserted = 0
        try:
            with self._transaction() as conn:
                row = conn.execute(f"SELECT MAX(id) FROM {table}").fetchone()
                first_id = (row[0] or 0) + 1

                for polyline in polylines:
                    conn.executemany(
                        node_sql, [(p.lat, p.lng) for p in polyline.points]
                    )

                rows = []
                for seg_id, polyline, start, end in decompose(polylines, first_id):
                    label = polyline.properties.get(label_key)
                    rows.append(
                        (
                            seg_id,
                            f"{prefix}{seg_id}",
                            str(label) if label else None,
                            start.lat,
                            start.lng,
                            end.lat,
                            end.lng,
                        )
                    )
                conn.executemany(insert_sql, rows)
                inserted = len(rows)
                self._mark_loaded(conn, collection)
        except sqlite3.Error as exc:
            raise IngestionFailure(
                f"Failed to ingest {collection.value} segments: {exc}",
                source=collection.value,
            ) from exc

        logger.info(f"Inserted {inserted} {collection.value} segments.")
        return inserted

    def annotate_sidewalks(self, polylines: Iterable[Polyline]) -> int:
        """Copy ``sidewalk`` tags from walk geometry onto matching road segments.

        A road segment matches a walk segment when their endpoint pairs
        are equal in either direction. Features tagged ``sidewalk=no`` or
        untagged are skipped, as are walk segments with no matching road.

        Returns:
            Number of road segment rows updated.

        Raises:
            NotInitialized: If road segments have not been ingested.
            IngestionFailure: If the update fails; nothing is changed.
        """
        self._require_initialized()
        update_sql = (
            "UPDATE lines SET sidewalk = ? WHERE "
            "(start_lat = ? AND start_lng = ? AND end_lat = ? AND end_lng = ?) "
            "OR (start_lat = ? AND start_lng = ? AND end_lat = ? AND end_lng = ?)"
        )

        updated = 0
        try:
            with self._transaction() as conn:
                for polyline in polylines:
                    sidewalk = polyline.properties.get("sidewalk")
                    if sidewalk == "no" or not sidewalk:
                        continue
                    for a, b in polyline.pairs():
                        cursor = conn.execute(
                            update_sql,
                            (
                                str(sidewalk),
                                a.lat, a.lng, b.lat, b.lng,
                                b.lat, b.lng, a.lat, a.lng,
                            ),
                        )
                        updated += max(cursor.rowcount, 0)
        except sqlite3.Error as exc:
            raise IngestionFailure(f"Sidewalk update failed: {exc}") from exc

        logger.info(f"Sidewalk update complete. {updated} segment updates executed.")
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_segment(row: sqlite3.Row) -> Segment:
        keys = row.keys()
        return Segment(
            id=int(row["id"]),
            start=Node(lat=row["start_lat"], lng=row["start_lng"]),
            end=Node(lat=row["end_lat"], lng=row["end_lng"]),
            name=row["name"] if "name" in keys else "",
            source_label=row["rd_from"] if "rd_from" in keys else None,
            sidewalk=row["sidewalk"] if "sidewalk" in keys else None,
            bike_compatible=bool(row["bike"]) if "bike" in keys else False,
        )

    def find_nodes_in_bounds(self, bounds: Bounds) -> List[Node]:
        """All nodes with lat and lng inside the (inclusive) bounds."""
        conn = self._require_initialized()
        rows = conn.execute(
            "SELECT lat, lng FROM nodes "
            "WHERE lat BETWEEN ? AND ? AND lng BETWEEN ? AND ? "
            "ORDER BY node_id",
            bounds.as_params(),
        ).fetchall()
        return [Node(lat=r["lat"], lng=r["lng"]) for r in rows]

    def find_segments_touching_bounds(self, bounds: Bounds) -> List[Segment]:
        """Road segments whose start or end is a node inside the bounds."""
        conn = self._require_initialized()
        rows = conn.execute(
            """
            WITH in_bounds AS (
                SELECT lat, lng FROM nodes
                WHERE lat BETWEEN ? AND ? AND lng BETWEEN ? AND ?
            )
            SELECT * FROM lines
            WHERE (start_lat, start_lng) IN (SELECT lat, lng FROM in_bounds)
               OR (end_lat, end_lng) IN (SELECT lat, lng FROM in_bounds)
            ORDER BY id
            """,
            bounds.as_params(),
        ).fetchall()
        return [self._row_to_segment(r) for r in rows]

    def find_segments_adjacent_to(self, segment_id: int) -> List[Segment]:
        """Road segments sharing an endpoint with the given segment.

        The queried segment is part of the result. An unknown id yields
        an empty list.
        """
        conn = self._require_initialized()
        rows = conn.execute(
            """
            WITH target AS (
                SELECT start_lat AS lat, start_lng AS lng FROM lines WHERE id = ?
                UNION
                SELECT end_lat AS lat, end_lng AS lng FROM lines WHERE id = ?
            )
            SELECT * FROM lines
            WHERE (start_lat, start_lng) IN (SELECT lat, lng FROM target)
               OR (end_lat, end_lng) IN (SELECT lat, lng FROM target)
            ORDER BY id
            """,
            (segment_id, segment_id),
        ).fetchall()
        return [self._row_to_segment(r) for r in rows]

    def get_segment(self, segment_id: int) -> Optional[Segment]:
        conn = self._require_initialized()
        row = conn.execute(
            "SELECT * FROM lines WHERE id = ?", (segment_id,)
        ).fetchone()
        return None if row is None else self._row_to_segment(row)

    def all_segments(self) -> List[Segment]:
        """Every road segment with all of its fields."""
        conn = self._require_initialized()
        rows = conn.execute("SELECT * FROM lines ORDER BY id").fetchall()
        return [self._row_to_segment(r) for r in rows]

    def fetch_road_segments(self) -> List[Segment]:
        """Id and endpoints of every road segment."""
        conn = self._require_initialized()
        logger.debug("Fetching all road segments for matching...")
        rows = conn.execute(
            "SELECT id, start_lat, start_lng, end_lat, end_lng FROM lines ORDER BY id"
        ).fetchall()
        return [self._row_to_segment(r) for r in rows]

    def fetch_bike_segments(self) -> List[Segment]:
        """Id and endpoints of every bike lane segment."""
        conn = self._require_initialized()
        logger.debug("Fetching all bike segments for matching...")
        rows = conn.execute(
            "SELECT id, start_lat, start_lng, end_lat, end_lng FROM bike ORDER BY id"
        ).fetchall()
        return [self._row_to_segment(r) for r in rows]

    def count_nodes(self) -> int:
        return self._connection().execute("SELECT COUNT(*) FROM nodes").fetchone()[0]

    def count_segments(self, collection: Collection = Collection.ROADS) -> int:
        table = Collection(collection).value
        return self._connection().execute(
            f"SELECT COUNT(*) FROM {table}"
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Classification write-back
    # ------------------------------------------------------------------

    def _update_bike_chunk(self, ids: Sequence[int]) -> int:
        placeholders = ",".join("?" for _ in ids)
        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE lines SET bike = 1 WHERE bike = 0 AND id IN ({placeholders})",
                list(ids),
            )
            return cursor.rowcount

    def set_bike_compatible(
        self,
        ids: Sequence[int],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        retries: int = 0,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> ChunkedWriteResult:
        """Mark road segments as bike compatible.

        Ids are written in chunks of at most ``chunk_size``, each chunk in
        its own transaction. Rows already flagged are left untouched and
        are not counted.

        Returns:
            ChunkedWriteResult with rows updated per chunk.

        Raises:
            NotInitialized: If road segments have not been ingested.
            WriteFailure: If a chunk fails; earlier chunks stay committed.
        """
        self._require_initialized()
        ids = list(ids)
        if not ids:
            logger.info("No segment ids provided to update bike status.")
            return ChunkedWriteResult()

        logger.info(
            f"Preparing to mark {len(ids)} segments as bike compatible (in chunks)..."
        )
        result = write_in_chunks(
            ids,
            self._update_bike_chunk,
            chunk_size=chunk_size,
            retries=retries,
            should_continue=should_continue,
        )
        logger.success(f"Marked {result.total} segments as bike compatible in total.")
        return result
