"""
Network Build Driver
======================

Populate a graph store from GeoJSON sources as an ordered list of named
steps:

    1. ``load_roads`` (mandatory): base road segments from highway GeoJSON.
    2. ``annotate_sidewalks`` (optional): sidewalk tags from walk GeoJSON.
    3. ``load_bike_lanes`` (optional): bike lane segments from bike GeoJSON.
    4. ``match_bike_lanes`` (mandatory): flag road segments covered by a
       bike lane.

Each step depends on the state left by the previous one, so they run
strictly in sequence. An optional step whose source is missing or
unreadable is skipped; a failing mandatory step aborts the build.

Example::

    from cyclegraph.config import BuildConfig
    from cyclegraph.core import GraphStore, NetworkBuilder

    config = BuildConfig.from_env()
    with GraphStore(config.db_path) as store:
        report = NetworkBuilder(store, config).run()
        for outcome in report.outcomes:
            print(outcome.name, outcome.status, outcome.rows)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from cyclegraph.config import BuildConfig
from cyclegraph.core.graph import Collection
from cyclegraph.core.graph_store import GraphStore
from cyclegraph.core.ingest import load_polylines
from cyclegraph.errors import BuildFailure, CycleGraphError, IngestionFailure
from cyclegraph.utils.logger import get_logger

logger = get_logger(__name__)

STATUS_OK = "ok"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class BuildStep:
    """A named build step returning the number of rows it touched."""

    name: str
    run: Callable[[], int]
    optional: bool = False


@dataclass
class StepOutcome:
    name: str
    status: str
    rows: int = 0
    error: Optional[str] = None


@dataclass
class BuildReport:
    """Per-step outcomes of a build, in execution order."""

    outcomes: List[StepOutcome] = field(default_factory=list)

    def status(self, name: str) -> Optional[str]:
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome.status
        return None

    @property
    def succeeded(self) -> bool:
        return all(o.status != STATUS_FAILED for o in self.outcomes)


def run_steps(steps: List[BuildStep]) -> BuildReport:
    """Run steps in order.

    Optional steps that raise :class:`IngestionFailure` are recorded as
    skipped. Any CycleGraph error from a mandatory step stops the run.

    Raises:
        BuildFailure: Wrapping the first mandatory failure, with the
            report so far attached.
    """
    report = BuildReport()
    for index, step in enumerate(steps, start=1):
        logger.info(f"Starting step {index}: {step.name}...")
        try:
            rows = step.run()
        except IngestionFailure as exc:
            if not step.optional:
                report.outcomes.append(StepOutcome(step.name, STATUS_FAILED, error=str(exc)))
                logger.error(f"[{step.name}] failed: {exc}")
                raise BuildFailure(step.name, exc, report) from exc
            logger.warning(f"[{step.name}] skipped: {exc}")
            report.outcomes.append(StepOutcome(step.name, STATUS_SKIPPED, error=str(exc)))
            continue
        except CycleGraphError as exc:
            report.outcomes.append(StepOutcome(step.name, STATUS_FAILED, error=str(exc)))
            logger.error(f"[{step.name}] failed: {exc}")
            raise BuildFailure(step.name, exc, report) from exc

        report.outcomes.append(StepOutcome(step.name, STATUS_OK, rows=rows))
        logger.info(f"Step {index} complete ({step.name}: {rows} rows).")
    return report


class NetworkBuilder:
    """Build the road graph in a store from the configured sources.

    Args:
        store: An open GraphStore.
        config: Source paths, label keys and matching parameters.
    """

    def __init__(self, store: GraphStore, config: Optional[BuildConfig] = None):
        self.store = store
        self.config = config or BuildConfig()

    def _load(self, path: Optional[Path]):
        if path is None:
            raise IngestionFailure("No source configured")
        return load_polylines(path)

    def load_roads(self) -> int:
        return self.store.ingest_polylines(
            Collection.ROADS,
            self._load(self.config.highway_path),
            label_key=self.config.road_label_key,
        )

    def annotate_sidewalks(self) -> int:
        return self.store.annotate_sidewalks(self._load(self.config.walk_path))

    def load_bike_lanes(self) -> int:
        return self.store.ingest_polylines(
            Collection.BIKE,
            self._load(self.config.bike_path),
            label_key=self.config.bike_label_key,
        )

    def match_bike_lanes(self) -> int:
        # Imported here: the matching package depends on core
        from cyclegraph.matching.pipeline import MatchingPipeline

        return MatchingPipeline(self.store, self.config.matching).run().newly_marked

    def steps(self) -> List[BuildStep]:
        return [
            BuildStep("load_roads", self.load_roads),
            BuildStep("annotate_sidewalks", self.annotate_sidewalks, optional=True),
            BuildStep("load_bike_lanes", self.load_bike_lanes, optional=True),
            BuildStep("match_bike_lanes", self.match_bike_lanes),
        ]

    def run(self) -> BuildReport:
        """Clear the store and run every build step.

        With ``skip_init`` set and an already initialized store, nothing
        is reloaded and every step is reported as skipped.

        Raises:
            BuildFailure: If a mandatory step fails.
        """
        if self.config.skip_init and self.store.is_initialized():
            logger.warning("skip_init is set. Using existing database data.")
            return BuildReport(
                [StepOutcome(s.name, STATUS_SKIPPED) for s in self.steps()]
            )

        logger.info("Starting full database initialization...")
        self.store.reset()
        report = run_steps(self.steps())
        logger.success("All database build steps finished.")
        return report
