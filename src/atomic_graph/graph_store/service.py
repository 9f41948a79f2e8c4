"""
Graph service.

Entry point for callers (CLI, API layer): parses raw request tokens,
fills in configured defaults and routes each query to either the
store-backed branch traversal or an in-memory snapshot.
"""

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from atomic_graph.config import Settings, get_settings
from atomic_graph.core.exceptions import InvalidParameterError
from atomic_graph.storage import Database, UnitRepository
from atomic_graph.storage.models import KnowledgeUnit, UnitFilter
from atomic_graph.graph_store.branches import BranchRequest, BranchResult, BranchTraversal
from atomic_graph.graph_store.detection import CandidateEdge, detect_relationships
from atomic_graph.graph_store.graph import (
    GraphBuilder,
    GraphStatistics,
    KnowledgeGraph,
    Neighborhood,
)
from atomic_graph.graph_store.models import BranchDirection
from atomic_graph.graph_store.store import SQLiteRelationshipStore
from atomic_graph.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PathResult:
    """Result of a shortest path query between two units."""

    source: str
    target: str
    found: bool
    path: list[str] = field(default_factory=list)
    nodes: list[KnowledgeUnit] = field(default_factory=list)

    @property
    def hops(self) -> int:
        return max(len(self.path) - 1, 0)

    @property
    def path_description(self) -> str:
        """Human-readable path description."""
        if not self.found:
            return f"No path found from '{self.source}' to '{self.target}'"
        return " -- ".join(self.path)

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "target": self.target,
            "found": self.found,
            "path": list(self.path),
            "hops": self.hops,
            "nodes": [n.to_dict() for n in self.nodes],
        }


def _parse_int(value: int | str, parameter: str) -> int:
    if isinstance(value, bool):
        raise InvalidParameterError(
            f"{parameter} must be an integer", parameter=parameter, value=value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise InvalidParameterError(
            f"{parameter} must be an integer, got {value!r}",
            parameter=parameter,
            value=value,
        ) from None


def _split_types(value: str | Sequence[str] | None) -> list[str] | None:
    """Accept "a,b", ["a", "b"] or ["a,b"]; None or blanks mean no filter."""
    if value is None:
        return None
    raw = [value] if isinstance(value, str) else list(value)
    tokens = [t.strip() for item in raw for t in str(item).split(",")]
    tokens = [t for t in tokens if t]
    return tokens or None


class GraphService:
    """
    High level graph operations over the SQLite stores.

    Example:
        >>> service = GraphService.from_settings(settings)
        >>> result = service.get_branches("unit-1", depth="3", direction="both")
        >>> result.meta.visited_count
        7
        >>> service.get_shortest_path("unit-1", "unit-9").found
        True
    """

    def __init__(
        self,
        database: Database,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.db = database
        self.units = UnitRepository(database)
        self.relationships = SQLiteRelationshipStore(database)
        self.traversal = BranchTraversal(
            self.relationships,
            self.units,
            max_limit_per_node=self.settings.traversal.max_limit_per_node,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        database: Database | None = None,
    ) -> "GraphService":
        """
        Create a service from settings.

        Args:
            settings: Application settings
            database: Optional pre-configured database
        """
        if database is None:
            database = Database.initialize(settings)
        return cls(database=database, settings=settings)

    def get_branches(
        self,
        root_id: str,
        depth: int | str | None = None,
        direction: BranchDirection | str | None = None,
        limit_per_node: int | str | None = None,
        relationship_type: str | Sequence[str] | None = None,
    ) -> BranchResult:
        """
        Expand a unit's branches.

        Missing parameters fall back to the traversal settings.

        Raises:
            InvalidParameterError: For malformed or out of range parameters
            NotFoundError: If the root unit does not exist
        """
        defaults = self.settings.traversal
        request = BranchRequest(
            root_id=root_id,
            depth=_parse_int(depth, "depth") if depth is not None else defaults.default_depth,
            direction=BranchDirection.parse(
                direction if direction is not None else defaults.default_direction),
            limit_per_node=(
                _parse_int(limit_per_node, "limitPerNode")
                if limit_per_node is not None
                else defaults.default_limit_per_node
            ),
            relationship_types=_split_types(relationship_type),
        )
        return self.traversal.traverse(request)

    def build_snapshot(
        self,
        unit_filter: UnitFilter | None = None,
        limit: int | None = None,
    ) -> KnowledgeGraph:
        """Load a bounded unit window and the relationships among its units."""
        limit = limit if limit is not None else self.settings.graph.snapshot_unit_limit
        if limit < 1:
            raise InvalidParameterError(
                f"Snapshot limit must be at least 1, got {limit}",
                parameter="limit",
                value=limit,
            )

        units = self.units.list_units(unit_filter, limit=limit)
        edges = self.relationships.touching([u.id for u in units])
        return GraphBuilder.build_from_units(units, edges)

    def get_shortest_path(self, source_id: str, target_id: str) -> PathResult:
        """Shortest undirected path between two units within a snapshot."""
        graph = self.build_snapshot()
        path = graph.find_shortest_path(source_id, target_id)
        return PathResult(
            source=source_id,
            target=target_id,
            found=bool(path),
            path=path,
            nodes=[graph.get_node(unit_id) for unit_id in path],
        )

    def get_neighborhood(
        self,
        unit_id: str,
        max_hops: int | str | None = None,
    ) -> Neighborhood:
        hops = (
            _parse_int(max_hops, "maxHops")
            if max_hops is not None
            else self.settings.graph.default_max_hops
        )
        return self.build_snapshot().get_neighborhood(unit_id, max_hops=hops)

    def get_statistics(self, unit_filter: UnitFilter | None = None) -> GraphStatistics:
        return self.build_snapshot(unit_filter).get_statistics()

    def detect_relationships(
        self,
        units: Iterable[KnowledgeUnit] | None = None,
        threshold: float | None = None,
        save: bool = False,
    ) -> list[CandidateEdge]:
        """
        Propose related edges by keyword similarity.

        Args:
            units: Units to compare; defaults to the newest
                detection.max_units stored units
            threshold: Minimum Jaccard score; defaults to the configured one
            save: Upsert every candidate in a single transaction

        Raises:
            InvalidParameterError: For a bad threshold or too many units
        """
        settings = self.settings.detection
        if units is None:
            units = self.units.list_units(limit=settings.max_units)
        else:
            units = list(units)
            if len(units) > settings.max_units:
                raise InvalidParameterError(
                    f"Detection accepts at most {settings.max_units} units, got {len(units)}",
                    parameter="units",
                    value=len(units),
                )

        threshold = threshold if threshold is not None else settings.similarity_threshold
        candidates = detect_relationships(units, threshold=threshold)

        if save and candidates:
            written = self.relationships.upsert_batch(c.to_edge() for c in candidates)
            logger.info(f"Saved {written} auto-detected relationships")

        return candidates
