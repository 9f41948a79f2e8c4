"""
Branch traversal.

Expands a root unit level by level against the relationship store,
producing one column of units per depth for interactive drill-down.
Traversal is cycle-safe, fan-out capped per node and deterministic
for identical store contents.
"""

from dataclasses import dataclass, field
from typing import Iterable

from atomic_graph.core.exceptions import InvalidParameterError, NotFoundError
from atomic_graph.storage.models import UnitSummary
from atomic_graph.storage.repositories import UnitStore
from atomic_graph.graph_store.models import (
    BranchDirection,
    EdgeDirection,
    RelationType,
    RelationshipEdge,
    parse_relationship_type,
    sortable_timestamp,
)
from atomic_graph.graph_store.store import RelationshipReader
from atomic_graph.utils.logging import get_logger, get_logger_with_context
from atomic_graph.utils.metrics import time_branch_traversal

logger = get_logger(__name__)

MIN_DEPTH = 1
MAX_DEPTH = 4
DEFAULT_DEPTH = 2
DEFAULT_LIMIT_PER_NODE = 12
MAX_LIMIT_PER_NODE = 25


@dataclass
class BranchRequest:
    """Parameters of a single branch traversal."""

    root_id: str
    depth: int = DEFAULT_DEPTH
    direction: BranchDirection = BranchDirection.OUT
    limit_per_node: int = DEFAULT_LIMIT_PER_NODE
    relationship_types: Iterable["str | RelationType"] | None = None

    def validate(self) -> None:
        """
        Check bounds and normalize direction and relationship types.

        Raises:
            InvalidParameterError: For a depth outside [1, 4], a fan-out
                cap below 1, or an unknown direction or relationship type
        """
        if isinstance(self.depth, bool) or not isinstance(self.depth, int):
            raise InvalidParameterError(
                f"Depth must be an integer, got {self.depth!r}",
                parameter="depth",
                value=self.depth,
            )
        if not MIN_DEPTH <= self.depth <= MAX_DEPTH:
            raise InvalidParameterError(
                f"Depth must be between {MIN_DEPTH} and {MAX_DEPTH}, got {self.depth}",
                parameter="depth",
                value=self.depth,
            )

        if isinstance(self.limit_per_node, bool) or not isinstance(self.limit_per_node, int):
            raise InvalidParameterError(
                f"limitPerNode must be an integer, got {self.limit_per_node!r}",
                parameter="limitPerNode",
                value=self.limit_per_node,
            )
        if self.limit_per_node < 1:
            raise InvalidParameterError(
                f"limitPerNode must be at least 1, got {self.limit_per_node}",
                parameter="limitPerNode",
                value=self.limit_per_node,
            )

        self.direction = BranchDirection.parse(self.direction)

        if self.relationship_types is not None:
            parsed = [
                parse_relationship_type(t, strict=True)
                for t in self.relationship_types
            ]
            self.relationship_types = tuple(dict.fromkeys(parsed))

    @property
    def type_filter(self) -> frozenset[str]:
        """Allowed relationship type tokens; empty admits every type."""
        if not self.relationship_types:
            return frozenset()
        return frozenset(t.value for t in self.relationship_types)


@dataclass
class BranchEdge:
    """A relationship kept by a traversal, tagged with how it was reached."""

    edge: RelationshipEdge
    direction: EdgeDirection
    depth: int

    @property
    def parent_id(self) -> str:
        return self.edge.from_id if self.direction == EdgeDirection.OUT else self.edge.to_id

    @property
    def child_id(self) -> str:
        return self.edge.to_id if self.direction == EdgeDirection.OUT else self.edge.from_id

    def to_dict(self) -> dict:
        data = self.edge.to_dict()
        data["direction"] = self.direction.value
        data["depth"] = self.depth
        return data


@dataclass
class BranchColumn:
    """Units first discovered at one depth, in discovery order."""

    depth: int
    units: list[UnitSummary] = field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [u.id for u in self.units]

    def to_dict(self) -> dict:
        return {
            "depth": self.depth,
            "units": [u.to_dict() for u in self.units],
        }


@dataclass
class BranchMeta:
    """Effective request parameters and traversal counters."""

    depth: int
    direction: BranchDirection
    limit_per_node: int
    relationship_types: list[str] = field(default_factory=list)
    truncated: bool = False
    filtered_back_edges: int = 0
    visited_count: int = 0
    edge_count: int = 0

    def to_dict(self) -> dict:
        return {
            "depth": self.depth,
            "direction": self.direction.value,
            "limitPerNode": self.limit_per_node,
            "relationshipTypes": list(self.relationship_types),
            "truncated": self.truncated,
            "filteredBackEdges": self.filtered_back_edges,
            "visitedCount": self.visited_count,
            "edgeCount": self.edge_count,
        }


@dataclass
class BranchResult:
    """Columns, edges and counters of one traversal. Never cached."""

    root: UnitSummary
    columns: list[BranchColumn]
    edges: list[BranchEdge]
    meta: BranchMeta

    def column_ids(self) -> list[list[str]]:
        return [c.ids for c in self.columns]

    def to_dict(self) -> dict:
        return {
            "root": self.root.to_dict(),
            "columns": [c.to_dict() for c in self.columns],
            "edges": [e.to_dict() for e in self.edges],
            "meta": self.meta.to_dict(),
        }


def _sort_key(candidate: tuple[RelationshipEdge, EdgeDirection]) -> tuple:
    edge, direction = candidate
    confidence = edge.confidence if edge.confidence is not None else -1.0
    return (
        -confidence,
        -sortable_timestamp(edge.created_at),
        edge.relationship_type.value,
        direction.value,
    )


class BranchTraversal:
    """
    Depth-bounded, level-synchronous BFS over the relationship store.

    Every unit appears in exactly one column, at the depth it was first
    reached. Every emitted edge joins a unit in column d-1 to a unit in
    column d. Edges leading back into already visited units are counted
    in filtered_back_edges and dropped.

    Example:
        >>> traversal = BranchTraversal(relationship_store, unit_repository)
        >>> result = traversal.traverse(
        ...     BranchRequest("root", depth=3, direction=BranchDirection.BOTH)
        ... )
        >>> result.column_ids()
        [['root'], ['a', 'b'], ['c']]
    """

    def __init__(
        self,
        relationships: RelationshipReader,
        units: UnitStore,
        max_limit_per_node: int = MAX_LIMIT_PER_NODE,
    ) -> None:
        self.relationships = relationships
        self.units = units
        self.max_limit_per_node = max_limit_per_node

    def _candidates(
        self,
        unit_id: str,
        direction: BranchDirection,
        type_filter: frozenset[str],
    ) -> list[tuple[RelationshipEdge, EdgeDirection]]:
        candidates: list[tuple[RelationshipEdge, EdgeDirection]] = []

        if direction in (BranchDirection.OUT, BranchDirection.BOTH):
            candidates.extend(
                (e, EdgeDirection.OUT) for e in self.relationships.outgoing(unit_id))
        if direction in (BranchDirection.IN, BranchDirection.BOTH):
            candidates.extend(
                (e, EdgeDirection.IN) for e in self.relationships.incoming(unit_id))

        if type_filter:
            candidates = [
                c for c in candidates
                if c[0].relationship_type.value in type_filter
            ]

        # sorted() is stable, so store order settles exact ties
        return sorted(candidates, key=_sort_key)

    def _summary(self, unit_id: str) -> UnitSummary:
        summary = self.units.get_unit_summary(unit_id)
        if summary is None:
            logger.debug(f"Relationship endpoint {unit_id} has no unit record")
            return UnitSummary.placeholder(unit_id)
        return summary

    def traverse(self, request: BranchRequest) -> BranchResult:
        """
        Expand request.root_id up to request.depth levels.

        Raises:
            InvalidParameterError: If the request is out of bounds
            NotFoundError: If the root unit does not exist
        """
        request.validate()
        log = get_logger_with_context(__name__, root=request.root_id)

        limit = request.limit_per_node
        if limit > self.max_limit_per_node:
            log.warning(
                f"limitPerNode {limit} exceeds maximum {self.max_limit_per_node}; clamping"
            )
            limit = self.max_limit_per_node

        root = self.units.get_unit_summary(request.root_id)
        if root is None:
            raise NotFoundError(
                f"Unit not found: {request.root_id}", unit_id=request.root_id)

        with time_branch_traversal():
            result = self._expand(request, root, limit)

        log.debug(
            f"Expanded {len(result.columns)} columns, "
            f"{result.meta.edge_count} edges, "
            f"{result.meta.filtered_back_edges} back edges filtered"
        )
        return result

    def _expand(
        self,
        request: BranchRequest,
        root: UnitSummary,
        limit: int,
    ) -> BranchResult:
        type_filter = request.type_filter
        meta = BranchMeta(
            depth=request.depth,
            direction=request.direction,
            limit_per_node=limit,
            relationship_types=[t.value for t in request.relationship_types or ()],
        )

        visited = {root.id}
        columns = [BranchColumn(depth=0, units=[root])]
        edges: list[BranchEdge] = []
        # Keys of edges already emitted or already counted as back edges
        consumed: set[tuple[str, str, str]] = set()

        for depth in range(1, request.depth + 1):
            discovered: dict[str, None] = {}
            round_edges: list[BranchEdge] = []

            for parent_id in columns[depth - 1].ids:
                candidates = self._candidates(parent_id, request.direction, type_filter)
                if len(candidates) > limit:
                    meta.truncated = True
                    candidates = candidates[:limit]

                # One discovering edge per (parent, neighbor)
                handled: set[str] = set()

                for edge, direction in candidates:
                    if edge.key in consumed:
                        continue

                    neighbor = edge.to_id if direction == EdgeDirection.OUT else edge.from_id
                    if neighbor in handled:
                        continue
                    handled.add(neighbor)
                    consumed.add(edge.key)

                    if neighbor in visited:
                        meta.filtered_back_edges += 1
                        continue

                    discovered[neighbor] = None
                    round_edges.append(
                        BranchEdge(edge=edge, direction=direction, depth=depth))

            if not discovered:
                if depth == 1:
                    columns.append(BranchColumn(depth=1))
                break

            columns.append(
                BranchColumn(
                    depth=depth,
                    units=[self._summary(unit_id) for unit_id in discovered],
                )
            )
            visited.update(discovered)
            edges.extend(round_edges)

        meta.visited_count = len(visited)
        meta.edge_count = len(edges)
        return BranchResult(root=root, columns=columns, edges=edges, meta=meta)
