"""
In-memory knowledge graph snapshots.

A KnowledgeGraph is built once from a bounded window of units and the
relationships among them, then answers whole-graph queries (shortest
path, neighborhood, statistics) without touching storage.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from atomic_graph.core.exceptions import InvalidParameterError
from atomic_graph.storage.models import KnowledgeUnit
from atomic_graph.graph_store.detection import (
    DEFAULT_THRESHOLD,
    CandidateEdge,
    detect_relationships,
)
from atomic_graph.graph_store.models import RelationshipEdge
from atomic_graph.utils.logging import get_logger
from atomic_graph.utils.metrics import time_snapshot_build

logger = get_logger(__name__)

VIS_LABEL_LENGTH = 30


@dataclass
class Neighborhood:
    """Units within a hop radius of a center unit and the edges among them."""

    center: str
    max_hops: int
    nodes: list[KnowledgeUnit] = field(default_factory=list)
    edges: list[RelationshipEdge] = field(default_factory=list)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def to_dict(self) -> dict:
        return {
            "center": self.center,
            "maxHops": self.max_hops,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class GraphStatistics:
    """Summary figures for a snapshot."""

    node_count: int = 0
    edge_count: int = 0
    density: float = 0.0
    avg_degree: float = 0.0
    max_degree: int = 0
    components: int = 0
    types: dict[str, int] = field(default_factory=dict)
    categories: dict[str, int] = field(default_factory=dict)
    relationship_types: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "nodeCount": self.node_count,
            "edgeCount": self.edge_count,
            "density": self.density,
            "avgDegree": self.avg_degree,
            "maxDegree": self.max_degree,
            "components": self.components,
            "types": dict(self.types),
            "categories": dict(self.categories),
            "relationshipTypes": dict(self.relationship_types),
        }


class KnowledgeGraph:
    """
    Immutable snapshot of units and the relationships among them.

    Path and neighborhood queries treat every edge as undirected;
    adjacency order is outgoing edges first, then incoming edges, each
    in snapshot insertion order.

    Example:
        >>> graph = GraphBuilder.build_from_units(units, edges)
        >>> graph.find_shortest_path("a", "c")
        ['a', 'b', 'c']
        >>> graph.get_statistics().node_count
        3
    """

    def __init__(
        self,
        nodes: dict[str, KnowledgeUnit],
        edges: Sequence[RelationshipEdge],
    ) -> None:
        self._nodes = dict(nodes)
        self._edges = tuple(edges)
        self._outgoing: dict[str, list[RelationshipEdge]] = {
            node_id: [] for node_id in self._nodes}
        self._incoming: dict[str, list[RelationshipEdge]] = {
            node_id: [] for node_id in self._nodes}

        for edge in self._edges:
            self._outgoing[edge.from_id].append(edge)
            self._incoming[edge.to_id].append(edge)

    @property
    def nodes(self) -> dict[str, KnowledgeUnit]:
        return dict(self._nodes)

    @property
    def edges(self) -> list[RelationshipEdge]:
        return list(self._edges)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def has_node(self, unit_id: str) -> bool:
        return unit_id in self._nodes

    def get_node(self, unit_id: str) -> KnowledgeUnit | None:
        return self._nodes.get(unit_id)

    def get_edges_from(self, unit_id: str) -> list[RelationshipEdge]:
        return list(self._outgoing.get(unit_id, []))

    def get_edges_to(self, unit_id: str) -> list[RelationshipEdge]:
        return list(self._incoming.get(unit_id, []))

    def _neighbors(self, unit_id: str) -> Iterable[str]:
        for edge in self._outgoing.get(unit_id, []):
            yield edge.to_id
        for edge in self._incoming.get(unit_id, []):
            yield edge.from_id

    def find_shortest_path(self, source_id: str, target_id: str) -> list[str]:
        """
        Find a shortest undirected path between two units.

        Returns:
            Unit ids from source to target inclusive, [source_id] when
            both are the same unit, or [] when either is absent or no
            path exists
        """
        if source_id not in self._nodes or target_id not in self._nodes:
            return []
        if source_id == target_id:
            return [source_id]

        parents: dict[str, str | None] = {source_id: None}
        queue = deque([source_id])

        while queue:
            current = queue.popleft()
            for neighbor in self._neighbors(current):
                if neighbor in parents:
                    continue
                parents[neighbor] = current
                if neighbor == target_id:
                    return self._unwind(parents, target_id)
                queue.append(neighbor)

        return []

    @staticmethod
    def _unwind(parents: dict[str, str | None], target_id: str) -> list[str]:
        path = [target_id]
        step = parents[target_id]
        while step is not None:
            path.append(step)
            step = parents[step]
        path.reverse()
        return path

    def get_neighborhood(self, unit_id: str, max_hops: int = 2) -> Neighborhood:
        """
        Collect units within max_hops undirected hops of a unit.

        Args:
            unit_id: Center unit
            max_hops: Hop radius, inclusive

        Raises:
            InvalidParameterError: If max_hops is negative
        """
        if max_hops < 0:
            raise InvalidParameterError(
                f"max_hops must be non-negative, got {max_hops}",
                parameter="maxHops",
                value=max_hops,
            )

        result = Neighborhood(center=unit_id, max_hops=max_hops)
        if unit_id not in self._nodes:
            return result

        discovered = {unit_id: 0}
        queue = deque([unit_id])

        while queue:
            current = queue.popleft()
            hops = discovered[current]
            if hops >= max_hops:
                continue
            for neighbor in self._neighbors(current):
                if neighbor not in discovered:
                    discovered[neighbor] = hops + 1
                    queue.append(neighbor)

        result.nodes = [self._nodes[node_id] for node_id in discovered]
        result.edges = [
            e for e in self._edges
            if e.from_id in discovered and e.to_id in discovered
        ]
        return result

    def _count_components(self) -> int:
        seen: set[str] = set()
        components = 0

        for start in self._nodes:
            if start in seen:
                continue
            components += 1
            seen.add(start)
            queue = deque([start])
            while queue:
                current = queue.popleft()
                for neighbor in self._neighbors(current):
                    if neighbor not in seen:
                        seen.add(neighbor)
                        queue.append(neighbor)

        return components

    def get_statistics(self) -> GraphStatistics:
        """Compute counts, density, degree figures and histograms."""
        node_count = len(self._nodes)
        edge_count = len(self._edges)

        density = 0.0
        if node_count > 1:
            density = edge_count / (node_count * (node_count - 1))

        degrees = [
            len(self._outgoing[node_id]) + len(self._incoming[node_id])
            for node_id in self._nodes
        ]

        return GraphStatistics(
            node_count=node_count,
            edge_count=edge_count,
            density=density,
            avg_degree=sum(degrees) / len(degrees) if degrees else 0.0,
            max_degree=max(degrees) if degrees else 0,
            components=self._count_components(),
            types=dict(Counter(u.type.value for u in self._nodes.values())),
            categories=dict(Counter(u.category for u in self._nodes.values())),
            relationship_types=dict(
                Counter(e.relationship_type.value for e in self._edges)),
        )

    def find_by_type(self, unit_type: str) -> list[KnowledgeUnit]:
        return [u for u in self._nodes.values() if u.type.value == unit_type]

    def find_by_category(self, category: str) -> list[KnowledgeUnit]:
        return [u for u in self._nodes.values() if u.category == category]

    def search(self, query: str) -> list[KnowledgeUnit]:
        """Units whose title or any keyword contains query, case-insensitively."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            u for u in self._nodes.values()
            if needle in u.title.lower()
            or any(needle in k.lower() for k in u.keywords)
        ]

    def to_dict(self) -> dict:
        return {
            "nodes": [u.to_dict() for u in self._nodes.values()],
            "edges": [e.to_dict() for e in self._edges],
            "stats": self.get_statistics().to_dict(),
        }

    def to_vis_format(self) -> dict:
        """Render nodes and edges in the shape vis-network expects."""
        return {
            "nodes": [
                {
                    "id": u.id,
                    "label": u.title[:VIS_LABEL_LENGTH],
                    "title": u.title,
                    "type": u.type.value,
                    "category": u.category,
                }
                for u in self._nodes.values()
            ],
            "edges": [
                {
                    "from": e.from_id,
                    "to": e.to_id,
                    "label": e.relationship_type.value,
                    "title": e.relationship_type.value,
                }
                for e in self._edges
            ],
        }

    def __repr__(self) -> str:
        return f"KnowledgeGraph(nodes={self.node_count}, edges={self.edge_count})"


class GraphBuilder:
    """Builds KnowledgeGraph snapshots."""

    @staticmethod
    def build_from_units(
        units: Iterable[KnowledgeUnit],
        relationships: Iterable[RelationshipEdge],
    ) -> KnowledgeGraph:
        """
        Build a snapshot over a unit window.

        Edges with an endpoint outside the window are dropped. Edges
        sharing a key collapse to the last one given.
        """
        with time_snapshot_build():
            nodes: dict[str, KnowledgeUnit] = {}
            for unit in units:
                nodes[unit.id] = unit

            edges: dict[tuple[str, str, str], RelationshipEdge] = {}
            dropped = 0
            for edge in relationships:
                if edge.from_id in nodes and edge.to_id in nodes:
                    edges[edge.key] = edge
                else:
                    dropped += 1

            graph = KnowledgeGraph(nodes, list(edges.values()))

        logger.debug(
            f"Built snapshot with {graph.node_count} nodes, {graph.edge_count} edges "
            f"({dropped} edges outside window)"
        )
        return graph

    @staticmethod
    def auto_detect_relationships(
        units: Iterable[KnowledgeUnit],
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[CandidateEdge]:
        """Propose related edges between units with similar keywords."""
        return detect_relationships(units, threshold=threshold)
