"""
Graph store module for the atomic knowledge graph.

Provides the relationship graph engine:
- Typed relationship storage
- In-memory snapshots with path, neighborhood and statistics queries
- Bounded branch traversal for interactive drill-down
- Keyword-similarity relationship detection
"""

from atomic_graph.graph_store.models import (
    RelationshipType,
    OtherRelationship,
    RelationshipSource,
    RelationshipEdge,
    EdgeDirection,
    BranchDirection,
    parse_relationship_type,
)
from atomic_graph.graph_store.store import (
    RelationshipReader,
    RelationshipStore,
    SQLiteRelationshipStore,
)
from atomic_graph.graph_store.detection import (
    CandidateEdge,
    detect_relationships,
    jaccard,
)
from atomic_graph.graph_store.graph import (
    GraphBuilder,
    KnowledgeGraph,
    Neighborhood,
    GraphStatistics,
)
from atomic_graph.graph_store.branches import (
    BranchRequest,
    BranchResult,
    BranchColumn,
    BranchEdge,
    BranchMeta,
    BranchTraversal,
)
from atomic_graph.graph_store.service import (
    GraphService,
    PathResult,
)

__all__ = [
    # Models
    "RelationshipType",
    "OtherRelationship",
    "RelationshipSource",
    "RelationshipEdge",
    "EdgeDirection",
    "BranchDirection",
    "parse_relationship_type",
    # Store
    "RelationshipReader",
    "RelationshipStore",
    "SQLiteRelationshipStore",
    # Detection
    "CandidateEdge",
    "detect_relationships",
    "jaccard",
    # Snapshots
    "GraphBuilder",
    "KnowledgeGraph",
    "Neighborhood",
    "GraphStatistics",
    # Branches
    "BranchRequest",
    "BranchResult",
    "BranchColumn",
    "BranchEdge",
    "BranchMeta",
    "BranchTraversal",
    # Service
    "GraphService",
    "PathResult",
]
