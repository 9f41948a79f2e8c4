"""
Keyword-similarity relationship detection.

Scores every pair of units by the Jaccard similarity of their keyword
sets and proposes a "related" edge for each pair at or above a
threshold. Detection is pure; persisting candidates is up to the
caller.
"""

from dataclasses import dataclass, field
from typing import Iterable

from atomic_graph.core.exceptions import InvalidParameterError
from atomic_graph.storage.models import KnowledgeUnit
from atomic_graph.graph_store.models import (
    RelationshipEdge,
    RelationshipSource,
    RelationshipType,
)
from atomic_graph.utils.logging import get_logger
from atomic_graph.utils.metrics import increment_relationships_detected

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 0.3


@dataclass(frozen=True)
class CandidateEdge:
    """A proposed related edge between two units with overlapping keywords."""

    from_id: str
    to_id: str
    score: float
    shared_keywords: tuple[str, ...] = field(default_factory=tuple)

    def to_edge(self) -> RelationshipEdge:
        """Convert to an auto-detected relationship ready for storage."""
        shared = ", ".join(self.shared_keywords)
        return RelationshipEdge(
            from_id=self.from_id,
            to_id=self.to_id,
            relationship_type=RelationshipType.RELATED,
            source=RelationshipSource.AUTO_DETECTED,
            confidence=self.score,
            explanation=f"Shared keywords: {shared}" if shared else None,
        )

    def to_dict(self) -> dict:
        return {
            "fromUnitId": self.from_id,
            "toUnitId": self.to_id,
            "score": self.score,
            "sharedKeywords": list(self.shared_keywords),
        }


def keyword_set(keywords: Iterable[str] | None) -> frozenset[str]:
    """
    Normalize keywords: lowercase, stripped, empties and non-strings dropped.

    A bare string counts as a single keyword.
    """
    if not keywords:
        return frozenset()
    if isinstance(keywords, str):
        keywords = [keywords]
    return frozenset(
        k.strip().lower()
        for k in keywords
        if isinstance(k, str) and k.strip()
    )


def jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    """|a ∩ b| / |a ∪ b|, or 0.0 when both sets are empty."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def detect_relationships(
    units: Iterable[KnowledgeUnit],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[CandidateEdge]:
    """
    Propose related edges between units with similar keywords.

    Units are deduplicated by id (last wins) and paired in id order;
    each unordered pair yields at most one candidate, directed from
    the smaller id to the larger.

    Args:
        units: Units to compare
        threshold: Minimum Jaccard score, within [0, 1]

    Returns:
        Candidates ordered by (from_id, to_id)

    Raises:
        InvalidParameterError: If threshold is outside [0, 1]
    """
    if not 0.0 <= threshold <= 1.0:
        raise InvalidParameterError(
            f"Similarity threshold must be within [0, 1], got {threshold}",
            parameter="threshold",
            value=threshold,
        )

    by_id: dict[str, KnowledgeUnit] = {}
    for unit in units:
        by_id[unit.id] = unit

    ordered = sorted(by_id.values(), key=lambda u: u.id)
    keyword_sets = [keyword_set(u.keywords) for u in ordered]

    candidates: list[CandidateEdge] = []
    for i, a in enumerate(ordered):
        for j in range(i + 1, len(ordered)):
            score = jaccard(keyword_sets[i], keyword_sets[j])
            if score >= threshold:
                candidates.append(
                    CandidateEdge(
                        from_id=a.id,
                        to_id=ordered[j].id,
                        score=score,
                        shared_keywords=tuple(
                            sorted(keyword_sets[i] & keyword_sets[j])),
                    )
                )

    increment_relationships_detected(len(candidates))
    logger.debug(
        f"Compared {len(ordered)} units, found {len(candidates)} candidates "
        f"at threshold {threshold}"
    )
    return candidates
