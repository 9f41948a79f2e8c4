"""
Tests for keyword-similarity relationship detection.
"""

import pytest

from atomic_graph.core.exceptions import InvalidParameterError
from atomic_graph.graph_store import (
    GraphBuilder,
    RelationshipSource,
    RelationshipType,
    detect_relationships,
    jaccard,
)
from atomic_graph.graph_store.detection import keyword_set
from atomic_graph.storage import KnowledgeUnit
from atomic_graph.utils.metrics import Metrics, RELATIONSHIPS_DETECTED

from tests.conftest import make_unit


class TestJaccard:
    """Tests for the similarity score."""

    def test_identical_sets(self):
        assert jaccard(frozenset({"a", "b"}), frozenset({"a", "b"})) == 1.0

    def test_disjoint_sets(self):
        assert jaccard(frozenset({"a"}), frozenset({"b"})) == 0.0

    def test_partial_overlap(self):
        assert jaccard(frozenset({"a", "b", "c"}), frozenset({"b", "c", "d"})) == 0.5

    def test_both_empty(self):
        assert jaccard(frozenset(), frozenset()) == 0.0

    def test_keyword_normalization(self):
        """Keywords are lowercased and stripped; blanks dropped."""
        assert keyword_set([" SQLite", "sqlite ", "", "  ", "WAL"]) == frozenset({"sqlite", "wal"})
        assert keyword_set(None) == frozenset()

    def test_bare_string_is_one_keyword(self):
        assert keyword_set("SQLite") == frozenset({"sqlite"})


class TestDetectRelationships:
    """Tests for detect_relationships."""

    def test_identical_keywords_always_emitted(self):
        """A perfect match passes every threshold up to 1."""
        units = [make_unit("a", ["x", "y"]), make_unit("b", ["y", "x"])]

        for threshold in (0.0, 0.3, 0.99, 1.0):
            candidates = detect_relationships(units, threshold=threshold)
            assert len(candidates) == 1
            assert candidates[0].score == 1.0

    def test_disjoint_keywords_never_emitted(self):
        units = [make_unit("a", ["x"]), make_unit("b", ["y"])]

        assert detect_relationships(units, threshold=0.01) == []

    def test_case_insensitive(self):
        units = [make_unit("a", ["Graph"]), make_unit("b", ["graph"])]

        assert detect_relationships(units, threshold=1.0)[0].score == 1.0

    def test_string_keywords_not_split_into_characters(self):
        """A unit whose keywords field holds one string scores it as one keyword."""
        single = make_unit("a")
        single.keywords = "graph"
        units = [single, make_unit("b", ["graph", "path"])]

        candidates = detect_relationships(units, threshold=0.5)

        assert [c.score for c in candidates] == [0.5]

    def test_directed_from_smaller_id(self):
        """One candidate per pair, from the lexicographically smaller id."""
        units = [make_unit("zeta", ["k"]), make_unit("alpha", ["k"])]

        candidates = detect_relationships(units)

        assert [(c.from_id, c.to_id) for c in candidates] == [("alpha", "zeta")]

    def test_ordered_by_pair(self):
        units = [make_unit(uid, ["shared"]) for uid in ("c", "a", "b")]

        candidates = detect_relationships(units)

        assert [(c.from_id, c.to_id) for c in candidates] == [
            ("a", "b"), ("a", "c"), ("b", "c")]

    def test_threshold_boundary_inclusive(self):
        units = [make_unit("a", ["x", "y", "z"]), make_unit("b", ["y", "z", "w"])]

        assert len(detect_relationships(units, threshold=0.5)) == 1
        assert detect_relationships(units, threshold=0.51) == []

    def test_missing_keywords_treated_as_empty(self):
        """Units without keywords score 0 and never raise."""
        units = [
            KnowledgeUnit(id="a", title="A", keywords=None),
            make_unit("b", []),
            make_unit("c", ["x"]),
        ]

        assert detect_relationships(units, threshold=0.1) == []

    def test_zero_threshold_emits_every_pair(self):
        units = [make_unit("a"), make_unit("b"), make_unit("c", ["x"])]

        assert len(detect_relationships(units, threshold=0.0)) == 3

    def test_duplicate_ids_collapsed(self):
        units = [make_unit("a", ["x"]), make_unit("a", ["y"]), make_unit("b", ["y"])]

        candidates = detect_relationships(units)

        assert len(candidates) == 1
        assert candidates[0].score == 1.0

    @pytest.mark.parametrize("threshold", [-0.1, 1.1])
    def test_invalid_threshold(self, threshold: float):
        with pytest.raises(InvalidParameterError):
            detect_relationships([make_unit("a")], threshold=threshold)

    def test_candidate_to_edge(self):
        units = [make_unit("a", ["wal", "sqlite", "x"]), make_unit("b", ["sqlite", "wal"])]

        edge = detect_relationships(units)[0].to_edge()

        assert edge.relationship_type is RelationshipType.RELATED
        assert edge.source is RelationshipSource.AUTO_DETECTED
        assert edge.confidence == pytest.approx(2 / 3)
        assert edge.explanation == "Shared keywords: sqlite, wal"

    def test_counts_metric(self):
        units = [make_unit(uid, ["k"]) for uid in ("a", "b", "c")]

        detect_relationships(units)

        assert Metrics.get().get_counter(RELATIONSHIPS_DETECTED) == 3

    def test_builder_delegates(self):
        units = [make_unit("a", ["x"]), make_unit("b", ["x"])]

        assert GraphBuilder.auto_detect_relationships(units) == detect_relationships(units)
