"""
Tests for the graph service.

Covers request token parsing, configured defaults, snapshot windows
and persisting auto-detected relationships.
"""

from datetime import datetime, timezone

import pytest

from atomic_graph.config import Settings
from atomic_graph.core.exceptions import InvalidParameterError, NotFoundError
from atomic_graph.graph_store import (
    BranchDirection,
    GraphService,
    RelationshipSource,
    RelationshipType,
    SQLiteRelationshipStore,
)
from atomic_graph.storage import Database, UnitFilter, UnitType

from tests.conftest import insert_raw_edge, make_edge, make_unit


class TestGetBranches:
    """Tests for GraphService.get_branches."""

    def test_string_tokens(self, branch_graph, service: GraphService):
        """Raw request tokens are parsed like query string values."""
        result = service.get_branches("R", depth="4", direction="both", limit_per_node="12")

        assert result.column_ids() == [["R"], ["A", "B", "In"], ["C"]]
        assert result.meta.filtered_back_edges == 1

    def test_defaults_from_settings(self, branch_graph, service: GraphService):
        result = service.get_branches("R")

        assert result.meta.depth == 2
        assert result.meta.direction is BranchDirection.OUT
        assert result.meta.limit_per_node == 12

    def test_configured_defaults(self, branch_graph, database: Database, test_settings: Settings):
        settings = test_settings.model_copy(
            update={
                "traversal": test_settings.traversal.model_copy(
                    update={"default_depth": 1, "default_direction": "in"}),
            }
        )
        service = GraphService(database, settings)

        result = service.get_branches("R")

        assert result.column_ids() == [["R"], ["In", "A"]]

    def test_comma_separated_types(self, branch_graph, service: GraphService):
        result = service.get_branches(
            "R", depth=4, direction="both", relationship_type="builds_on, references")

        assert result.column_ids() == [["R"], ["A", "B"]]
        assert result.meta.relationship_types == ["builds_on", "references"]

    def test_repeated_type_params(self, branch_graph, service: GraphService):
        result = service.get_branches(
            "R", depth=4, direction="both", relationship_type=["contradicts", "related"])

        assert result.column_ids() == [["R"], ["In", "A"], ["C"]]

    def test_blank_types_mean_no_filter(self, branch_graph, service: GraphService):
        result = service.get_branches("R", relationship_type=" , ")

        assert result.meta.relationship_types == []

    @pytest.mark.parametrize("depth", ["two", "2.5", True])
    def test_malformed_depth(self, branch_graph, service: GraphService, depth):
        with pytest.raises(InvalidParameterError) as exc_info:
            service.get_branches("R", depth=depth)

        assert exc_info.value.parameter == "depth"

    def test_malformed_limit(self, branch_graph, service: GraphService):
        with pytest.raises(InvalidParameterError):
            service.get_branches("R", limit_per_node="lots")

    def test_unknown_direction(self, branch_graph, service: GraphService):
        with pytest.raises(InvalidParameterError):
            service.get_branches("R", direction="up")

    def test_unknown_type(self, branch_graph, service: GraphService):
        with pytest.raises(InvalidParameterError):
            service.get_branches("R", relationship_type="builds_on,supersedes")

    def test_missing_root(self, service: GraphService):
        with pytest.raises(NotFoundError):
            service.get_branches("nope")

    def test_clamp_follows_settings(self, branch_graph, database: Database, test_settings: Settings):
        settings = test_settings.model_copy(
            update={
                "traversal": test_settings.traversal.model_copy(
                    update={"max_limit_per_node": 15}),
            }
        )
        service = GraphService(database, settings)

        result = service.get_branches("R", limit_per_node=40)

        assert result.meta.limit_per_node == 15


class TestSnapshotQueries:
    """Tests for snapshot backed queries."""

    def test_shortest_path_found(self, branch_graph, service: GraphService):
        result = service.get_shortest_path("B", "C")

        assert result.found is True
        assert result.path == ["B", "R", "A", "C"]
        assert result.hops == 3
        assert [n.id for n in result.nodes] == result.path
        assert result.path_description == "B -- R -- A -- C"

    def test_shortest_path_not_found(self, branch_graph, service: GraphService):
        result = service.get_shortest_path("R", "missing")

        assert result.found is False
        assert result.path == []
        assert result.hops == 0
        assert "No path found" in result.path_description

    def test_path_to_dict(self, branch_graph, service: GraphService):
        data = service.get_shortest_path("R", "C").to_dict()

        assert data["path"] == ["R", "A", "C"]
        assert data["hops"] == 2
        assert [n["id"] for n in data["nodes"]] == ["R", "A", "C"]

    def test_neighborhood(self, branch_graph, service: GraphService):
        result = service.get_neighborhood("C", max_hops="1")

        assert {n.id for n in result.nodes} == {"A", "C"}
        assert result.edge_count == 1

    def test_neighborhood_default_hops(self, branch_graph, service: GraphService):
        result = service.get_neighborhood("C")

        assert result.max_hops == 2
        assert {n.id for n in result.nodes} == {"A", "C", "R"}

    def test_neighborhood_bad_hops(self, branch_graph, service: GraphService):
        with pytest.raises(InvalidParameterError):
            service.get_neighborhood("C", max_hops="far")

    def test_statistics(self, branch_graph, service: GraphService):
        stats = service.get_statistics()

        assert stats.node_count == 5
        assert stats.edge_count == 5
        assert stats.components == 1
        assert stats.relationship_types["related"] == 2

    def test_statistics_with_foreign_rows(
        self, branch_graph, database: Database, service: GraphService
    ):
        insert_raw_edge(database, "R", "C", "cites:doi", 7.5)

        stats = service.get_statistics()

        assert stats.edge_count == 6
        assert stats.relationship_types["cites:doi"] == 1

    def test_statistics_filtered(self, branch_graph, service: GraphService):
        stats = service.get_statistics(UnitFilter(type=UnitType.CODE))

        assert stats.node_count == 1
        assert stats.edge_count == 0

    def test_snapshot_window(self, unit_repo, relationship_store, service: GraphService):
        """Only the newest units are loaded, with edges among them."""
        for day, unit_id in enumerate(["old", "mid", "new"], start=1):
            unit = make_unit(unit_id)
            unit.timestamp = datetime(2024, 1, day, tzinfo=timezone.utc)
            unit_repo.upsert(unit)
        relationship_store.upsert_batch([make_edge("new", "mid"), make_edge("mid", "old")])

        graph = service.build_snapshot(limit=2)

        assert sorted(graph.nodes) == ["mid", "new"]
        assert [e.key for e in graph.edges] == [("new", "mid", "related")]

    def test_snapshot_bad_limit(self, service: GraphService):
        with pytest.raises(InvalidParameterError):
            service.build_snapshot(limit=0)


class TestDetectRelationships:
    """Tests for GraphService.detect_relationships."""

    def test_uses_stored_units(self, unit_repo, service: GraphService):
        unit_repo.upsert_many([
            make_unit("a", ["sqlite", "wal"]),
            make_unit("b", ["sqlite", "wal"]),
            make_unit("c", ["http"]),
        ])

        candidates = service.detect_relationships()

        assert [(c.from_id, c.to_id) for c in candidates] == [("a", "b")]

    def test_does_not_save_by_default(self, unit_repo, relationship_store, service: GraphService):
        unit_repo.upsert_many([make_unit("a", ["x"]), make_unit("b", ["x"])])

        service.detect_relationships()

        assert relationship_store.count() == 0

    def test_save_persists_candidates(self, relationship_store, service: GraphService):
        units = [make_unit("a", ["x", "y"]), make_unit("b", ["x", "y"]), make_unit("c", ["x"])]

        candidates = service.detect_relationships(units, threshold=0.5, save=True)

        assert relationship_store.count() == len(candidates) == 3
        saved = relationship_store.get("a", "b", RelationshipType.RELATED)
        assert saved.source is RelationshipSource.AUTO_DETECTED
        assert saved.confidence == 1.0
        assert saved.explanation == "Shared keywords: x, y"

    def test_configured_threshold(self, service: GraphService):
        units = [make_unit("a", ["w", "x", "y", "z"]), make_unit("b", ["x"])]

        assert service.detect_relationships(units) == []
        assert len(service.detect_relationships(units, threshold=0.25)) == 1

    def test_too_many_units(self, database: Database, test_settings: Settings):
        settings = test_settings.model_copy(
            update={
                "detection": test_settings.detection.model_copy(update={"max_units": 2}),
            }
        )
        service = GraphService(database, settings)

        with pytest.raises(InvalidParameterError):
            service.detect_relationships([make_unit(uid) for uid in ("a", "b", "c")])


class TestConstruction:
    """Tests for building services and stores from settings."""

    def test_service_from_settings_uses_shared_database(self, test_settings: Settings):
        service = GraphService.from_settings(test_settings)

        assert service.db is Database.initialize(test_settings)
        assert service.traversal.max_limit_per_node == 25

    def test_store_from_settings_shares_database(self, test_settings: Settings):
        service = GraphService.from_settings(test_settings)
        store = SQLiteRelationshipStore.from_settings(test_settings)

        store.upsert(make_edge("a", "b"))

        assert service.relationships.count() == 1
