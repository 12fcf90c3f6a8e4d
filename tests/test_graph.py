"""Tests for the file dependency graph and PageRank scoring."""

import pytest

from goscope.graph import DependencyGraph
from goscope.models import DeclKind


def _graph(vertices, edges=()):
    graph = DependencyGraph()
    for v in vertices:
        graph.add_vertex(v)
    for src, dst in edges:
        graph.add_edge(src, dst)
    return graph


class TestEdgeRegistration:
    """Tests for vertex and edge bookkeeping."""

    def test_self_edge_rejected(self):
        """An edge from a vertex to itself never enters the edge list."""
        graph = _graph(["a"], [("a", "a")])
        assert graph.edges == []

    def test_add_edge_idempotent(self):
        """Adding the same pair twice keeps exactly one edge."""
        graph = _graph(["a", "b"], [("a", "b"), ("a", "b")])
        assert graph.edges == [("a", "b")]
        assert graph.out_degree("a") == 1
        assert graph.in_degree("b") == 1

    def test_unregistered_vertex_rejected(self):
        """Edges naming an unknown vertex are dropped silently."""
        graph = _graph(["a"], [("a", "ghost"), ("ghost", "a")])
        assert graph.edges == []
        assert "ghost" not in graph.vertices

    def test_degrees_of_unknown_vertex(self):
        graph = _graph(["a"])
        assert graph.out_degree("nope") == 0
        assert graph.in_degree("nope") == 0

    def test_successors_and_predecessors(self):
        graph = _graph(["a", "b", "c"], [("a", "b"), ("c", "b")])
        assert graph.successors("a") == {"b"}
        assert graph.predecessors("b") == {"a", "c"}


class TestPageRank:
    """Tests for the power-iteration scorer."""

    def test_empty_graph(self):
        assert DependencyGraph().compute_pagerank() == {}

    def test_scores_non_negative(self):
        """Every score is >= 0, including sinks and isolated vertices."""
        graph = _graph(["a", "b", "c", "d"], [("a", "b"), ("b", "c"), ("d", "c")])
        scores = graph.compute_pagerank()
        assert all(score >= 0 for score in scores.values())

    def test_three_cycle_is_symmetric(self):
        """A uniform 3-cycle gives every vertex the same score."""
        graph = _graph(["A", "B", "C"], [("A", "B"), ("B", "C"), ("C", "A")])
        scores = graph.compute_pagerank(0.85, 100)
        assert scores["A"] == pytest.approx(scores["B"])
        assert scores["B"] == pytest.approx(scores["C"])

    @pytest.mark.parametrize("iterations", [1, 5, 100])
    def test_isolated_vertex_score(self, iterations):
        """An isolated vertex among four keeps only the teleport share."""
        graph = _graph(["a", "b", "c", "lonely"], [("a", "b"), ("b", "c"), ("c", "a")])
        scores = graph.compute_pagerank(0.85, iterations)
        assert scores["lonely"] == pytest.approx((1 - 0.85) / 4)

    def test_dangling_mass_is_lost_by_default(self):
        """Sinks do not pass their mass on, so the total drops below one."""
        graph = _graph(["a", "b"], [("a", "b")])
        scores = graph.compute_pagerank()
        assert sum(scores.values()) < 1.0

    def test_redistribute_dangling_conserves_mass(self):
        graph = _graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
        scores = graph.compute_pagerank(redistribute_dangling=True)
        assert sum(scores.values()) == pytest.approx(1.0)

    def test_analyze_stores_scores(self):
        graph = _graph(["a", "b"], [("a", "b")])
        scores = graph.analyze()
        assert graph.pagerank_scores == scores
        assert scores["b"] > scores["a"]


class TestTopHotspots:
    """Tests for hotspot extraction."""

    def test_zero_limit(self):
        graph = _graph(["a", "b"], [("a", "b")])
        graph.analyze()
        assert graph.top_hotspots(0) == []
        assert graph.top_hotspots(-3) == []

    @pytest.mark.parametrize("limit", [1, 2, 3, 10])
    def test_bounded_and_sorted(self, limit):
        """At most *limit* entries, scores never increasing."""
        graph = _graph(["a", "b", "c"], [("a", "b"), ("c", "b"), ("b", "a")])
        graph.analyze()
        hotspots = graph.top_hotspots(limit)
        assert len(hotspots) <= limit
        scores = [h.score for h in hotspots]
        assert scores == sorted(scores, reverse=True)

    def test_ties_broken_by_path(self):
        graph = _graph(["z", "m", "a"])
        graph.analyze()
        assert [h.path for h in graph.top_hotspots(3)] == ["a", "m", "z"]


class TestBuild:
    """Tests for edge inference from parsed files."""

    def test_import_edges(self, make_file):
        """An import whose last segment names a file or package links to it."""
        user = make_file("user.go", "package api\n", component="api",
                         imports=["example.com/shop/orders"], module="api")
        orders = make_file("orders.go", "package orders\n", component="orders", module="orders")
        graph = DependencyGraph()
        graph.build([user, orders])
        assert (user.file_path, orders.file_path) in graph.edges

    def test_import_ambiguity_first_path_wins(self, make_file):
        """When two files share a bare name the first in path order is the target."""
        a = make_file("util.go", "package a\n", component="a")
        b = make_file("util.go", "package b\n", component="b")
        caller = make_file("main.go", "package main\n", component="c", imports=["x/util"])
        graph = DependencyGraph()
        graph.build([caller, b, a])
        assert graph.successors(caller.file_path) == {a.file_path}

    def test_type_reference_edges_within_component(self, make_file):
        order = make_file("order.go", "type Order struct{}\n", decls=[("Order", DeclKind.STRUCT)])
        repo = make_file("repo.go", "func Find() *Order { return nil }\n")
        graph = DependencyGraph()
        graph.build([order, repo])
        assert graph.edges == [(repo.file_path, order.file_path)]

    def test_type_reference_requires_word_boundary(self, make_file):
        order = make_file("order.go", "type Order struct{}\n", decls=[("Order", DeclKind.STRUCT)])
        other = make_file("other.go", "var OrderID = 1\nvar myOrder = 2\n")
        graph = DependencyGraph()
        graph.build([order, other])
        assert graph.edges == []

    def test_type_references_do_not_cross_components(self, make_file):
        order = make_file("order.go", "type Order struct{}\n", component="a",
                          decls=[("Order", DeclKind.STRUCT)])
        elsewhere = make_file("use.go", "var o Order\n", component="b")
        graph = DependencyGraph()
        graph.build([order, elsewhere])
        assert graph.edges == []

    def test_short_and_function_names_ignored(self, make_file):
        decl = make_file("a.go", "", decls=[("Id", DeclKind.STRUCT), ("Process", DeclKind.FUNC)])
        user = make_file("b.go", "Id Process\n")
        graph = DependencyGraph()
        graph.build([decl, user])
        assert graph.edges == []

    def test_unreadable_file_contributes_nothing(self, make_file):
        order = make_file("order.go", "", decls=[("Order", DeclKind.STRUCT)])
        ghost = make_file("ghost.go", "var o Order\n")
        ghost.file_path = ghost.file_path + ".missing"
        graph = DependencyGraph()
        graph.build([order, ghost])
        assert graph.edges == []
        assert ghost.file_path in graph.vertices

    def test_build_is_deterministic(self, make_file):
        files = [
            make_file("order.go", "type Order struct{}\n", decls=[("Order", DeclKind.STRUCT)]),
            make_file("repo.go", "type Repository interface{ Find() *Order }\n",
                      decls=[("Repository", DeclKind.INTERFACE)]),
            make_file("svc.go", "var r Repository\nvar o Order\n"),
        ]
        first, second = DependencyGraph(), DependencyGraph()
        first.build(files)
        second.build(list(reversed(files)))
        assert first.edges == second.edges
        assert first.analyze() == second.analyze()
