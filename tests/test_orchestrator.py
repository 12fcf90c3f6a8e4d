"""End-to-end tests for the analysis pipeline."""

from pathlib import Path

import pytest

from goscope.config_manager import ScanConfig
from goscope.orchestrator import (
    AnalysisError,
    GoscopeOrchestrator,
    is_api_gateway,
    is_proto_component,
    summarize_components,
)
from goscope.models import ParsedFile


@pytest.fixture
def analysis(sample_services_copy: Path):
    messages = []
    result = GoscopeOrchestrator(ScanConfig(), progress=messages.append).run(sample_services_copy)
    return result, messages


def _rel(result, path):
    return str(Path(path).relative_to(result.root))


class TestRun:
    """Tests for GoscopeOrchestrator.run on the sample tree."""

    def test_files_and_components(self, analysis):
        result, _ = analysis
        assert len(result.files) == 6
        assert [c.name for c in result.components] == ["gateway", "proto", "orders"]

    def test_graph_edges(self, analysis):
        result, _ = analysis
        edges = {(_rel(result, s), _rel(result, t)) for s, t in result.graph.edges}
        assert edges == {
            ("services/gateway/handler.go", "services/orders/order.go"),
            ("services/gateway/main.go", "services/orders/order.go"),
            ("services/orders/repository.go", "services/orders/order.go"),
            ("services/orders/service.go", "services/orders/order.go"),
            ("services/orders/service.go", "services/orders/repository.go"),
        }

    def test_top_hotspot(self, analysis):
        result, _ = analysis
        top = result.graph.top_hotspots(1)
        assert _rel(result, top[0].path) == "services/orders/order.go"

    def test_compose_and_technologies(self, analysis):
        result, _ = analysis
        assert result.compose_services == ["gateway", "orders", "postgres", "redis"]
        assert result.technologies == ["PostgreSQL", "Redis"]

    def test_no_git_history(self, analysis):
        result, messages = analysis
        assert result.branch == ""
        assert result.author_stats == {}
        assert any("No .git directories" in m for m in messages)

    def test_proto_decl_graph(self, analysis):
        result, _ = analysis
        proto = next(c for c in result.components if c.name == "proto")
        data = result.decl_graph(proto)
        assert sorted(n.label for n in data.nodes) == [
            "GetOrderRequest", "OrderReply", "OrderService", "OrderStatus",
        ]
        assert len(data.links) == 12

    def test_progress_reported(self, analysis):
        _, messages = analysis
        assert any("Found 6 files" in m for m in messages)


class TestErrors:
    """Tests for analysis failures."""

    def test_empty_tree(self, temp_dir: Path):
        with pytest.raises(AnalysisError, match="No source files"):
            GoscopeOrchestrator(progress=lambda m: None).run(temp_dir)

    def test_too_many_files(self, sample_services_copy: Path):
        cfg = ScanConfig(max_files_analyze=2)
        with pytest.raises(AnalysisError, match="Too many files"):
            GoscopeOrchestrator(cfg, progress=lambda m: None).run(sample_services_copy)


def test_component_helpers():
    assert is_api_gateway("api-gateway")
    assert is_api_gateway("api")
    assert not is_api_gateway("orders")
    assert is_proto_component("proto")
    assert is_proto_component("orders-proto")
    assert not is_proto_component("prototype")


def test_summarize_components_order():
    files = [
        ParsedFile(file_path="/a/small.go", microservice_name="small", line_count=5),
        ParsedFile(file_path="/a/big.go", microservice_name="big", line_count=500),
        ParsedFile(file_path="/a/p.proto", microservice_name="protos", line_count=1),
        ParsedFile(file_path="/a/gw.go", microservice_name="edge-gateway", line_count=1),
        ParsedFile(file_path="/a/x.go", microservice_name="", line_count=1),
    ]
    names = [c.name for c in summarize_components(files)]
    assert names == ["edge-gateway", "protos", "big", "small", "root"]
