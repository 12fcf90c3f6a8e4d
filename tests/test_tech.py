"""Tests for technology detection."""

from pathlib import Path

from goscope.tech import (
    parse_compose,
    scan_compose_tree,
    scan_go_mod,
    scan_makefile,
    tech_from_image,
    tech_from_import,
    techs_from_imports,
)


def test_tech_from_import_longest_prefix():
    assert tech_from_import("google.golang.org/grpc/credentials") == "gRPC"
    assert tech_from_import("github.com/grpc-ecosystem/grpc-gateway/v2/runtime") == "gRPC Gateway"
    assert tech_from_import("fmt") == ""


def test_tech_from_image():
    assert tech_from_image("postgres:15") == "PostgreSQL"
    assert tech_from_image("bitnami/redis:7") == "Redis"
    assert tech_from_image("alpine:3") == ""


def test_techs_from_imports():
    found = techs_from_imports(["github.com/gin-gonic/gin", "go.uber.org/zap", "strings"])
    assert found == {"Gin", "Zap Logger"}


def test_scan_go_mod(temp_dir: Path):
    path = temp_dir / "go.mod"
    path.write_text(
        "module x\n\nrequire (\n\tgithub.com/jackc/pgx/v5 v5.5.0\n\tgoogle.golang.org/grpc v1.60.0\n)\n",
        encoding="utf-8",
    )
    assert scan_go_mod(path) == ["PostgreSQL", "gRPC"]
    assert scan_go_mod(temp_dir / "missing.mod") == []


def test_scan_makefile(temp_dir: Path):
    path = temp_dir / "Makefile"
    path.write_text("proto:\n\tprotoc --go_out=. api.proto\nup:\n\tdocker compose up\n", encoding="utf-8")
    assert set(scan_makefile(path)) == {"Protocol Buffers", "Docker"}


def test_parse_compose(sample_services_path: Path):
    services, techs = parse_compose(sample_services_path / "docker-compose.yml")
    assert services == ["gateway", "orders", "postgres", "redis"]
    assert techs == ["PostgreSQL", "Redis"]


def test_parse_compose_malformed(temp_dir: Path):
    path = temp_dir / "docker-compose.yml"
    path.write_text("services: [unclosed\n", encoding="utf-8")
    assert parse_compose(path) == ([], [])


def test_parse_compose_without_services(temp_dir: Path):
    path = temp_dir / "docker-compose.yml"
    path.write_text("version: '3'\n", encoding="utf-8")
    assert parse_compose(path) == ([], [])


def test_scan_compose_tree(sample_services_path: Path):
    services, techs = scan_compose_tree(sample_services_path)
    assert "orders" in services
    assert "PostgreSQL" in techs


def test_parse_compose_non_utf8(temp_dir: Path):
    """A Latin-1 byte in a comment must not abort the scan."""
    path = temp_dir / "docker-compose.yml"
    path.write_bytes(b"# caf\xe9 settings\nservices:\n  db:\n    image: postgres:16\n")
    assert parse_compose(path) == (["db"], ["PostgreSQL"])
    services, techs = scan_compose_tree(temp_dir)
    assert services == ["db"]
    assert "PostgreSQL" in techs
