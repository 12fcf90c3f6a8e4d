"""Technology detection from imports, go.mod, Makefiles and compose files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Set, Tuple

import yaml

logger = logging.getLogger(__name__)

# Go import path prefix -> technology. Used for both imports and go.mod lines.
GO_MODULE_TECH = {
    "google.golang.org/grpc": "gRPC",
    "google.golang.org/protobuf": "Protocol Buffers",
    "github.com/grpc-ecosystem/grpc-gateway": "gRPC Gateway",
    "github.com/gin-gonic/gin": "Gin",
    "github.com/labstack/echo": "Echo",
    "github.com/gofiber/fiber": "Fiber",
    "github.com/gorilla/mux": "Gorilla Mux",
    "github.com/go-chi/chi": "Chi",
    "gorm.io/gorm": "GORM",
    "gorm.io/driver/postgres": "PostgreSQL",
    "github.com/jmoiron/sqlx": "sqlx",
    "github.com/jackc/pgx": "PostgreSQL",
    "github.com/lib/pq": "PostgreSQL",
    "github.com/go-redis/redis": "Redis",
    "github.com/redis/go-redis": "Redis",
    "go.mongodb.org/mongo-driver": "MongoDB",
    "github.com/segmentio/kafka-go": "Kafka",
    "github.com/IBM/sarama": "Kafka",
    "github.com/Shopify/sarama": "Kafka",
    "github.com/nats-io/nats.go": "NATS",
    "github.com/streadway/amqp": "RabbitMQ",
    "github.com/rabbitmq/amqp091-go": "RabbitMQ",
    "go.uber.org/zap": "Zap Logger",
    "github.com/sirupsen/logrus": "Logrus",
    "log/slog": "slog",
    "go.opentelemetry.io/otel": "OpenTelemetry",
    "github.com/prometheus/client_golang": "Prometheus",
    "github.com/elastic/go-elasticsearch": "Elasticsearch",
    "github.com/ClickHouse/clickhouse-go": "ClickHouse",
    "github.com/minio/minio-go": "MinIO",
    "github.com/aws/aws-sdk-go": "AWS SDK",
    "cloud.google.com/go": "Google Cloud",
    "k8s.io/client-go": "Kubernetes Client",
    "github.com/hashicorp/consul": "Consul",
    "github.com/hashicorp/vault": "HashiCorp Vault",
    "go.etcd.io/etcd": "etcd",
    "github.com/golang-jwt/jwt": "JWT",
    "github.com/spf13/cobra": "Cobra CLI",
    "github.com/spf13/viper": "Viper Config",
    "github.com/99designs/gqlgen": "gqlgen (GraphQL)",
    "github.com/golang-migrate/migrate": "DB Migrations",
    "github.com/pressly/goose": "Goose Migrations",
    "github.com/swaggo/swag": "Swagger",
    "github.com/stretchr/testify": "Testify",
    "github.com/docker/docker": "Docker SDK",
}

MAKEFILE_HINTS = {
    "protoc": "Protocol Buffers", "grpc": "gRPC", "postgres": "PostgreSQL",
    "psql": "PostgreSQL", "redis-cli": "Redis", "mongo": "MongoDB",
    "kafka": "Kafka", "rabbitmq": "RabbitMQ", "nats": "NATS",
    "docker": "Docker", "kubectl": "Kubernetes", "helm": "Helm",
    "swagger": "Swagger", "migrate": "DB Migrations",
}

IMAGE_TECH = {
    "postgres": "PostgreSQL", "mysql": "MySQL", "mariadb": "MariaDB",
    "mongo": "MongoDB", "redis": "Redis", "memcached": "Memcached",
    "rabbitmq": "RabbitMQ", "kafka": "Kafka", "zookeeper": "Zookeeper",
    "elasticsearch": "Elasticsearch", "opensearch": "OpenSearch",
    "kibana": "Kibana", "grafana": "Grafana", "prometheus": "Prometheus",
    "jaeger": "Jaeger", "nginx": "NGINX", "envoy": "Envoy",
    "consul": "Consul", "vault": "HashiCorp Vault", "nats": "NATS",
    "etcd": "etcd", "minio": "MinIO", "clickhouse": "ClickHouse",
    "influxdb": "InfluxDB", "temporal": "Temporal", "keycloak": "Keycloak",
    "traefik": "Traefik", "caddy": "Caddy", "localstack": "LocalStack",
    "cassandra": "Cassandra",
}

# Environment/port hints inside a compose service definition.
COMPOSE_HINTS = (
    (("POSTGRES", "PGHOST"), "5432", "PostgreSQL"),
    (("REDIS",), "6379", "Redis"),
    (("MONGO",), "27017", "MongoDB"),
    (("KAFKA",), "9092", "Kafka"),
    (("RABBIT",), "5672", "RabbitMQ"),
)

COMPOSE_FILE_NAMES = ("docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml")


def tech_from_import(import_path: str) -> str:
    """Return the technology for a Go import path, or ``""``."""
    for prefix in sorted(GO_MODULE_TECH, key=len, reverse=True):
        if import_path.startswith(prefix):
            return GO_MODULE_TECH[prefix]
    return ""


def tech_from_image(image: str) -> str:
    lowered = image.lower()
    for key in sorted(IMAGE_TECH):
        if key in lowered:
            return IMAGE_TECH[key]
    return ""


def scan_go_mod(path: Path) -> List[str]:
    try:
        lines = path.read_text(encoding="utf-8", errors="ignore").splitlines()
    except OSError:
        return []
    found: List[str] = []
    for line in lines:
        line = line.strip()
        if line.startswith("require "):
            line = line[len("require "):].strip()
        tech = tech_from_import(line)
        if tech and tech not in found:
            found.append(tech)
    return found


def scan_makefile(path: Path) -> List[str]:
    try:
        content = path.read_text(encoding="utf-8", errors="ignore").lower()
    except OSError:
        return []
    found: List[str] = []
    for keyword in sorted(MAKEFILE_HINTS):
        tech = MAKEFILE_HINTS[keyword]
        if keyword in content and tech not in found:
            found.append(tech)
    return found


def parse_compose(path: Path) -> Tuple[List[str], List[str]]:
    """Return ``(service names, technologies)`` declared in a compose file."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            data = yaml.safe_load(f)
    except OSError:
        return [], []
    except yaml.YAMLError as exc:
        logger.warning("Could not parse %s: %s", path, exc)
        return [], []

    services = data.get("services") if isinstance(data, dict) else None
    if not isinstance(services, dict):
        return [], []

    techs: Set[str] = set()
    for definition in services.values():
        if not isinstance(definition, dict):
            continue
        image = definition.get("image")
        if isinstance(image, str):
            tech = tech_from_image(image)
            if tech:
                techs.add(tech)
        blob = yaml.safe_dump(definition)
        upper = blob.upper()
        for keys, port, tech in COMPOSE_HINTS:
            if port in blob or any(k in upper for k in keys):
                techs.add(tech)
    return sorted(str(name) for name in services), sorted(techs)


def scan_compose_tree(root: Path) -> Tuple[List[str], List[str]]:
    """Scan *root* and its direct children for compose files, go.mod and Makefiles."""
    root = Path(root)
    search_dirs = [root]
    try:
        search_dirs.extend(sorted(p for p in root.iterdir() if p.is_dir() and not p.name.startswith(".")))
    except OSError:
        pass

    services: Set[str] = set()
    techs: Set[str] = set()
    for directory in search_dirs:
        for name in COMPOSE_FILE_NAMES:
            candidate = directory / name
            if candidate.exists():
                svc, tech = parse_compose(candidate)
                services.update(svc)
                techs.update(tech)
        techs.update(scan_go_mod(directory / "go.mod"))
        techs.update(scan_makefile(directory / "Makefile"))
    return sorted(services), sorted(techs)


def techs_from_imports(imports: Iterable[str]) -> Set[str]:
    found = set()
    for imp in imports:
        tech = tech_from_import(imp)
        if tech:
            found.add(tech)
    return found
