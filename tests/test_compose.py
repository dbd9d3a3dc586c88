"""
Tests for the compose manifest generator.

Pure unit tests: config in → docker-compose.yml text, parsed back with PyYAML.
"""

import yaml

from cicdgen.core.models.config import ExternalService
from cicdgen.core.services.generators.compose import (
    COMPOSE_VERSION,
    compose_document,
    generate_compose,
    infrastructure_service,
)


def _compose(config) -> dict:
    return yaml.safe_load(generate_compose(config))


class TestAppService:
    def test_build_ports_and_name(self, make_config):
        compose = _compose(make_config(port=8080))
        app = compose["services"]["app"]
        assert compose["version"] == COMPOSE_VERSION
        assert app["build"] == {"context": ".", "dockerfile": "Dockerfile"}
        assert app["container_name"] == "my-app"
        assert app["ports"] == ["8080:8080"]

    def test_healthcheck(self, make_config):
        app = _compose(make_config(port=8080, health_check_path="/ready"))["services"]["app"]
        assert app["healthcheck"]["test"] == [
            "CMD-SHELL", "curl -f http://localhost:8080/ready || exit 1",
        ]
        assert app["healthcheck"]["interval"] == "30s"
        assert app["healthcheck"]["retries"] == 3

    def test_env_file_only_when_required(self, make_config):
        without = _compose(make_config())["services"]["app"]
        with_env = _compose(make_config(project={"requires_env_file": True}))["services"]["app"]
        assert "env_file" not in without
        assert with_env["env_file"] == [".env"]

    def test_depends_on_infrastructure_services(self, make_config):
        app = _compose(make_config())["services"]["app"]
        assert app["depends_on"] == ["main-db", "session-cache"]

    def test_no_depends_on_without_services(self, make_config):
        compose = _compose(make_config(services=[]))
        assert list(compose["services"]) == ["app"]
        assert "depends_on" not in compose["services"]["app"]


class TestInfrastructureServices:
    def test_known_product(self):
        svc = ExternalService(type="database", name="Main DB", service="postgresql",
                              requires_infrastructure=True)
        definition = infrastructure_service(svc)
        assert definition["image"] == "postgres:latest"
        assert definition["ports"] == ["5432:5432"]
        assert definition["container_name"] == "main-db"

    def test_product_lookup_is_case_insensitive(self):
        svc = ExternalService(type="cache", name="cache", service="Redis")
        assert infrastructure_service(svc)["image"] == "redis:latest"

    def test_unknown_product_falls_back_to_alpine(self):
        svc = ExternalService(type="custom", name="Search Engine", service="elasticsearch",
                              requires_infrastructure=True)
        definition = infrastructure_service(svc)
        assert definition["image"] == "alpine:latest"
        assert definition["command"] == "sleep infinity"

    def test_table_not_mutated(self):
        a = ExternalService(type="database", name="one", service="postgresql")
        b = ExternalService(type="database", name="two", service="postgresql")
        assert infrastructure_service(a)["container_name"] == "one"
        assert infrastructure_service(b)["container_name"] == "two"
        assert infrastructure_service(a)["container_name"] == "one"

    def test_services_without_infrastructure_skipped(self, make_config):
        services = [
            {"type": "email", "name": "Mailer", "service": "sendgrid"},
            {"type": "database", "name": "DB", "service": "mysql", "requires_infrastructure": True},
        ]
        compose = _compose(make_config(services=services))
        assert set(compose["services"]) == {"app", "db"}
        assert compose["services"]["db"]["environment"]["MYSQL_DATABASE"] == "app"

    def test_duplicate_names_keep_first(self, make_config):
        services = [
            {"type": "database", "name": "Store", "service": "postgresql", "requires_infrastructure": True},
            {"type": "database", "name": "store", "service": "mongodb", "requires_infrastructure": True},
        ]
        doc = compose_document(make_config(services=services))
        assert doc["services"]["store"]["image"] == "postgres:latest"
        assert doc["services"]["app"]["depends_on"] == ["store"]


class TestSerialisation:
    def test_header_and_quoting(self, make_config):
        text = generate_compose(make_config())
        assert text.startswith("# Generated by cicdgen\n")
        assert 'version: "3.8"' in text
        assert '      - "3000:3000"' in text

    def test_deterministic(self, make_config):
        config = make_config()
        assert generate_compose(config) == generate_compose(config)

    def test_awkward_service_names_survive_parsing(self, make_config):
        services = [
            {"type": "cache", "name": "#1 Cache", "service": "redis", "requires_infrastructure": True},
            {"type": "database", "name": "on", "service": "postgresql", "requires_infrastructure": True},
        ]
        compose = _compose(make_config(services=services))
        assert list(compose["services"]) == ["app", "#1-cache", "on"]
        assert compose["services"]["#1-cache"]["image"] == "redis:latest"
        assert compose["services"]["on"]["image"] == "postgres:latest"
        app = compose["services"]["app"]
        assert app["container_name"] == "my-app"
        assert "image" not in app
        assert app["depends_on"] == ["#1-cache", "on"]
