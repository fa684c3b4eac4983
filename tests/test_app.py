"""Tests for the exporter HTTP application."""

import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from helios_exporter import __version__
from helios_exporter.app import create_app
from helios_exporter.collector import ExporterCollector
from helios_exporter.config import ExporterConfig
from helios_exporter.metrics import ExporterMetrics
from helios_exporter.sources import NAMESPACE

from conftest import scrape_counts


@pytest.fixture
def config():
    return ExporterConfig(sources=["fast", "broken"])


@pytest.fixture
def client(registry, config):
    """Create test client for an exporter with a healthy and a failing source."""
    collector = ExporterCollector(registry.build(config.sources))
    return TestClient(create_app(ExporterMetrics(collector), config))


def parse(response):
    return list(text_string_to_metric_families(response.text))


class TestMetricsEndpoint:
    """Test the metrics endpoint."""

    def test_ok_with_failing_source(self, client):
        """A failing source never turns the scrape into an HTTP error."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")

        families = parse(response)
        assert scrape_counts(families) == {
            ("fast", "success"): 1.0,
            ("broken", "error"): 1.0,
        }

    def test_contains_source_samples(self, client):
        families = {f.name: f for f in parse(client.get("/metrics"))}

        assert len(families["helios_fake_value"].samples) == 3

    def test_exporter_self_metrics(self, client):
        client.get("/")
        families = {f.name: f for f in parse(client.get("/metrics"))}

        [build_info] = families["helios_exporter_build_info"].samples
        assert build_info.labels["version"] == __version__

        requests = families["helios_exporter_http_requests"].samples
        assert any(
            s.labels == {"handler": "/", "method": "GET", "code": "200"} and s.value == 1.0
            for s in requests
            if s.name.endswith("_total")
        )

    def test_custom_path(self, registry):
        config = ExporterConfig(metrics_path="/probe", sources=["fast"])
        collector = ExporterCollector(registry.build(config.sources))
        client = TestClient(create_app(ExporterMetrics(collector), config))

        assert client.get("/probe").status_code == 200
        assert client.get("/metrics").status_code == 404

    def test_default_namespace(self):
        metrics = ExporterMetrics(ExporterCollector({}))
        names = {f.name for f in text_string_to_metric_families(metrics.generate().decode())}

        assert f"{NAMESPACE}_exporter_build_info" in names

    def test_custom_namespace(self):
        metrics = ExporterMetrics(ExporterCollector({}, namespace="node"), namespace="node")
        names = {f.name for f in text_string_to_metric_families(metrics.generate().decode())}

        assert "node_exporter_build_info" in names
        assert "helios_exporter_build_info" not in names


class TestLandingPage:
    def test_links_to_metrics(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "Helios Exporter" in response.text
        assert 'href="/metrics"' in response.text


class TestHealthEndpoint:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == __version__
        assert data["sources"] == ["fast", "broken"]
