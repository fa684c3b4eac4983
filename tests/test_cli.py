"""Tests for the helios-exporter command line."""

from types import SimpleNamespace

import pytest
from click.testing import CliRunner

from helios_exporter import __version__
from helios_exporter.cli import build_collector, main
from helios_exporter.config import DEFAULT_SOURCES, ExporterConfig
from helios_exporter.errors import SourceNotAvailableError
from helios_exporter.sources import system


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CLI runner in an empty directory, so no config file is picked up."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return CliRunner()


@pytest.fixture
def fake_load(monkeypatch):
    monkeypatch.setattr(system.psutil, "getloadavg", lambda: (0.5, 1.0, 1.5))


class TestBuildCollector:
    def test_builds_enabled_sources(self):
        collector = build_collector(ExporterConfig(sources=["memory", "load"], scrape_timeout=3))

        assert list(collector.sources) == ["memory", "load"]
        assert collector.scrape_timeout == 3

    def test_unknown_source(self):
        with pytest.raises(SourceNotAvailableError):
            build_collector(ExporterConfig(sources=["cpu", "procfs"]))

    def test_custom_registry(self, registry):
        collector = build_collector(ExporterConfig(sources=["fast"]), registry)
        assert list(collector.sources) == ["fast"]


class TestCommands:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_collect(self, runner, fake_load):
        result = runner.invoke(main, ["collect", "--source", "load"])

        assert result.exit_code == 0, result.output
        assert "+ load:" in result.output

    def test_collect_failing_source_exits_1(self, runner, monkeypatch):
        def getloadavg():
            raise OSError("not supported")

        monkeypatch.setattr(system.psutil, "getloadavg", getloadavg)

        result = runner.invoke(main, ["collect", "-s", "load"])

        assert result.exit_code == 1
        assert "x load: failed after" in result.output

    def test_collect_unknown_source(self, runner):
        result = runner.invoke(main, ["collect", "-s", "procfs"])

        assert result.exit_code == 1
        assert "not available" in result.output

    def test_run_unknown_source_exits_1(self, runner):
        result = runner.invoke(main, ["run", "-s", "procfs"])
        assert result.exit_code == 1

    def test_run_bad_config_exits_1(self, runner):
        result = runner.invoke(main, ["run", "--web.listen-address", "nowhere"])
        assert result.exit_code == 1

    @pytest.mark.parametrize("contents", [
        "namespace: my-exporter\n",
        "web: oops\n",
        "source_options:\n  memory: 5\n",
    ])
    def test_run_invalid_config_file_exits_1(self, runner, tmp_path, contents):
        path = tmp_path / "exporter.yaml"
        path.write_text(contents)

        result = runner.invoke(main, ["run", "-c", str(path)])

        assert result.exit_code == 1
        assert not isinstance(result.exception, (AttributeError, ValueError))

    def test_sources(self, runner):
        result = runner.invoke(main, ["sources"])

        assert result.exit_code == 0
        for name in DEFAULT_SOURCES:
            assert name in result.output

    def test_init_writes_loadable_config(self, runner, tmp_path):
        output = tmp_path / "exporter.yaml"

        result = runner.invoke(main, ["init", "-o", str(output)])

        assert result.exit_code == 0
        config = ExporterConfig.from_file(output)
        assert config.sources == DEFAULT_SOURCES
        assert config.source_options["cpu"] == {"interval": 0.1, "per_cpu": False}


def test_run_serves_with_uvicorn(runner, monkeypatch):
    """run wires the app into uvicorn with the configured address."""
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append(SimpleNamespace(app=app, **kwargs)))

    result = runner.invoke(main, ["run", "--web.listen-address", "127.0.0.1:9101", "-s", "memory"])

    assert result.exit_code == 0, result.output
    [call] = calls
    assert call.host == "127.0.0.1"
    assert call.port == 9101
    assert call.log_level == "info"
