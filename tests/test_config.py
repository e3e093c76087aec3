"""Tests for AppConfig and config file loading."""
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from netdiag.core.config import AppConfig, load_config_file


def test_app_config_default_output_dir(tmp_path, monkeypatch):
    """When output_dir is not provided, it defaults to Path('output')."""
    monkeypatch.chdir(tmp_path)
    config = AppConfig()
    assert config.output_dir == (tmp_path / "output").resolve()


def test_app_config_explicit_output_dir():
    """When output_dir is provided, it is used and resolved."""
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "custom_out"
        config = AppConfig(output_dir=path)
        assert config.output_dir == path.resolve()
        assert config.output_dir.exists()


def test_app_config_output_dir_from_string():
    """output_dir can be passed as a string and is converted to Path."""
    with tempfile.TemporaryDirectory() as tmp:
        config = AppConfig(output_dir=tmp)
        assert config.output_dir == Path(tmp).resolve()


def test_app_config_diagnostic_defaults(tmp_path):
    """Diagnostic defaults match the documented values."""
    config = AppConfig(output_dir=tmp_path)
    assert config.timeout_ms == 500
    assert config.max_concurrency == 50
    assert config.trace_timeout_ms == 3000
    assert config.max_hops == 30
    assert config.retry_per_hop == 3
    assert config.ping_count == 4
    assert config.ping_timeout_ms == 1000
    assert config.payload_size == 32
    assert config.url_timeout_ms == 5000
    assert config.url_max_concurrency == 10
    assert config.validate_certificate is True
    assert config.services == {}


@pytest.mark.parametrize(
    "field,value",
    [("max_concurrency", 0), ("max_hops", 0), ("max_hops", 256), ("payload_size", 70000), ("ping_count", -1)],
)
def test_app_config_rejects_out_of_range_values(tmp_path, field, value):
    """Out-of-range limits fail validation."""
    with pytest.raises(ValidationError):
        AppConfig(output_dir=tmp_path, **{field: value})


def test_app_config_create_run_dir(tmp_path):
    """create_run_dir creates a timestamped subdirectory."""
    config = AppConfig(output_dir=tmp_path)
    run_dir = config.create_run_dir("port_scan")
    assert run_dir.parent == config.output_dir
    assert run_dir.name.startswith("20")  # timestamp
    assert "port_scan" in run_dir.name
    assert run_dir.is_dir()


def test_app_config_save_metadata(tmp_path):
    """save_metadata writes metadata.json with a timestamp."""
    config = AppConfig(output_dir=tmp_path)
    run_dir = config.create_run_dir("ping")
    config.save_metadata(run_dir, {"target": "127.0.0.1"})
    data = json.loads((run_dir / "metadata.json").read_text())
    assert data["target"] == "127.0.0.1"
    assert "timestamp" in data


def test_load_config_file_no_file(tmp_path, monkeypatch):
    """When no config file exists, load_config_file returns empty dict."""
    monkeypatch.chdir(tmp_path)
    with patch("netdiag.core.config.Path.home", return_value=tmp_path / "home"):
        assert load_config_file() == {}


def test_load_config_file_cwd_overrides_home(tmp_path, monkeypatch):
    """./.netdiag.yaml overrides ~/.netdiag.yaml key by key."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    (home / ".netdiag.yaml").write_text("timeout_ms: 900\nmax_hops: 12\nverbose: true\n")
    (work / ".netdiag.yaml").write_text(
        "timeout_ms: 250\nservices:\n  8888: Jupyter\n  bogus: Nope\n"
    )
    monkeypatch.chdir(work)
    with patch("netdiag.core.config.Path.home", return_value=home):
        result = load_config_file()

    assert result["timeout_ms"] == 250
    assert result["max_hops"] == 12
    assert result["verbose"] is True
    assert result["services"] == {8888: "Jupyter"}


def test_load_config_file_ignores_bad_values(tmp_path, monkeypatch):
    """Non-numeric limits are skipped and unreadable YAML is ignored."""
    home = tmp_path / "home"
    home.mkdir()
    (home / ".netdiag.yaml").write_text("timeout_ms: fast\nmax_concurrency: 8\n")
    (tmp_path / ".netdiag.yaml").write_text("key: [unclosed\n")
    monkeypatch.chdir(tmp_path)
    with patch("netdiag.core.config.Path.home", return_value=home):
        result = load_config_file()

    assert "timeout_ms" not in result
    assert result["max_concurrency"] == 8
