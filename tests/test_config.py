"""Tests for configuration loading.

These tests verify that:
- A missing config file yields default settings
- YAML settings are loaded and validated
- Invalid files raise ValueError with the file name
- Environment variables supply the token and override the connector

Run with: pytest tests/test_config.py -v
"""

from __future__ import annotations

from pathlib import Path

import pytest

from buildmark.config import BuildMarkConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("GITHUB_TOKEN", "GH_TOKEN", "BUILDMARK_CONNECTOR"):
        monkeypatch.delenv(name, raising=False)


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "buildmark.yaml"
    path.write_text(text)
    return path


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "absent.yaml")
        assert config == BuildMarkConfig()
        assert config.connector == "github"
        assert config.timeout == 30.0
        assert config.max_retries == 3
        assert config.assembly_timeout is None

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(write(tmp_path, "")) == BuildMarkConfig()

    def test_loads_yaml(self, tmp_path: Path) -> None:
        path = write(
            tmp_path,
            "connector: mock\n"
            "repository: myorg/api\n"
            "api_url: https://ghe.example.com/api/v3\n"
            "timeout: 10\n"
            "max_retries: 5\n"
            "assembly_timeout: 120\n"
            "mock_data:\n"
            "  tags:\n"
            "    v1.0.0: abc\n",
        )
        config = load_config(path)
        assert config.connector == "mock"
        assert config.repository == "myorg/api"
        assert config.api_url == "https://ghe.example.com/api/v3"
        assert config.timeout == 10.0
        assert config.max_retries == 5
        assert config.assembly_timeout == 120.0
        assert config.mock_data == {"tags": {"v1.0.0": "abc"}}

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = write(tmp_path, "connector: [mock\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = write(tmp_path, "- github\n- mock\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            load_config(path)

    @pytest.mark.parametrize(
        "text",
        ["connector: gitlab\n", "timeout: 0\n", "max_retries: 0\n", "assembly_timeout: -1\n"],
    )
    def test_invalid_values(self, tmp_path: Path, text: str) -> None:
        with pytest.raises(ValueError, match="Invalid config"):
            load_config(write(tmp_path, text))


# ---------------------------------------------------------------------------
# Environment overlay
# ---------------------------------------------------------------------------


class TestEnvironment:
    def test_token_from_github_token(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_primary")
        monkeypatch.setenv("GH_TOKEN", "ghp_secondary")
        assert load_config(tmp_path / "absent.yaml").token == "ghp_primary"

    def test_token_from_gh_token(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GH_TOKEN", "ghp_secondary")
        assert load_config(tmp_path / "absent.yaml").token == "ghp_secondary"

    def test_file_token_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
        assert load_config(write(tmp_path, "token: ghp_file\n")).token == "ghp_file"

    def test_connector_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BUILDMARK_CONNECTOR", "mock")
        assert load_config(write(tmp_path, "connector: github\n")).connector == "mock"
