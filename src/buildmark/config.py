"""Configuration for buildmark.

Settings come from an optional YAML file and are then overlaid with
environment variables. The YAML format is:

    connector: github          # "github" or "mock"
    repository: myorg/api      # owner/name, detected from git if omitted
    api_url: https://api.github.com
    timeout: 30
    max_retries: 3

The token is never read from the file by default; it comes from
GITHUB_TOKEN or GH_TOKEN unless explicitly set.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

DEFAULT_CONFIG_PATH = Path(".buildmark.yaml")


class BuildMarkConfig(BaseModel):
    """Settings for connector selection and transport.

    Attributes:
        connector: Which repository connector to use
        repository: GitHub repository in "owner/name" form
        token: GitHub token for API access
        api_url: Base URL of the GitHub REST API
        graphql_url: GitHub GraphQL endpoint (derived from api_url if None)
        repo_path: Local git checkout to inspect
        timeout: Per-request HTTP timeout in seconds
        max_retries: Attempts for transient HTTP failures
        assembly_timeout: Overall limit in seconds for one build, None for no limit
        mock_data: Fixture overrides for the mock connector
    """

    connector: Literal["github", "mock"] = "github"
    repository: str | None = None
    token: str | None = None
    api_url: str | None = None
    graphql_url: str | None = None
    repo_path: Path = Path(".")
    timeout: float = Field(30.0, gt=0)
    max_retries: int = Field(3, ge=1)
    assembly_timeout: float | None = Field(None, gt=0)
    mock_data: dict | None = None


def load_config(path: str | Path | None = None) -> BuildMarkConfig:
    """Load configuration from YAML and the environment.

    Args:
        path: YAML file to read. Defaults to .buildmark.yaml in the current
              directory; a missing file yields default settings.

    Returns:
        A validated BuildMarkConfig

    Raises:
        ValueError: If the YAML content is invalid or fails validation.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    raw: dict = {}
    if config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid config in {config_path}: expected a mapping")

    if not raw.get("token"):
        token = os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN")
        if token:
            raw["token"] = token
    connector = os.environ.get("BUILDMARK_CONNECTOR")
    if connector:
        raw["connector"] = connector

    try:
        return BuildMarkConfig.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid config in {config_path}: {exc}") from exc
