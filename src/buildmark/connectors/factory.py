"""Connector selection by configuration."""

from __future__ import annotations

from buildmark.config import BuildMarkConfig
from buildmark.connectors.github import GitHubRepoConnector
from buildmark.connectors.mock import MockRepoConnector
from buildmark.connectors.protocol import RepoConnectorProtocol
from buildmark.logging_config import get_logger

logger = get_logger(__name__)


def create_connector(config: BuildMarkConfig | None = None) -> RepoConnectorProtocol:
    """Create the repository connector named by config.connector.

    Args:
        config: Settings. Uses defaults (the GitHub connector) if None.

    Returns:
        A connector implementing RepoConnectorProtocol
    """
    config = config or BuildMarkConfig()
    logger.debug("connector_selected", connector=config.connector)
    if config.connector == "mock":
        return MockRepoConnector(mock_data=config.mock_data)
    return GitHubRepoConnector(config=config)
