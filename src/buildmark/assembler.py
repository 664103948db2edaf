"""Build information assembler.

This module ties together all the components:
- Connector (connectors/): raw tags, hashes, pull requests and issues
- Version parsing (version.py)
- Target and baseline resolution (baseline.py)
- Change aggregation (aggregator.py)

The assembler follows this flow:
1. Fetch tag history and the current commit hash (concurrently)
2. Resolve the target version and the baseline version
3. Fetch the pull requests in the range and the open issues (concurrently)
4. Fetch linked issues and their details (concurrently)
5. Aggregate everything into changes, bugs and known issues
6. Return the BuildInformation

Failure policy:
- Structural facts (tags, hashes, pull requests in range) abort the build;
  treating them as empty would silently produce a wrong report
- Enrichment facts (linked issues, issue details, open issues) degrade to
  empty or fallback values and are logged as warnings
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable
from typing import TypeVar

from buildmark.aggregator import aggregate
from buildmark.baseline import resolve_baseline, resolve_target
from buildmark.config import load_config
from buildmark.connectors.factory import create_connector
from buildmark.connectors.protocol import RepoConnectorProtocol
from buildmark.exceptions import BuildMarkError, ConnectorError
from buildmark.logging_config import get_logger, setup_logging
from buildmark.schemas import BuildInformation, ChangeUnit, IssueDetails
from buildmark.version import parse_tag_history

logger = get_logger(__name__)

T = TypeVar("T")


class BuildInformationAssembler:
    """Produces BuildInformation from a repository connector.

    Each call to assemble() is independent; nothing is cached between calls.

    Usage:
        assembler = BuildInformationAssembler(MockRepoConnector())
        info = await assembler.assemble("2.0.0")
    """

    def __init__(
        self,
        connector: RepoConnectorProtocol,
        timeout: float | None = None,
    ) -> None:
        """Initialize the assembler.

        Args:
            connector: Source of repository data
            timeout: Overall time limit in seconds for one assembly
        """
        self.connector = connector
        self.timeout = timeout

    async def assemble(self, version: str | None = None) -> BuildInformation:
        """Build the information for a version.

        Args:
            version: Explicit target version. When None, the latest tag is
                     used, provided the checkout is at that tag.

        Returns:
            The BuildInformation for the build

        Raises:
            VersionResolutionError: If the target version cannot be determined
            ConnectorError: If a structural fetch fails
            TimeoutError: If a timeout is set and exceeded
        """
        logger.info("assembly_started", version=version)
        try:
            if self.timeout is not None:
                info = await asyncio.wait_for(self._assemble(version), self.timeout)
            else:
                info = await self._assemble(version)
        except Exception as e:
            logger.error("assembly_failed", version=version, error=str(e))
            raise

        logger.info(
            "assembly_complete",
            to_version=info.to_version.tag,
            from_version=info.from_version.tag if info.from_version else None,
            changes=len(info.changes),
            bugs=len(info.bugs),
            known_issues=len(info.known_issues),
        )
        return info

    async def _assemble(self, version: str | None) -> BuildInformation:
        connector = self.connector

        raw_tags, current_hash = await asyncio.gather(
            connector.get_tag_history(),
            connector.get_hash_for_tag(None),
        )
        tags = parse_tag_history(raw_tags)
        logger.debug("tag_history_loaded", raw=len(raw_tags), versions=len(tags))

        target = await resolve_target(tags, version, current_hash, connector.get_hash_for_tag)
        baseline = resolve_baseline(tags, target)
        logger.info(
            "baseline_resolved",
            target=target.tag,
            baseline=baseline.tag if baseline else None,
        )

        from_hash = None
        if baseline is not None:
            from_hash = (await connector.get_hash_for_tag(baseline.tag)).strip()

        units, open_issues = await asyncio.gather(
            connector.get_change_units_between(baseline, target),
            self._enrich("get_open_issues", connector.get_open_issues(), []),
        )

        linked_lists = await asyncio.gather(
            *(self._linked_issues(unit) for unit in units)
        )
        linked = {unit.number: ids for unit, ids in zip(units, linked_lists)}

        issue_ids = list(dict.fromkeys(i for ids in linked_lists for i in ids))
        details_list = await asyncio.gather(
            *(self._issue_details(issue_id) for issue_id in issue_ids)
        )
        details = dict(zip(issue_ids, details_list))

        result = aggregate(units, linked, details, open_issues)

        return BuildInformation(
            from_version=baseline,
            to_version=target,
            from_hash=from_hash,
            to_hash=current_hash.strip(),
            changes=list(result.changes),
            bugs=list(result.bugs),
            known_issues=list(result.known_issues),
        )

    async def _enrich(self, operation: str, call: Awaitable[T], fallback: T, **context) -> T:
        """Await an enrichment call, returning fallback if the connector fails."""
        try:
            return await call
        except ConnectorError as e:
            logger.warning("enrichment_degraded", operation=operation, error=str(e), **context)
            return fallback

    async def _linked_issues(self, unit: ChangeUnit) -> list[str]:
        return await self._enrich(
            "get_linked_issues",
            self.connector.get_linked_issues(unit),
            [],
            pull_request=unit.number,
        )

    async def _issue_details(self, issue_id: str) -> IssueDetails:
        return await self._enrich(
            "get_issue_details",
            self.connector.get_issue_details(issue_id),
            IssueDetails(id=issue_id, title=f"Issue {issue_id}"),
            issue=issue_id,
        )


async def build_information(
    connector: RepoConnectorProtocol,
    version: str | None = None,
) -> BuildInformation:
    """Assemble build information with a one-off assembler."""
    return await BuildInformationAssembler(connector).assemble(version)


# ---------------------------------------------------------------------------
# CLI Entry Point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point: print the build information as JSON.

    Usage:
        buildmark --build-version v2.0.0
        buildmark --connector mock --build-version 2.0.0 > build.json
    """
    parser = argparse.ArgumentParser(description="Build information generator")
    parser.add_argument(
        "--build-version",
        type=str,
        help="Version being built (defaults to the tag at HEAD)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to a YAML config file (default: .buildmark.yaml)",
    )
    parser.add_argument(
        "--connector",
        choices=["github", "mock"],
        help="Repository connector to use (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL or INFO)",
    )
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level)

    try:
        config = load_config(args.config)
    except ValueError as e:
        logger.error("config_invalid", error=str(e))
        return 2
    if args.connector:
        config = config.model_copy(update={"connector": args.connector})

    assembler = BuildInformationAssembler(
        create_connector(config), timeout=config.assembly_timeout
    )
    try:
        info = asyncio.run(assembler.assemble(args.build_version))
    except (BuildMarkError, TimeoutError):
        return 1

    print(info.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
