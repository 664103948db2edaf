"""GitHub repository connector.

Combines the local git checkout with GitHub's APIs:
- git: tag history, commit hashes, and the origin remote
- REST: commits in a range, the pull requests for each commit, issue
  details, and open issues
- GraphQL: the issues a pull request closes (closingIssuesReferences)

Design notes:
- Uses httpx for async HTTP requests, with Link-header pagination
- Transient failures (network errors, 5xx, 429) are retried with tenacity
- Every failure surfaces as ConnectorError; whether that aborts the build
  or degrades to an empty result is the assembler's decision
- Single malformed records are skipped, the rest of the page is kept

GitHub API docs: https://docs.github.com/en/rest
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from buildmark.config import BuildMarkConfig
from buildmark.connectors.git import run_git, validate_id, validate_tag
from buildmark.exceptions import ConnectorError
from buildmark.logging_config import get_logger
from buildmark.schemas import ChangeUnit, IssueDetails, Version

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"

HTTPS_REMOTE = re.compile(r"^https?://(?:[^@/]+@)?([^/]+)/([^/]+)/([^/]+?)/?$")
SSH_REMOTE = re.compile(r"^(?:ssh://)?[^@]+@([^:/]+)[:/]([^/]+)/([^/]+?)/?$")

CLOSING_ISSUES_QUERY = """
query($owner: String!, $repo: String!, $prNumber: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $prNumber) {
      closingIssuesReferences(first: 100) {
        nodes {
          number
        }
      }
    }
  }
}
"""

GitRunner = Callable[..., Awaitable[str]]


def parse_remote_url(url: str) -> tuple[str, str, str]:
    """Split a GitHub remote URL into (api_url, owner, repo).

    Supports https and ssh remotes. github.com maps to api.github.com;
    any other host is treated as GitHub Enterprise (https://host/api/v3).

    Raises:
        ValueError: If the URL is not a recognizable GitHub remote
    """
    url = url.strip()
    match = HTTPS_REMOTE.match(url) or SSH_REMOTE.match(url)
    if match is None:
        raise ValueError(f"Unsupported git remote URL: {url!r}")

    host, owner, repo = match.groups()
    if repo.lower().endswith(".git"):
        repo = repo[:-4]

    if host.lower() == "github.com":
        api_url = DEFAULT_API_URL
    else:
        api_url = f"https://{host}/api/v3"
    return api_url, owner, repo


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def _labels(item: dict[str, Any]) -> list[str]:
    return [label["name"] for label in item.get("labels") or [] if label.get("name")]


def _json(response: httpx.Response, operation: str, expected: type) -> Any:
    """Decode a response body that must be a JSON object or array.

    Raises:
        ConnectorError: If the body is not JSON or not of the expected type
    """
    url = response.request.url
    try:
        body = response.json()
    except ValueError as exc:
        raise ConnectorError(
            f"{url} returned a body that is not JSON: {exc}", operation=operation
        ) from exc
    if not isinstance(body, expected):
        raise ConnectorError(
            f"{url} returned {type(body).__name__}, expected {expected.__name__}",
            operation=operation,
        )
    return body


def _next_link(link_header: str) -> str | None:
    """Extract the 'next' URL from a GitHub Link header."""
    if not link_header:
        return None
    for part in link_header.split(","):
        if 'rel="next"' in part:
            return part.split(";")[0].strip().strip("<>")
    return None


class GitHubRepoConnector:
    """Repository connector backed by git and the GitHub API.

    Usage:
        connector = GitHubRepoConnector(config=load_config())
        tags = await connector.get_tag_history()
    """

    def __init__(
        self,
        config: BuildMarkConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        git_runner: GitRunner | None = None,
    ) -> None:
        """Initialize the connector.

        Args:
            config: Settings; defaults are used if not provided
            transport: httpx transport override (used by tests)
            git_runner: Replacement for run_git (used by tests)
        """
        self.config = config or BuildMarkConfig()
        self._transport = transport
        self._git = git_runner or run_git
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "buildmark",
        }
        if self.config.token:
            self._headers["Authorization"] = f"Bearer {self.config.token}"
        self._location: tuple[str, str, str] | None = None
        self._concurrency = asyncio.Semaphore(8)

    # -----------------------------------------------------------------------
    # Plumbing
    # -----------------------------------------------------------------------

    async def _run_git(self, *args: str) -> str:
        return await self._git(*args, cwd=self.config.repo_path)

    async def _repository(self) -> tuple[str, str, str]:
        """Return (api_url, owner, repo), detecting them from origin if needed."""
        if self._location is not None:
            return self._location

        if self.config.repository:
            owner, _, repo = self.config.repository.partition("/")
            if not owner or not repo:
                raise ConnectorError(
                    f"Repository must be 'owner/name', got {self.config.repository!r}",
                    operation="repository",
                )
            api_url = self.config.api_url or DEFAULT_API_URL
        else:
            remote = await self._run_git("remote", "get-url", "origin")
            try:
                api_url, owner, repo = parse_remote_url(remote)
            except ValueError as exc:
                raise ConnectorError(str(exc), operation="repository") from exc
            api_url = self.config.api_url or api_url

        self._location = (api_url.rstrip("/"), owner, repo)
        return self._location

    def _client(self, base_url: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url,
            headers=self._headers,
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying transient failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                async with self._concurrency:
                    response = await client.request(method, url, **kwargs)
                response.raise_for_status()
        return response

    async def _get(
        self, client: httpx.AsyncClient, url: str, operation: str, **kwargs: Any
    ) -> httpx.Response:
        """GET a URL, converting HTTP failures into ConnectorError."""
        try:
            response = await self._send(client, "GET", url, **kwargs)
        except httpx.HTTPStatusError as exc:
            raise ConnectorError(
                f"GET {url} failed with status {exc.response.status_code}",
                operation=operation,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ConnectorError(f"GET {url} failed: {exc}", operation=operation) from exc
        return response

    async def _paginate(
        self,
        client: httpx.AsyncClient,
        url: str,
        operation: str,
        items_key: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> list[Any]:
        """Collect all items of a paginated endpoint.

        Args:
            client: The httpx client to use
            url: The initial URL to fetch
            operation: Name reported in ConnectorError
            items_key: Key holding the list when the body is an object
            params: Query parameters for the first page

        Returns:
            All items across all pages
        """
        all_items: list[Any] = []
        next_url: str | None = url
        page_params: dict[str, Any] | None = {"per_page": 100, **(params or {})}

        while next_url:
            response = await self._get(client, next_url, operation, params=page_params)
            if items_key:
                page = _json(response, operation, dict).get(items_key) or []
            else:
                page = _json(response, operation, list)
            if not isinstance(page, list):
                raise ConnectorError(
                    f"{next_url} returned {type(page).__name__} under {items_key!r}",
                    operation=operation,
                )
            all_items.extend(page)
            next_url = _next_link(response.headers.get("link", ""))
            # The next link already carries the query string
            page_params = None

        return all_items

    # -----------------------------------------------------------------------
    # Git facts
    # -----------------------------------------------------------------------

    async def get_tag_history(self) -> list[str]:
        """Return tags merged into HEAD, sorted by creation date."""
        output = await self._run_git("tag", "--sort=creatordate", "--merged", "HEAD")
        return [line.strip() for line in output.splitlines() if line.strip()]

    async def get_hash_for_tag(self, tag: str | None) -> str:
        """Return the commit a tag (or HEAD) points to."""
        ref = "HEAD" if tag is None else f"{validate_tag(tag)}^{{commit}}"
        return (await self._run_git("rev-parse", ref)).strip()

    async def _tag_exists(self, tag: str) -> bool:
        result = await self._try_git(
            "rev-parse", "--verify", "--quiet", f"refs/tags/{validate_tag(tag)}"
        )
        return result is not None

    async def _try_git(self, *args: str) -> str | None:
        try:
            return await self._run_git(*args)
        except ConnectorError:
            return None

    # -----------------------------------------------------------------------
    # Change units
    # -----------------------------------------------------------------------

    async def _commit_shas(
        self,
        client: httpx.AsyncClient,
        owner: str,
        repo: str,
        from_version: Version | None,
        to_ref: str,
    ) -> list[str]:
        """Return commit SHAs in the range, oldest first."""
        if from_version is None:
            commits = await self._paginate(
                client,
                f"/repos/{owner}/{repo}/commits",
                "get_change_units_between",
                params={"sha": to_ref},
            )
            # The commits endpoint lists newest first
            commits.reverse()
        else:
            from_tag = validate_tag(from_version.tag)
            commits = await self._paginate(
                client,
                f"/repos/{owner}/{repo}/compare/{from_tag}...{to_ref}",
                "get_change_units_between",
                items_key="commits",
            )

        shas: list[str] = []
        for commit in commits:
            sha = commit.get("sha") if isinstance(commit, dict) else None
            if not sha:
                logger.warning("malformed_commit_skipped", record=str(commit)[:200])
                continue
            shas.append(sha)
        return shas

    async def get_change_units_between(
        self,
        from_version: Version | None,
        to_version: Version,
    ) -> list[ChangeUnit]:
        """Return the pull requests associated with commits in the range.

        Each pull request appears once, positioned at its first commit.
        """
        api_url, owner, repo = await self._repository()
        to_ref = to_version.tag if await self._tag_exists(to_version.tag) else "HEAD"

        async with self._client(api_url) as client:
            shas = await self._commit_shas(client, owner, repo, from_version, to_ref)
            pulls_per_commit = await asyncio.gather(
                *(
                    self._paginate(
                        client,
                        f"/repos/{owner}/{repo}/commits/{sha}/pulls",
                        "get_change_units_between",
                    )
                    for sha in shas
                )
            )

        units: list[ChangeUnit] = []
        seen: set[str] = set()
        for pulls in pulls_per_commit:
            for pull in pulls:
                try:
                    number = str(pull["number"])
                    unit = ChangeUnit(
                        number=number,
                        title=pull.get("title") or "",
                        url=pull.get("html_url") or "",
                        labels=_labels(pull),
                        order_index=len(units),
                    )
                except (AttributeError, KeyError, TypeError, ValueError) as exc:
                    logger.warning("malformed_pull_request_skipped", error=str(exc))
                    continue
                if number in seen:
                    continue
                seen.add(number)
                units.append(unit)

        logger.debug(
            "change_units_fetched",
            from_tag=from_version.tag if from_version else None,
            to_ref=to_ref,
            commits=len(shas),
            pull_requests=len(units),
        )
        return units

    # -----------------------------------------------------------------------
    # Issues
    # -----------------------------------------------------------------------

    async def get_linked_issues(self, unit: ChangeUnit) -> list[str]:
        """Return the issues the pull request will close, via GraphQL."""
        api_url, owner, repo = await self._repository()
        graphql_url = self.config.graphql_url or (
            "https://api.github.com/graphql"
            if api_url == DEFAULT_API_URL
            else api_url.removesuffix("/v3") + "/graphql"
        )
        payload = {
            "query": CLOSING_ISSUES_QUERY,
            "variables": {
                "owner": owner,
                "repo": repo,
                "prNumber": int(validate_id(unit.number)),
            },
        }

        async with self._client(api_url) as client:
            try:
                response = await self._send(client, "POST", graphql_url, json=payload)
            except httpx.HTTPError as exc:
                raise ConnectorError(
                    f"GraphQL query for PR #{unit.number} failed: {exc}",
                    operation="get_linked_issues",
                ) from exc

        body = _json(response, "get_linked_issues", dict)
        if body.get("errors"):
            raise ConnectorError(
                f"GraphQL query for PR #{unit.number} returned errors: {body['errors']}",
                operation="get_linked_issues",
            )

        node: Any = body.get("data")
        for key in ("repository", "pullRequest", "closingIssuesReferences"):
            node = (node or {}).get(key)
        nodes = (node or {}).get("nodes") or []
        return [str(node["number"]) for node in nodes if node and node.get("number") is not None]

    async def get_issue_details(self, issue_id: str) -> IssueDetails:
        """Return title, URL and labels of one issue."""
        api_url, owner, repo = await self._repository()
        async with self._client(api_url) as client:
            response = await self._get(
                client,
                f"/repos/{owner}/{repo}/issues/{validate_id(issue_id)}",
                "get_issue_details",
            )
        data = _json(response, "get_issue_details", dict)
        try:
            return IssueDetails(
                id=issue_id,
                title=data.get("title") or "",
                url=data.get("html_url") or "",
                labels=_labels(data),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ConnectorError(
                f"Malformed issue #{issue_id}: {exc}", operation="get_issue_details"
            ) from exc

    async def get_open_issues(self) -> list[IssueDetails]:
        """Return all open issues; pull requests are filtered out."""
        api_url, owner, repo = await self._repository()
        async with self._client(api_url) as client:
            items = await self._paginate(
                client,
                f"/repos/{owner}/{repo}/issues",
                "get_open_issues",
                params={"state": "open"},
            )

        issues: list[IssueDetails] = []
        for item in items:
            try:
                if "pull_request" in item:
                    continue
                issues.append(
                    IssueDetails(
                        id=str(item["number"]),
                        title=item.get("title") or "",
                        url=item.get("html_url") or "",
                        labels=_labels(item),
                    )
                )
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("malformed_issue_skipped", error=str(exc))
        return issues
