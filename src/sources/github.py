"""GitHub REST client for a user's commit history."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx
import structlog

from cli.config_models import RetryConfig
from sync.errors import TransportError

from .base import ServiceClient, format_datetime, parse_datetime

logger = structlog.get_logger(source="github")

GITHUB_API = "https://api.github.com"
PER_PAGE = 100


@dataclass(frozen=True)
class Commit:
    sha: str
    message: str
    repository: str
    committer_date: Optional[datetime]


class GitHubClient(ServiceClient):
    """Fetch commits authored by a user across their repositories."""

    service_name = "github"

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = GITHUB_API,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryConfig] = None,
    ):
        headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            headers["Authorization"] = f"token {token}"
        super().__init__(base_url=base_url, headers=headers, client=client, retry=retry)

    async def _get_paginated(self, path: str, params: dict) -> list:
        """Follow ``Link: rel="next"`` headers and concatenate list pages."""
        results: list = []
        url: Optional[str] = path
        page_params: Optional[dict] = params
        while url:
            response = await self.get(url, params=page_params)
            page = self.json_of(response, self.service_name)
            if not isinstance(page, list):
                raise TransportError(f"github: expected a list from {url}")
            results.extend(page)
            url = response.links.get("next", {}).get("url")
            page_params = None  # next-link already carries the query
        return results

    async def get_user_repositories(self, username: str) -> list[str]:
        repos = await self._get_paginated(f"users/{username}/repos", {"per_page": PER_PAGE})
        return [repo["full_name"] for repo in repos if isinstance(repo, dict) and repo.get("full_name")]

    async def get_repository_commits(self, repo: str, username: str, since: datetime) -> list[Commit]:
        items = await self._get_paginated(
            f"repos/{repo}/commits",
            {"since": format_datetime(since), "author": username, "per_page": PER_PAGE},
        )
        commits = []
        for item in items:
            try:
                details = item["commit"]
                commits.append(
                    Commit(
                        sha=item["sha"],
                        message=details.get("message") or "",
                        repository=repo,
                        committer_date=parse_datetime((details.get("committer") or {}).get("date")),
                    )
                )
            except (KeyError, TypeError, AttributeError) as e:
                raise TransportError(f"github: malformed commit in {repo}: {e}") from e
        return commits

    async def get_commits(self, username: str, since: datetime) -> list[Commit]:
        """All commits by ``username`` since ``since``, across the user's repositories."""
        commits: list[Commit] = []
        for repo in await self.get_user_repositories(username):
            commits.extend(await self.get_repository_commits(repo, username, since))
        logger.debug("github_commits_fetched", username=username, count=len(commits))
        return commits
