"""
GitHub Client — Thin async wrapper over the GitHub REST endpoints the
auto-fix flow needs.

Every non-2xx response raises SourceControlError carrying the status code.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from codepolice.config import settings
from codepolice.models.autofix_models import FileInfo, PullRequestRef

logger = logging.getLogger("codepolice.scm.github")


class SourceControlError(Exception):
    """A GitHub API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _clean_path(path: str) -> str:
    return path.replace("\\", "/").lstrip("/")


class GitHubClient:
    """
    Async GitHub REST client bound to one access token.

    Pass ``transport`` (e.g. httpx.MockTransport) to run without network.
    """

    def __init__(
        self,
        access_token: str,
        api_base: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = (api_base or settings.github_api_base).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github.v3+json",
        }
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            headers=self.headers,
            timeout=timeout or settings.github_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        action: str,
        **kwargs: Any,
    ) -> httpx.Response:
        response = await self._client.request(method, url, **kwargs)
        if response.is_success:
            return response

        detail = ""
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                detail = f" - {body['message']}"
        except ValueError:
            pass
        raise SourceControlError(
            f"Failed to {action}: {response.status_code} {response.reason_phrase}{detail}",
            status_code=response.status_code,
        )

    # ── Refs ──

    async def get_branch_ref(self, owner: str, repo: str, branch: str) -> str:
        """Return the commit SHA a branch points to."""
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}/git/refs/heads/{branch}", "get branch ref"
        )
        return response.json()["object"]["sha"]

    async def create_branch(
        self, owner: str, repo: str, branch_name: str, from_sha: str
    ) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            "create branch",
            json={"ref": f"refs/heads/{branch_name}", "sha": from_sha},
        )

    # ── Contents ──

    async def get_file_info(
        self, owner: str, repo: str, path: str, branch: str
    ) -> FileInfo:
        """Blob SHA and decoded content, required for updating a file."""
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{_clean_path(path)}",
            "get file info",
            params={"ref": branch},
        )
        data = response.json()
        content = base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")
        return FileInfo(sha=data["sha"], content=content)

    async def fetch_file_content(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str | None = None,
        fallback_branch: str | None = None,
    ) -> str:
        """
        Raw file text at a ref.

        "latest" and empty refs are not git refs; the fallback branch is used
        instead. A 404 at the ref is retried once on the fallback branch.
        """
        clean = _clean_path(path)
        effective_ref = ref if ref and ref != "latest" else fallback_branch
        raw_headers = {"Accept": "application/vnd.github.v3.raw"}
        url = f"/repos/{owner}/{repo}/contents/{clean}"
        params = {"ref": effective_ref} if effective_ref else None

        response = await self._client.get(url, params=params, headers=raw_headers)
        if response.is_success:
            return response.text

        if (
            response.status_code == 404
            and fallback_branch
            and effective_ref != fallback_branch
        ):
            logger.info(
                f"{clean} not found at {effective_ref or 'HEAD'}, "
                f"trying fallback branch {fallback_branch}"
            )
            retry = await self._client.get(
                url, params={"ref": fallback_branch}, headers=raw_headers
            )
            if retry.is_success:
                return retry.text

        logger.error(
            f"Failed to fetch {owner}/{repo}/{clean} at {effective_ref or 'HEAD'}: "
            f"{response.status_code}"
        )
        raise SourceControlError(
            f"Failed to fetch file: {response.status_code} {response.reason_phrase}: {clean}",
            status_code=response.status_code,
        )

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str,
        file_sha: str | None = None,
    ) -> str:
        """Commit content to a path; returns the new blob SHA."""
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if file_sha:
            body["sha"] = file_sha

        response = await self._request(
            "PUT",
            f"/repos/{owner}/{repo}/contents/{_clean_path(path)}",
            "update file",
            json=body,
        )
        return response.json()["content"]["sha"]

    # ── Pull requests ──

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head_branch: str,
        base_branch: str,
    ) -> PullRequestRef:
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            "create PR",
            json={"title": title, "body": body, "head": head_branch, "base": base_branch},
        )
        data = response.json()
        return PullRequestRef(number=data["number"], url=data["html_url"])

    async def add_labels(
        self, owner: str, repo: str, pr_number: int, labels: list[str]
    ) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{pr_number}/labels",
            "add labels",
            json={"labels": labels},
        )
