"""GitHub REST client: file reads, object-graph primitives, pull requests, issues.

Every request goes through ``_request`` which never raises for HTTP status or
transport failures; it returns ``Ok(json)`` or ``Err(kind, message)``. Public
methods that have a meaningful "absent" answer (file reads, branch checks)
hand that result to the caller; the rest unwrap it and raise ``GitHubError``.
"""

import base64
import logging
from typing import Any

import httpx

from ecosystem_agent.errors import ExternalServiceError
from ecosystem_agent.models import Err, Ok

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
_API_VERSION = "2022-11-28"
_FILE_MODE = "100644"


class GitHubError(ExternalServiceError):
    """Raised when a GitHub call returns an error result."""

    def __init__(self, action: str, err: Err) -> None:
        self.action = action
        self.err = err
        super().__init__(f"GitHub {action} failed ({err.kind}): {err.message}")


class GitHubClient:
    """Thin async wrapper over the endpoints the sync engine needs."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = API_URL,
        timeout_sec: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": _API_VERSION,
            },
            timeout=timeout_sec,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> Ok[Any] | Err:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            return Err("network", f"{method} {path}: {exc}")

        if response.status_code == 404:
            return Err("not_found", f"{method} {path}: not found", 404)
        if response.is_error:
            return Err(
                "http",
                f"GitHub API error: {response.status_code} {response.text}",
                response.status_code,
            )
        try:
            return Ok(response.json())
        except ValueError as exc:
            return Err("decode", f"{method} {path}: invalid JSON ({exc})", response.status_code)

    @staticmethod
    def _unwrap(action: str, result: Ok[Any] | Err) -> Any:
        if isinstance(result, Err):
            raise GitHubError(action, result)
        return result.value

    # --- contents -----------------------------------------------------------

    async def get_file_contents(self, owner: str, repo: str, path: str, ref: str = "main") -> Ok[str] | Err:
        """Return the decoded text of a file, or ``Err(kind="not_found")`` if it does not exist."""
        result = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}", params={"ref": ref})
        if isinstance(result, Err):
            return result
        payload = result.value
        if not isinstance(payload, dict) or "content" not in payload:
            return Err("decode", f"{path} is not a file")
        try:
            return Ok(base64.b64decode(payload["content"]).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as exc:
            return Err("decode", f"{path}: cannot decode content ({exc})")

    # --- refs ---------------------------------------------------------------

    async def get_ref(self, owner: str, repo: str, branch: str) -> str:
        """Resolve a branch head to its commit sha."""
        data = self._unwrap(
            f"get ref {branch}",
            await self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}"),
        )
        return data["object"]["sha"]

    async def branch_exists(self, owner: str, repo: str, branch: str) -> bool:
        result = await self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")
        if isinstance(result, Err):
            if result.kind == "not_found":
                return False
            raise GitHubError(f"check branch {branch}", result)
        return True

    async def create_branch(self, owner: str, repo: str, branch: str, from_ref: str = "main") -> str:
        """Create ``branch`` at the head of ``from_ref``; returns that head sha."""
        head_sha = await self.get_ref(owner, repo, from_ref)
        self._unwrap(
            f"create branch {branch}",
            await self._request(
                "POST",
                f"/repos/{owner}/{repo}/git/refs",
                json={"ref": f"refs/heads/{branch}", "sha": head_sha},
            ),
        )
        logger.info("Created branch %s/%s:%s at %s", owner, repo, branch, head_sha[:7])
        return head_sha

    async def update_ref(self, owner: str, repo: str, branch: str, sha: str) -> None:
        self._unwrap(
            f"update ref {branch}",
            await self._request(
                "PATCH",
                f"/repos/{owner}/{repo}/git/refs/heads/{branch}",
                json={"sha": sha, "force": False},
            ),
        )

    # --- objects ------------------------------------------------------------

    async def get_commit_tree(self, owner: str, repo: str, commit_sha: str) -> str:
        data = self._unwrap(
            f"get commit {commit_sha[:7]}",
            await self._request("GET", f"/repos/{owner}/{repo}/git/commits/{commit_sha}"),
        )
        return data["tree"]["sha"]

    async def create_blob(self, owner: str, repo: str, content: str) -> str:
        data = self._unwrap(
            "create blob",
            await self._request(
                "POST",
                f"/repos/{owner}/{repo}/git/blobs",
                json={"content": content, "encoding": "utf-8"},
            ),
        )
        return data["sha"]

    async def create_tree(
        self, owner: str, repo: str, base_tree: str, entries: list[tuple[str, str]]
    ) -> str:
        """Create a tree layering ``(path, blob_sha)`` entries onto ``base_tree``."""
        tree = [
            {"path": path, "mode": _FILE_MODE, "type": "blob", "sha": blob_sha}
            for path, blob_sha in entries
        ]
        data = self._unwrap(
            "create tree",
            await self._request(
                "POST",
                f"/repos/{owner}/{repo}/git/trees",
                json={"base_tree": base_tree, "tree": tree},
            ),
        )
        return data["sha"]

    async def create_commit(
        self, owner: str, repo: str, message: str, tree: str, parents: list[str]
    ) -> str:
        data = self._unwrap(
            "create commit",
            await self._request(
                "POST",
                f"/repos/{owner}/{repo}/git/commits",
                json={"message": message, "tree": tree, "parents": parents},
            ),
        )
        return data["sha"]

    # --- review surfaces ----------------------------------------------------

    async def open_pull_request(
        self, owner: str, repo: str, *, title: str, body: str, head: str, base: str
    ) -> str:
        data = self._unwrap(
            "open pull request",
            await self._request(
                "POST",
                f"/repos/{owner}/{repo}/pulls",
                json={"title": title, "body": body, "head": head, "base": base},
            ),
        )
        return data["html_url"]

    async def open_issue(
        self, owner: str, repo: str, *, title: str, body: str, labels: list[str] | None = None
    ) -> str:
        data = self._unwrap(
            "open issue",
            await self._request(
                "POST",
                f"/repos/{owner}/{repo}/issues",
                json={"title": title, "body": body, "labels": labels or []},
            ),
        )
        return data["html_url"]
