"""Shared pytest fixtures and test doubles."""

import hashlib
import itertools
from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    CostTable,
    DefaultsConfig,
    LedgerConfig,
    LogPaths,
    MnemoConfig,
    PromptsConfig,
    TeamConfig,
)
from ecosystem_agent.github import GitHubError
from ecosystem_agent.models import Err, Ok, UsageStats
from ecosystem_agent.providers.base import AnsweringService

LEDGER_PATH = "docs/CROSS-TEAM-QA-BOARD.md"
TODAY = date(2026, 10, 19)

SAMPLE_LEDGER = """# Cross-Team Q&A Board

Ask questions below.

### [Q-001] How do workers authenticate to DE?

**From**: nexus → **To**: de
**Status**: 🟡 Open
**Question**: Which token should Nexus send?
**Context**: Migrating the inbox worker.
**Answer**: _Waiting for DE response_

---

### [Q-002] Cache TTL for Mnemo aliases?

**From**: de → **To**: mnemo
**Status**: 🟢 Answered
**Question**: What TTL should we request?
**Answer**: Use 24 hours for shared aliases.

**Answered**: 2026-10-01 by Mnemo (Autonomous Agent)

---
"""


@pytest.fixture
def sample_teams() -> list[TeamConfig]:
    return [
        TeamConfig(name="nexus", display_name="Nexus", repo="nexus",
                   waiting_marker="_Waiting for Nexus response_", owner="acme"),
        TeamConfig(name="de", display_name="DE", repo="distributed-electrons",
                   waiting_marker="_Waiting for DE response_", owner="acme"),
        TeamConfig(name="mnemo", display_name="Mnemo", repo="mnemo",
                   waiting_marker="_Waiting for Mnemo response_", owner="acme"),
    ]


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        answer="ANSWER for {display_name}: {title} | {body} | {context}",
        review="REVIEW for {display_name}: {title} | {body} | {answer}",
        check_updates="UPDATES for {display_name}",
        plan="PLAN for {display_name}",
        readme="README for {display_name}",
        insights_header="# Q&A Insights for {display_name}\n\n---\n",
        updates_header="# Guide Updates for {display_name}\n\n---\n",
    )


@pytest.fixture
def sample_app_config(tmp_path: Path, sample_teams, sample_prompts_config) -> AppConfig:
    return AppConfig(
        defaults=DefaultsConfig(
            backend="mnemo",
            owner="acme",
            base_branch="main",
            branch_prefix="autonomous-agent",
            output_dir=tmp_path / "output",
            cost_threshold=50.0,
            min_update_length=10,
        ),
        ledger=LedgerConfig(repo="nexus", path=LEDGER_PATH, ref="main", owner="acme"),
        logs=LogPaths(
            insights_path="docs/QA-INSIGHTS.md",
            updates_path="docs/MCP-UPDATES.md",
            plan_path="docs/ACTION-PLAN.md",
        ),
        costs=CostTable(answer=0.02, review=0.02, check_updates=0.03, plan=0.03, readme=0.02),
        mnemo=MnemoConfig(
            base_url="https://mnemo.test",
            alias="ecosystem-agent-shared",
            ttl_sec=86400,
            timeout_sec=5,
            max_tokens=2000,
            temperature=0.3,
            system_instruction="Help.",
            sources=["https://github.com/acme/nexus"],
        ),
        prompts=sample_prompts_config,
        teams=sample_teams,
    )


class MockAnswerer(AnsweringService):
    """Test double AnsweringService.

    ``responses`` maps a prompt prefix (e.g. "ANSWER", "README") to the text
    returned; anything else gets ``default``.
    """

    def __init__(self, responses: dict[str, str] | None = None, default: str = "No updates needed") -> None:
        super().__init__()
        self.responses = responses or {}
        self.default = default
        self.prompts: list[str] = []
        self.ensure_loaded = AsyncMock(return_value=None)  # type: ignore[assignment]
        self.fail_prefixes: dict[str, Exception] = {}

    def name(self) -> str:
        return "mock"

    async def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        for prefix, exc in self.fail_prefixes.items():
            if prompt.startswith(prefix):
                raise exc
        for prefix, text in self.responses.items():
            if prompt.startswith(prefix):
                return text
        return self.default

    async def usage_stats(self) -> UsageStats:
        return UsageStats(cost=0.1, tokens_used=100)


class FakeGitHub:
    """In-memory object graph with the same async surface as GitHubClient.

    ``files`` maps "owner/repo" to the files on its ``main`` branch.
    Add a step name to ``fail_on`` ("create blob", "create tree",
    "create commit", "update ref", "open issue", ...) to make it fail.
    """

    def __init__(self, files: dict[str, dict[str, str]] | None = None) -> None:
        self._ids = itertools.count(1)
        self.blobs: dict[str, str] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, dict] = {}
        self.refs: dict[tuple[str, str], str] = {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self.unreachable: set[str] = set()
        self.issues: list[dict] = []
        self.pulls: list[dict] = []
        for repo, tree_files in (files or {}).items():
            tree_sha = self._store_tree({p: self._store_blob(c) for p, c in tree_files.items()})
            self.refs[(repo, "main")] = self._store_commit(tree_sha, [], "initial")

    def _sha(self, kind: str) -> str:
        return hashlib.sha1(f"{kind}-{next(self._ids)}".encode()).hexdigest()

    def _store_blob(self, content: str) -> str:
        sha = self._sha("blob")
        self.blobs[sha] = content
        return sha

    def _store_tree(self, entries: dict[str, str]) -> str:
        sha = self._sha("tree")
        self.trees[sha] = dict(entries)
        return sha

    def _store_commit(self, tree: str, parents: list[str], message: str) -> str:
        sha = self._sha("commit")
        self.commits[sha] = {"tree": tree, "parents": parents, "message": message}
        return sha

    def _step(self, step: str) -> None:
        self.calls.append(step)
        if step in self.fail_on:
            raise GitHubError(step, Err("http", f"{step} exploded", 500))

    # helpers for assertions
    def tree_at(self, repo: str, branch: str) -> dict[str, str]:
        return self.trees[self.commits[self.refs[(repo, branch)]]["tree"]]

    def read(self, repo: str, branch: str, path: str) -> str:
        return self.blobs[self.tree_at(repo, branch)[path]]

    # GitHubClient surface
    async def get_file_contents(self, owner, repo, path, ref="main"):
        key = f"{owner}/{repo}"
        self.calls.append("get file")
        if key in self.unreachable:
            return Err("network", f"{key} unreachable")
        head = self.refs.get((key, ref))
        if head is None:
            return Err("not_found", f"{key}@{ref} not found", 404)
        blob = self.trees[self.commits[head]["tree"]].get(path)
        if blob is None:
            return Err("not_found", f"{path} not found", 404)
        return Ok(self.blobs[blob])

    async def branch_exists(self, owner, repo, branch):
        self._step("branch exists")
        return (f"{owner}/{repo}", branch) in self.refs

    async def get_ref(self, owner, repo, branch):
        self._step("get ref")
        try:
            return self.refs[(f"{owner}/{repo}", branch)]
        except KeyError:
            raise GitHubError("get ref", Err("not_found", branch, 404)) from None

    async def create_branch(self, owner, repo, branch, from_ref="main"):
        self._step("create branch")
        head = self.refs[(f"{owner}/{repo}", from_ref)]
        self.refs[(f"{owner}/{repo}", branch)] = head
        return head

    async def get_commit_tree(self, owner, repo, commit_sha):
        self._step("get commit")
        return self.commits[commit_sha]["tree"]

    async def create_blob(self, owner, repo, content):
        self._step("create blob")
        return self._store_blob(content)

    async def create_tree(self, owner, repo, base_tree, entries):
        self._step("create tree")
        merged = dict(self.trees[base_tree])
        merged.update(dict(entries))
        return self._store_tree(merged)

    async def create_commit(self, owner, repo, message, tree, parents):
        self._step("create commit")
        return self._store_commit(tree, list(parents), message)

    async def update_ref(self, owner, repo, branch, sha):
        self._step("update ref")
        self.refs[(f"{owner}/{repo}", branch)] = sha

    async def open_pull_request(self, owner, repo, *, title, body, head, base):
        self._step("open pull request")
        self.pulls.append({"repo": f"{owner}/{repo}", "title": title, "body": body, "head": head, "base": base})
        return f"https://github.test/{owner}/{repo}/pull/{len(self.pulls)}"

    async def open_issue(self, owner, repo, *, title, body, labels=None):
        self._step("open issue")
        self.issues.append({"repo": f"{owner}/{repo}", "title": title, "body": body, "labels": labels})
        return f"https://github.test/{owner}/{repo}/issues/{len(self.issues)}"


@pytest.fixture
def mock_answerer() -> MockAnswerer:
    return MockAnswerer(
        responses={
            "ANSWER": "Send the shared service token.",
            "REVIEW": "Update ROADMAP.md with the TTL decision.",
            "UPDATES": "Guide 12 section 3 was updated with new OAuth guidance.",
            "PLAN": "# Action Plan for Next Session\n\n## High Priority\n- [ ] Ship auth",
        },
        default="No updates needed",
    )


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub(
        {
            "acme/nexus": {LEDGER_PATH: SAMPLE_LEDGER, "README.md": "# Nexus\n"},
            "acme/distributed-electrons": {"README.md": "# DE\n"},
            "acme/mnemo": {"README.md": "# Mnemo\n"},
        }
    )
