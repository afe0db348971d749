"""Tests for ecosystem_agent/commit.py against the in-memory object graph."""

import pytest

from ecosystem_agent.commit import build_commit, ensure_branch
from ecosystem_agent.errors import CommitConstructionError
from ecosystem_agent.models import PendingEdits
from tests.conftest import FakeGitHub

REPO = "acme/de"
BRANCH = "autonomous-agent/2026-10-19"


@pytest.fixture
def host() -> FakeGitHub:
    return FakeGitHub({REPO: {"README.md": "# DE\n", "docs/A.md": "old A\n"}})


async def test_k_files_make_one_commit_differing_in_k_entries(host):
    edits = PendingEdits()
    edits.set("docs/A.md", "new A\n")
    edits.set("docs/B.md", "new B\n")
    edits.set("docs/C.md", "new C\n")
    commits_before = len(host.commits)

    sha = await build_commit(host, "acme", "de", BRANCH, "main", edits, "sync")

    assert len(host.commits) == commits_before + 1
    assert host.refs[(REPO, BRANCH)] == sha

    commit = host.commits[sha]
    parent = host.commits[commit["parents"][0]]
    new_tree, old_tree = host.trees[commit["tree"]], host.trees[parent["tree"]]
    changed = {p for p in set(new_tree) | set(old_tree) if new_tree.get(p) != old_tree.get(p)}
    assert changed == {"docs/A.md", "docs/B.md", "docs/C.md"}
    assert host.read(REPO, BRANCH, "docs/B.md") == "new B\n"
    assert host.read(REPO, BRANCH, "README.md") == "# DE\n"
    assert commit["message"] == "sync"


async def test_ref_update_is_the_last_call(host):
    edits = PendingEdits()
    edits.set("docs/A.md", "x")
    await build_commit(host, "acme", "de", BRANCH, "main", edits, "sync")
    assert host.calls[-1] == "update ref"
    assert host.calls.count("create commit") == 1


@pytest.mark.parametrize("step", ["create blob", "create tree", "create commit", "update ref"])
async def test_failure_leaves_branch_on_prior_commit(host, step):
    edits = PendingEdits()
    edits.set("docs/A.md", "x")
    edits.set("docs/B.md", "y")
    await ensure_branch(host, "acme", "de", BRANCH, "main")
    prior = host.refs[(REPO, BRANCH)]
    host.fail_on.add(step)

    with pytest.raises(CommitConstructionError) as exc_info:
        await build_commit(host, "acme", "de", BRANCH, "main", edits, "sync")

    assert exc_info.value.step.startswith(step)
    assert exc_info.value.repo == REPO
    assert host.refs[(REPO, BRANCH)] == prior
    # exactly one attempt at the failing step
    assert host.calls.count(step) == 1


async def test_existing_branch_is_reused(host):
    edits = PendingEdits()
    edits.set("docs/A.md", "first")
    first = await build_commit(host, "acme", "de", BRANCH, "main", edits, "run 1")

    edits.set("docs/A.md", "second")
    second = await build_commit(host, "acme", "de", BRANCH, "main", edits, "run 2")

    assert host.calls.count("create branch") == 1
    assert host.commits[second]["parents"] == [first]
    assert host.read(REPO, BRANCH, "docs/A.md") == "second"
    assert host.read(REPO, "main", "docs/A.md") == "old A\n"


async def test_ensure_branch_reports_creation(host):
    assert await ensure_branch(host, "acme", "de", BRANCH, "main") is True
    assert await ensure_branch(host, "acme", "de", BRANCH, "main") is False


async def test_empty_edits_rejected_before_any_call(host):
    with pytest.raises(ValueError):
        await build_commit(host, "acme", "de", BRANCH, "main", PendingEdits(), "sync")
    assert host.calls == []
