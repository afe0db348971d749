"""Atomic multi-file commits through the blob/tree/commit/ref object graph."""

import logging

from ecosystem_agent.errors import CommitConstructionError, ExternalServiceError
from ecosystem_agent.github import GitHubClient
from ecosystem_agent.models import PendingEdits

logger = logging.getLogger(__name__)


async def ensure_branch(client: GitHubClient, owner: str, repo: str, branch: str, baseline: str) -> bool:
    """Create ``branch`` from ``baseline`` unless it already exists.

    Returns True when the branch was created, False when an existing one is reused
    (e.g. a retried run on the same day).
    """
    if await client.branch_exists(owner, repo, branch):
        logger.info("Reusing existing branch %s/%s:%s", owner, repo, branch)
        return False
    await client.create_branch(owner, repo, branch, baseline)
    return True


async def build_commit(
    client: GitHubClient,
    owner: str,
    repo: str,
    branch: str,
    baseline: str,
    edits: PendingEdits,
    message: str,
) -> str:
    """Land every pending edit as exactly one commit on ``branch`` and return its sha.

    The ref update is the last call. Any earlier failure raises
    CommitConstructionError with the ref still on its previous commit, so no
    reader ever sees part of the change set. No step is retried here.

    Raises:
        ValueError: If ``edits`` is empty.
        CommitConstructionError: If any object-graph step fails.
    """
    if not edits:
        raise ValueError("build_commit needs at least one pending edit")

    full_repo = f"{owner}/{repo}"
    step = "ensure branch"
    try:
        await ensure_branch(client, owner, repo, branch, baseline)

        step = "resolve head"
        head_sha = await client.get_ref(owner, repo, branch)
        base_tree = await client.get_commit_tree(owner, repo, head_sha)

        entries: list[tuple[str, str]] = []
        for path, content in edits.items():
            step = f"create blob {path}"
            entries.append((path, await client.create_blob(owner, repo, content)))

        step = "create tree"
        tree_sha = await client.create_tree(owner, repo, base_tree, entries)

        step = "create commit"
        commit_sha = await client.create_commit(owner, repo, message, tree_sha, [head_sha])

        step = "update ref"
        await client.update_ref(owner, repo, branch, commit_sha)
    except (ExternalServiceError, KeyError, TypeError) as exc:
        raise CommitConstructionError(full_repo, step, str(exc)) from exc

    logger.info(
        "Committed %d file(s) to %s:%s as %s",
        len(entries), full_repo, branch, commit_sha[:7],
    )
    return commit_sha
