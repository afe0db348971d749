"""Integration tests: real GitHub and Mnemo calls, read-only. Requires GITHUB_TOKEN in .env."""

import os

import pytest
from dotenv import load_dotenv

load_dotenv()

pytestmark = pytest.mark.integration

if not os.environ.get("GITHUB_TOKEN", "").strip():
    pytestmark = pytest.mark.skip(reason="GITHUB_TOKEN not set")


async def test_ledger_fetch_and_parse():
    """Fetch the live ledger and parse it; every parsed question has the required fields."""
    from config.config_loader import load_config
    from ecosystem_agent.github import GitHubClient
    from ecosystem_agent.ledger import parse_ledger
    from ecosystem_agent.models import Ok

    config = load_config()
    async with GitHubClient(os.environ["GITHUB_TOKEN"]) as github:
        result = await github.get_file_contents(
            config.ledger.owner, config.ledger.repo, config.ledger.path, config.ledger.ref
        )
    assert isinstance(result, Ok), result

    markers = [t.waiting_marker for t in config.teams]
    questions = parse_ledger(result.value, markers)
    for q in questions:
        assert q.id.startswith("Q-")
        assert q.asked_by and q.asked_to


async def test_dry_run_end_to_end(tmp_path):
    """Full pass with --dry-run semantics: pipelines run, nothing is written."""
    from config.config_loader import load_config
    from ecosystem_agent.alerts import LogAlertSink
    from ecosystem_agent.coordinator import run_once
    from ecosystem_agent.github import GitHubClient
    from ecosystem_agent.providers.mnemo import MnemoService

    config = load_config()
    answerer = MnemoService(config.mnemo)
    try:
        async with GitHubClient(os.environ["GITHUB_TOKEN"]) as github:
            summary = await run_once(
                config.teams[:1],
                answerer=answerer,
                github=github,
                config=config,
                alerts=LogAlertSink(),
                dry_run=True,
            )
    finally:
        await answerer.aclose()

    assert len(summary.results) == 1
    assert summary.commits == {}
    assert summary.pr_url is None
