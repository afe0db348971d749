"""Run orchestration: one pipeline per team, then commits, one pull request, failure issues.

Teams run strictly one after another. The ledger and each team repository
have a single writer per run; running pipelines concurrently would race on
them. Failures are contained at the smallest scope: a failed team gets an
issue in its own repository and never stops the other teams.
"""

import logging
import time
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Protocol

from config.config_loader import AppConfig, TeamConfig
from ecosystem_agent.commit import build_commit
from ecosystem_agent.errors import CommitConstructionError, ExternalServiceError
from ecosystem_agent.github import GitHubClient
from ecosystem_agent.models import PendingEdits, RunSummary, TeamResult
from ecosystem_agent.output import AGENT_TAG, commit_message, failure_issue_body, pull_request_body
from ecosystem_agent.pipeline import TeamPipeline
from ecosystem_agent.providers.base import AnsweringService

logger = logging.getLogger(__name__)

FAILURE_LABELS = ["autonomous-agent", "failure"]


class AlertSink(Protocol):
    async def notify(self, message: str) -> None: ...


def branch_name(prefix: str, today: date) -> str:
    return f"{prefix}/{today.isoformat()}"


async def _notify(alerts: AlertSink, message: str) -> None:
    try:
        await alerts.notify(message)
    except Exception as exc:
        logger.error("Alert delivery failed: %s", exc)


async def _open_failure_issue(
    github: GitHubClient, team: TeamConfig, result: TeamResult, today: date
) -> str | None:
    try:
        url = await github.open_issue(
            team.owner,
            team.repo,
            title=f"{AGENT_TAG} Failure for {team.display_name} - {today.isoformat()}",
            body=failure_issue_body(team.display_name, result),
            labels=FAILURE_LABELS,
        )
    except ExternalServiceError as exc:
        logger.error("Failed to create failure issue for %s: %s", team.name, exc)
        return None
    logger.info("Created failure issue: %s", url)
    return url


async def run_once(
    teams: list[TeamConfig],
    *,
    answerer: AnsweringService,
    github: GitHubClient,
    config: AppConfig,
    alerts: AlertSink,
    dry_run: bool = False,
    today: date | None = None,
    pipeline_factory: Callable[..., TeamPipeline] = TeamPipeline,
) -> RunSummary:
    """Run every team's pipeline once and land the results.

    Args:
        teams: Teams to process, in order. Results keep this order.
        answerer: Answering service; also loads the shared context once up front.
        github: Version-control host client.
        config: Loaded settings (ledger location, costs, prompts, branch naming).
        alerts: Sink notified when total cost exceeds the configured threshold.
        dry_run: Run pipelines but skip branches, commits, pull request and issues.
        today: Date used for branch names and log headings (defaults to today).
        pipeline_factory: Builds the per-team pipeline; same signature as TeamPipeline.

    Returns:
        RunSummary with one TeamResult per team.
    """
    start = time.monotonic()
    today = today or date.today()
    logger.info("Ecosystem sync started for %d team(s)%s", len(teams), " (dry run)" if dry_run else "")

    try:
        await answerer.ensure_loaded(config.mnemo.sources)
    except ExternalServiceError as exc:
        logger.error("Failed to load shared context: %s", exc)

    results: list[TeamResult] = []
    edits_by_team: dict[str, PendingEdits] = {}
    issues_created: list[str] = []

    for team in teams:
        logger.info("Processing team: %s", team.display_name)
        try:
            pipeline = pipeline_factory(team, answerer, github, config, today=today)
            result, edits = await pipeline.run()
            edits_by_team[team.name] = edits
        except Exception as exc:
            logger.error("Fatal error processing %s: %s", team.name, exc)
            result = TeamResult.failed(team.name, str(exc))
        results.append(result)

        if not result.success and not dry_run:
            url = await _open_failure_issue(github, team, result, today)
            if url:
                issues_created.append(url)

    teams_by_name = {t.name: t for t in teams}
    commits: dict[str, str] = {}
    branch = branch_name(config.defaults.branch_prefix, today)

    for result in results:
        edits = edits_by_team.get(result.team)
        if not (result.success and result.updated_paths and edits):
            continue
        team = teams_by_name[result.team]
        if dry_run:
            logger.info("Dry run: would commit %d file(s) to %s/%s", len(edits), team.repo, branch)
            continue
        try:
            commits[team.name] = await build_commit(
                github,
                team.owner,
                team.repo,
                branch,
                config.defaults.base_branch,
                edits,
                commit_message(team.display_name, result),
            )
        except CommitConstructionError as exc:
            logger.error("Failed to commit for %s: %s", team.name, exc)

    total_cost = sum(r.cost_estimate for r in results)

    pr_url: str | None = None
    committed = [r for r in results if r.team in commits]
    if committed:
        target = teams_by_name[committed[0].team]
        display_names = {t.name: t.display_name for t in teams}
        try:
            pr_url = await github.open_pull_request(
                target.owner,
                target.repo,
                title=f"{AGENT_TAG} Daily updates - {today.isoformat()}",
                body=pull_request_body(committed, display_names, total_cost),
                head=branch,
                base=config.defaults.base_branch,
            )
            logger.info("Created pull request: %s", pr_url)
        except ExternalServiceError as exc:
            logger.error("Failed to create pull request: %s", exc)
    elif not dry_run:
        logger.info("No changes committed, skipping pull request")

    threshold = config.defaults.cost_threshold
    if total_cost > threshold:
        logger.warning("Cost threshold exceeded: $%.2f > $%.2f", total_cost, threshold)
        await _notify(
            alerts,
            f"Ecosystem Agent cost alert: ${total_cost:.2f} (threshold: ${threshold:.2f})",
        )

    try:
        stats = await answerer.usage_stats()
        logger.info("Answering service usage: $%.4f, %d tokens", stats.cost, stats.tokens_used)
    except ExternalServiceError as exc:
        logger.warning("Could not read usage stats: %s", exc)

    duration = time.monotonic() - start
    logger.info("Ecosystem sync completed in %.2fs", duration)

    return RunSummary(
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        results=results,
        total_cost=total_cost,
        pr_url=pr_url,
        issues_created=issues_created,
        commits=commits,
        duration_sec=duration,
    )
