"""Text for commits, pull requests and issues; Rich console table and markdown status report."""

import logging
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ecosystem_agent.models import RunSummary, TeamResult

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

AGENT_TAG = "[Autonomous Agent]"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _now_iso(now: datetime | None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")


def commit_message(display_name: str, result: TeamResult, now: datetime | None = None) -> str:
    lines = [
        f"{AGENT_TAG} {display_name} updates",
        "",
        f"- Questions answered: {result.questions_answered}",
        f"- Answers reviewed: {result.answers_reviewed}",
        f"- Docs updated: {', '.join(result.updated_paths) or 'None'}",
        f"- Guide updates processed: {result.updates_processed}",
        f"- Action plan updated: {_yes_no(result.plan_updated)}",
        f"- README needs update: {_yes_no(result.readme_needs_update)}",
        "",
        f"Generated at: {_now_iso(now)}",
    ]
    return "\n".join(lines) + "\n"


def pull_request_body(
    results: list[TeamResult],
    display_names: dict[str, str],
    total_cost: float,
    now: datetime | None = None,
) -> str:
    """Aggregate per-team statistics for the single review request of a run."""
    lines = [
        "## Autonomous Agent Updates",
        "",
        "Automated updates from the daily ecosystem sync run.",
        "",
    ]
    for r in results:
        lines += [
            f"### {display_names.get(r.team, r.team)}",
            "",
            f"- Questions answered: {r.questions_answered}",
            f"- Answers reviewed: {r.answers_reviewed}",
            f"- Docs updated: {len(r.updated_paths)} file(s)",
            f"- Guide updates processed: {r.updates_processed}",
            f"- Action plan: {'Updated' if r.plan_updated else 'No changes'}",
            f"- README: {'Needs update' if r.readme_needs_update else 'Current'}",
            "",
        ]
    lines += [
        "### Cost Summary",
        "",
        f"Total estimated cost: ${total_cost:.4f}",
        "",
        "---",
        f"Generated at: {_now_iso(now)}",
    ]
    return "\n".join(lines) + "\n"


def failure_issue_body(display_name: str, result: TeamResult, now: datetime | None = None) -> str:
    errors = "\n".join(f"- {e}" for e in result.errors) or "- (no message)"
    return f"""## Agent Execution Failed

**Team**: {display_name}
**Timestamp**: {_now_iso(now)}

### Errors

{errors}

### Partial Results

- Questions Answered: {result.questions_answered}
- Answers Reviewed: {result.answers_reviewed}
- Docs Updated: {', '.join(result.updated_paths) or 'None'}
- Guide Updates Processed: {result.updates_processed}
- Action Plan Updated: {_yes_no(result.plan_updated)}
- README Needs Update: {_yes_no(result.readme_needs_update)}

### Next Steps

1. Review error messages above
2. Check if any manual intervention is needed
3. Fix underlying issues
4. Agent will retry on next scheduled run
"""


def print_run_summary(summary: RunSummary, display_names: dict[str, str]) -> None:
    table = Table(title=f"Ecosystem sync {summary.timestamp}")
    table.add_column("Team")
    table.add_column("Status")
    table.add_column("Answered", justify="right")
    table.add_column("Reviewed", justify="right")
    table.add_column("Docs", justify="right")
    table.add_column("Commit")
    table.add_column("Errors", justify="right")
    for r in summary.results:
        status = "[green]OK[/green]" if r.success else "[red]FAIL[/red]"
        if r.success and r.errors:
            status = "[yellow]OK*[/yellow]"
        table.add_row(
            display_names.get(r.team, r.team),
            status,
            str(r.questions_answered),
            str(r.answers_reviewed),
            str(len(r.updated_paths)),
            summary.commits.get(r.team, "")[:7],
            str(len(r.errors)),
        )
    console.print(table)
    console.print(f"Total estimated cost: ${summary.total_cost:.2f} | Duration: {summary.duration_sec:.1f}s")
    if summary.pr_url:
        console.print(f"Pull request: {summary.pr_url}")
    for url in summary.issues_created:
        console.print(f"[red]Issue:[/red] {url}")


def save_report(summary: RunSummary, display_names: dict[str, str], output_dir: Path) -> Path:
    """Write the run's status report as markdown and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{stamp}_run-report.md"

    ok_count = sum(1 for r in summary.results if not r.errors)
    status_text = "Completed successfully" if ok_count == len(summary.results) else "Completed with errors"

    lines: list[str] = [
        "# Ecosystem Agent Status Report",
        "",
        f"**Run:** {summary.timestamp}",
        f"**Status:** {status_text}",
        f"**Teams OK:** {ok_count}/{len(summary.results)}",
        f"**Estimated cost:** ${summary.total_cost:.2f}",
        f"**Duration:** {summary.duration_sec:.1f}s",
        f"**Pull request:** {summary.pr_url or 'None (no changes to commit)'}",
        "",
        "---",
        "",
    ]
    for r in summary.results:
        lines += [
            f"## {display_names.get(r.team, r.team)}",
            "",
            f"- Questions Answered: {r.questions_answered}",
            f"- Answers Reviewed: {r.answers_reviewed}",
            f"- Docs Updated: {', '.join(r.updated_paths) or 'None'}",
            f"- Guide Updates: {r.updates_processed}",
            f"- Action Plan: {'Updated' if r.plan_updated else 'No changes'}",
            f"- README: {'Needs update' if r.readme_needs_update else 'Current'}",
        ]
        if r.team in summary.commits:
            lines.append(f"- Commit: {summary.commits[r.team]}")
        if r.errors:
            lines.append(f"- Errors: {'; '.join(r.errors)}")
        lines.append("")

    if summary.issues_created:
        lines += ["## Issues", ""] + [f"- {url}" for url in summary.issues_created] + [""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Status report saved to: %s", filepath)
    return filepath
