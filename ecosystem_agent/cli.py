"""Click CLI: loads config and secrets, builds collaborators, runs one sync pass."""

import asyncio
import logging
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, TeamConfig, load_config
from ecosystem_agent.alerts import LogAlertSink, SlackAlertSink
from ecosystem_agent.coordinator import run_once
from ecosystem_agent.github import GitHubClient
from ecosystem_agent.models import RunSummary
from ecosystem_agent.output import print_run_summary, save_report
from ecosystem_agent.providers.anthropic import AnthropicService
from ecosystem_agent.providers.base import AnsweringService
from ecosystem_agent.providers.gemini import GeminiService
from ecosystem_agent.providers.mnemo import MnemoService
from ecosystem_agent.providers.openai_provider import OpenAIService

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

SDK_BACKENDS: dict[str, type[AnsweringService]] = {
    "gemini": GeminiService,
    "openai": OpenAIService,
    "claude": AnthropicService,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _select_teams(teams: list[TeamConfig], names: tuple[str, ...]) -> list[TeamConfig]:
    """Keep configured order; ``names`` only filters."""
    if not names:
        return list(teams)
    wanted = {n.lower() for n in names}
    unknown = wanted - {t.name for t in teams}
    if unknown:
        raise click.BadParameter(f"unknown team(s): {', '.join(sorted(unknown))}", param_hint="--team")
    return [t for t in teams if t.name in wanted]


def _build_answerer(config: AppConfig, backend: str) -> AnsweringService:
    if backend == "mnemo":
        return MnemoService(config.mnemo)
    if backend not in SDK_BACKENDS:
        raise click.BadParameter(f"unknown backend '{backend}'", param_hint="--backend")
    if backend not in config.available_backends:
        model_cfg = config.models.get(backend)
        hint = model_cfg.api_key_env if model_cfg else "an API key"
        raise click.UsageError(f"Backend '{backend}' unavailable, set {hint} in .env")
    return SDK_BACKENDS[backend](config.models[backend])


async def _run(
    config: AppConfig,
    teams: list[TeamConfig],
    answerer: AnsweringService,
    token: str,
    webhook_url: str,
    dry_run: bool,
) -> RunSummary:
    alerts = SlackAlertSink(webhook_url) if webhook_url else LogAlertSink()
    try:
        async with GitHubClient(token) as github:
            return await run_once(
                teams,
                answerer=answerer,
                github=github,
                config=config,
                alerts=alerts,
                dry_run=dry_run,
            )
    finally:
        await answerer.aclose()


@click.command()
@click.option("--team", "team_names", multiple=True, help="Only process this team (repeatable)")
@click.option("--dry-run", is_flag=True, help="Run pipelines but skip commits, pull request and issues")
@click.option("--backend", default=None, help="Answering backend: mnemo, gemini, openai, claude (default: from config)")
@click.option("--output", "output_path", default=None, help="Status report directory (default: from config)")
@click.option("--settings", "settings_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="Alternative settings.yaml")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    team_names: tuple[str, ...],
    dry_run: bool,
    backend: str | None,
    output_path: str | None,
    settings_path: str | None,
    verbose: bool,
) -> None:
    """Ecosystem Agent -- sync the cross-team Q&A ledger and team docs.

    \b
    Examples:
      python -m ecosystem_agent.cli
      python -m ecosystem_agent.cli --dry-run --team de
      python -m ecosystem_agent.cli --backend gemini --verbose
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(settings_path)) if settings_path else load_config()
    except (FileNotFoundError, KeyError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    teams = _select_teams(config.teams, team_names)
    if not teams:
        console.print("[bold red]Error:[/bold red] No teams configured.")
        sys.exit(1)

    token = os.environ.get(config.defaults.github_token_env, "").strip()
    if not token and not dry_run:
        console.print(
            f"[bold red]Error:[/bold red] {config.defaults.github_token_env} is not set. "
            "Add it to .env or use --dry-run."
        )
        sys.exit(1)

    answerer = _build_answerer(config, backend or config.defaults.backend)
    webhook_url = os.environ.get(config.defaults.slack_webhook_env, "").strip()

    summary = asyncio.run(_run(config, teams, answerer, token, webhook_url, dry_run))

    display_names = {t.name: t.display_name for t in teams}
    print_run_summary(summary, display_names)
    report = save_report(summary, display_names, Path(output_path) if output_path else config.defaults.output_dir)
    console.print(f"\n[dim]Report saved to: {report}[/dim]")

    if any(not r.success for r in summary.results):
        sys.exit(1)


if __name__ == "__main__":
    main()
