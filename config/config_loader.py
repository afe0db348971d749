"""Load settings.yaml into typed dataclasses. Reports which answering backends have keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

# Backends that authenticate on their own side and never need a local key
_KEYLESS_BACKENDS = {"mnemo"}


@dataclass
class TeamConfig:
    name: str
    display_name: str
    repo: str
    waiting_marker: str
    owner: str = ""


@dataclass
class LedgerConfig:
    repo: str
    path: str
    ref: str = "main"
    owner: str = ""


@dataclass
class LogPaths:
    insights_path: str
    updates_path: str
    plan_path: str


@dataclass
class CostTable:
    answer: float
    review: float
    check_updates: float
    plan: float
    readme: float


@dataclass
class MnemoConfig:
    base_url: str
    alias: str
    ttl_sec: int
    timeout_sec: int
    max_tokens: int
    temperature: float
    system_instruction: str
    sources: list[str] = field(default_factory=list)


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    answer: str
    review: str
    check_updates: str
    plan: str
    readme: str
    insights_header: str
    updates_header: str


@dataclass
class DefaultsConfig:
    backend: str
    owner: str
    base_branch: str
    branch_prefix: str
    output_dir: Path
    cost_threshold: float
    min_update_length: int = 10
    github_token_env: str = "GITHUB_TOKEN"
    slack_webhook_env: str = "SLACK_WEBHOOK_URL"


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    ledger: LedgerConfig
    logs: LogPaths
    costs: CostTable
    mnemo: MnemoConfig
    prompts: PromptsConfig
    teams: list[TeamConfig] = field(default_factory=list)
    models: dict[str, ModelConfig] = field(default_factory=dict)
    available_backends: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, KeyError if a required
    section is absent. Missing model API keys are logged, not raised; callers
    check available_backends.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        backend=str(defaults_raw.get("backend", "mnemo")),
        owner=str(defaults_raw["owner"]),
        base_branch=str(defaults_raw.get("base_branch", "main")),
        branch_prefix=str(defaults_raw.get("branch_prefix", "autonomous-agent")),
        output_dir=Path(defaults_raw.get("output_dir", "./output")),
        cost_threshold=float(defaults_raw["cost_threshold"]),
        min_update_length=int(defaults_raw.get("min_update_length", 10)),
        github_token_env=str(defaults_raw.get("github_token_env", "GITHUB_TOKEN")),
        slack_webhook_env=str(defaults_raw.get("slack_webhook_env", "SLACK_WEBHOOK_URL")),
    )

    ledger_raw = raw["ledger"]
    ledger = LedgerConfig(
        repo=str(ledger_raw["repo"]),
        path=str(ledger_raw["path"]),
        ref=str(ledger_raw.get("ref", defaults.base_branch)),
        owner=str(ledger_raw.get("owner", defaults.owner)),
    )

    logs = LogPaths(**{k: str(v) for k, v in raw["logs"].items()})
    costs = CostTable(**{k: float(v) for k, v in raw["costs"].items()})

    mnemo_raw = raw["mnemo"]
    mnemo = MnemoConfig(
        base_url=str(mnemo_raw["base_url"]).rstrip("/"),
        alias=str(mnemo_raw["alias"]),
        ttl_sec=int(mnemo_raw.get("ttl_sec", 86400)),
        timeout_sec=int(mnemo_raw.get("timeout_sec", 120)),
        max_tokens=int(mnemo_raw.get("max_tokens", 2000)),
        temperature=float(mnemo_raw.get("temperature", 0.3)),
        system_instruction=str(mnemo_raw.get("system_instruction", "")).strip(),
        sources=[str(s) for s in mnemo_raw.get("sources", [])],
    )

    prompts = PromptsConfig(**{k: str(v) for k, v in raw["prompts"].items()})

    teams = [
        TeamConfig(
            name=str(t["name"]).lower(),
            display_name=str(t.get("display_name", t["name"])),
            repo=str(t.get("repo", t["name"])),
            waiting_marker=str(t["waiting_marker"]),
            owner=str(t.get("owner", defaults.owner)),
        )
        for t in raw.get("teams", [])
    ]

    models: dict[str, ModelConfig] = {}
    available_backends: set[str] = set(_KEYLESS_BACKENDS)

    for backend_name, model_raw in (raw.get("models") or {}).items():
        model_cfg = ModelConfig(
            name=backend_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[backend_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_backends.add(backend_name)
            logger.debug("Backend available: %s", backend_name)
        else:
            logger.debug(
                "Backend skipped (no API key): %s (set %s in .env)",
                backend_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        ledger=ledger,
        logs=logs,
        costs=costs,
        mnemo=mnemo,
        prompts=prompts,
        teams=teams,
        models=models,
        available_backends=available_backends,
    )
