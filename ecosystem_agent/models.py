"""Pure dataclasses for the ledger sync pipeline. No I/O, no deps."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class QuestionStatus(str, Enum):
    """Ledger status values; the value is the exact text written in the ledger."""

    OPEN = "🟡 Open"
    ANSWERED = "🟢 Answered"
    CLOSED = "✅ Closed"
    BLOCKED = "🔴 Blocked"

    @classmethod
    def from_glyph(cls, glyph: str) -> "QuestionStatus | None":
        for status in cls:
            if status.value.startswith(glyph):
                return status
        return None


@dataclass
class Question:
    id: str
    asked_by: str
    asked_to: str
    title: str
    body: str = ""
    status: QuestionStatus | None = None
    context: str | None = None
    answer_body: str | None = None
    answered_by: str | None = None
    answered_at: str | None = None


class PendingEdits:
    """Not-yet-committed file contents for one team run, keyed by repo path.

    Last write wins; insertion order of first write is kept.
    """

    def __init__(self) -> None:
        self._files: dict[str, str] = {}

    def set(self, path: str, content: str) -> None:
        self._files[path] = content

    def get(self, path: str) -> str | None:
        return self._files.get(path)

    def paths(self) -> list[str]:
        return list(self._files)

    def items(self) -> list[tuple[str, str]]:
        return list(self._files.items())

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __bool__(self) -> bool:
        return bool(self._files)


@dataclass
class TeamResult:
    team: str
    success: bool = False
    questions_answered: int = 0
    answers_reviewed: int = 0
    updates_processed: int = 0
    updated_paths: list[str] = field(default_factory=list)
    plan_updated: bool = False
    readme_needs_update: bool = False
    cost_estimate: float = 0.0
    errors: list[str] = field(default_factory=list)

    def mark_updated(self, path: str) -> None:
        if path not in self.updated_paths:
            self.updated_paths.append(path)

    @classmethod
    def failed(cls, team: str, message: str) -> "TeamResult":
        return cls(team=team, success=False, errors=[message])


@dataclass
class RunSummary:
    timestamp: str
    results: list[TeamResult]
    total_cost: float
    pr_url: str | None = None
    issues_created: list[str] = field(default_factory=list)
    commits: dict[str, str] = field(default_factory=dict)  # team -> commit sha
    duration_sec: float = 0.0


@dataclass
class UsageStats:
    cost: float = 0.0
    tokens_used: int = 0


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    kind: str              # "not_found", "http", "network", "decode"
    message: str
    status_code: int | None = None
