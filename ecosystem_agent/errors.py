"""Exception taxonomy for the sync engine.

Malformed ledger blocks are not errors (they are skipped by the parser) and
per-item failures are recorded as strings on the team result, so only the
failures that cross a phase, commit or service boundary get a type here.
"""


class ExternalServiceError(Exception):
    """A collaborator call (answering service, host API, alert sink) failed."""


class PhaseFatalError(Exception):
    """A foundational failure that aborts the remaining phases for one team."""


class CommitConstructionError(Exception):
    """An object-graph step failed; the branch ref was not moved."""

    def __init__(self, repo: str, step: str, message: str) -> None:
        self.repo = repo
        self.step = step
        super().__init__(f"[{repo}] commit failed at {step}: {message}")
