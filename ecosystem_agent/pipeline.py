"""Per-team pipeline: answer, review, check-updates, plan, readme-audit.

Each phase contains its own failures. Per-question failures in the answer and
review phases are recorded on the TeamResult and the loop moves on; the
single-query phases record their failure and end. Only a PhaseFatalError
(the ledger cannot be read at all) stops the remaining phases and marks the
team as failed.
"""

import logging
from datetime import date

from config.config_loader import AppConfig, TeamConfig
from ecosystem_agent.accumulator import insights_log, update_digest
from ecosystem_agent.errors import ExternalServiceError, PhaseFatalError
from ecosystem_agent.github import GitHubClient, GitHubError
from ecosystem_agent.ledger import apply_answer, parse_ledger
from ecosystem_agent.models import Err, PendingEdits, Question, QuestionStatus, TeamResult
from ecosystem_agent.providers.base import AnsweringService, ServiceError

logger = logging.getLogger(__name__)

README_CURRENT_PHRASE = "no updates needed"


class TeamPipeline:
    """Runs the five phases for one team and owns that team's pending edits."""

    def __init__(
        self,
        team: TeamConfig,
        answerer: AnsweringService,
        github: GitHubClient,
        config: AppConfig,
        *,
        today: date | None = None,
    ) -> None:
        self._team = team
        self._answerer = answerer
        self._github = github
        self._config = config
        self._today = today or date.today()
        self._edits = PendingEdits()
        self._result = TeamResult(team=team.name)
        self._insights = insights_log(config.prompts.insights_header, team.display_name)
        self._updates = update_digest(config.prompts.updates_header, team.display_name)

    async def run(self) -> tuple[TeamResult, PendingEdits]:
        """Run all phases in order and hand back the result and pending edits."""
        logger.info("Starting pipeline for team: %s", self._team.display_name)
        phases = (
            self.answer_questions,
            self.review_answers,
            self.check_updates,
            self.update_plan,
            self.audit_readme,
        )
        try:
            for phase in phases:
                await phase()
            self._result.success = True
            logger.info(
                "Pipeline completed for %s (%d error(s))",
                self._team.display_name, len(self._result.errors),
            )
        except PhaseFatalError as exc:
            self._result.errors.append(str(exc))
            logger.error("Pipeline failed for %s: %s", self._team.display_name, exc)
        return self._result, self._edits

    # --- phases -------------------------------------------------------------

    async def answer_questions(self) -> None:
        """Answer every Open question addressed to this team and queue the updated ledger."""
        team = self._team
        questions = [
            q for q in await self._questions()
            if q.asked_to == team.name and q.status is QuestionStatus.OPEN
        ]
        logger.info("Found %d open question(s) for %s", len(questions), team.name)

        for question in questions:
            try:
                logger.info("Answering [%s] %s", question.id, question.title)
                answer = await self._ask(
                    self._config.prompts.answer.format(
                        display_name=team.display_name,
                        title=question.title,
                        body=question.body,
                        context=question.context or "None provided",
                    )
                )
                # Re-read so a second answer in this run builds on the first
                current = await self._load_ledger()
                updated = apply_answer(
                    current,
                    question.id,
                    answer.strip(),
                    team.display_name,
                    self._today,
                    waiting_markers=(team.waiting_marker,),
                )
                if updated == current:
                    self._item_error(f"Failed to answer {question.id}: answer placeholder not found")
                    continue
                self._stage(self._config.ledger.path, updated)
                self._result.questions_answered += 1
                self._result.cost_estimate += self._config.costs.answer
            except ExternalServiceError as exc:
                self._item_error(f"Failed to answer {question.id}: {exc}")

    async def review_answers(self) -> None:
        """Turn answers to this team's own questions into entries in the insights log."""
        team = self._team
        questions = [
            q for q in await self._questions()
            if q.asked_by == team.name and q.status is QuestionStatus.ANSWERED and q.answer_body
        ]
        logger.info("Found %d answered question(s) from %s", len(questions), team.name)

        path = self._config.logs.insights_path
        for question in questions:
            try:
                logger.info("Reviewing answer to [%s] %s", question.id, question.title)
                insights = await self._ask(
                    self._config.prompts.review.format(
                        display_name=team.display_name,
                        title=question.title,
                        body=question.body,
                        answer=question.answer_body,
                    )
                )
                existing = await self._read_team_doc(path)
                self._stage(path, self._insights.append(existing, question.id, insights, today=self._today))
                self._result.answers_reviewed += 1
                self._result.cost_estimate += self._config.costs.review
            except ExternalServiceError as exc:
                self._item_error(f"Failed to process answer {question.id}: {exc}")

    async def check_updates(self) -> None:
        """Ask for relevant upstream guide changes; log anything substantive."""
        logger.info("Checking guide updates for %s", self._team.name)
        path = self._config.logs.updates_path
        try:
            updates = await self._ask(
                self._config.prompts.check_updates.format(display_name=self._team.display_name)
            )
            if len(updates.strip()) <= self._config.defaults.min_update_length:
                logger.info("No substantive guide updates for %s", self._team.name)
                return
            existing = await self._read_team_doc(path)
            self._stage(path, self._updates.append(existing, "updates", updates, today=self._today))
            self._result.updates_processed += 1
            self._result.cost_estimate += self._config.costs.check_updates
        except ExternalServiceError as exc:
            self._item_error(f"Failed to check updates: {exc}")

    async def update_plan(self) -> None:
        """Generate the next-session plan and stage it verbatim."""
        logger.info("Updating action plan for %s", self._team.name)
        try:
            plan = await self._ask(
                self._config.prompts.plan.format(display_name=self._team.display_name)
            )
        except ExternalServiceError as exc:
            self._item_error(f"Failed to update action plan: {exc}")
            return
        self._stage(self._config.logs.plan_path, plan.strip() + "\n")
        self._result.plan_updated = True
        self._result.cost_estimate += self._config.costs.plan

    async def audit_readme(self) -> None:
        """Flag the README when the audit does not say it is current."""
        logger.info("Reviewing README for %s", self._team.name)
        try:
            review = await self._ask(
                self._config.prompts.readme.format(display_name=self._team.display_name)
            )
        except ExternalServiceError as exc:
            self._item_error(f"Failed to review README: {exc}")
            return
        if README_CURRENT_PHRASE not in review.lower():
            self._result.readme_needs_update = True
            logger.info("README for %s needs updates", self._team.name)
        else:
            logger.info("README for %s is up to date", self._team.name)
        self._result.cost_estimate += self._config.costs.readme

    # --- helpers ------------------------------------------------------------

    async def _ask(self, prompt: str) -> str:
        """Ask the answering service; any failure surfaces as a ServiceError."""
        try:
            return await self._answerer.ask(prompt)
        except ExternalServiceError:
            raise
        except Exception as exc:
            raise ServiceError(self._answerer.name(), f"Unexpected error: {exc}") from exc

    async def _load_ledger(self) -> str:
        """Current ledger text: this run's pending copy if any, else a fresh read."""
        ledger = self._config.ledger
        pending = self._edits.get(ledger.path)
        if pending is not None:
            return pending
        result = await self._github.get_file_contents(ledger.owner, ledger.repo, ledger.path, ledger.ref)
        if isinstance(result, Err):
            raise PhaseFatalError(f"Failed to load ledger {ledger.path}: {result.message}")
        return result.value

    async def _questions(self) -> list[Question]:
        return parse_ledger(await self._load_ledger(), (self._team.waiting_marker,))

    async def _read_team_doc(self, path: str) -> str | None:
        """Pending copy, else the file on the base branch, else None when it does not exist yet."""
        pending = self._edits.get(path)
        if pending is not None:
            return pending
        team = self._team
        result = await self._github.get_file_contents(
            team.owner, team.repo, path, self._config.defaults.base_branch
        )
        if isinstance(result, Err):
            if result.kind == "not_found":
                return None
            raise GitHubError(f"read {path}", result)
        return result.value

    def _stage(self, path: str, content: str) -> None:
        self._edits.set(path, content)
        self._result.mark_updated(path)

    def _item_error(self, message: str) -> None:
        self._result.errors.append(message)
        logger.error(message)
