"""Cross-team Q&A ledger: parse markdown blocks into Questions, write answers in place.

A ledger entry looks like::

    ### [Q-001] How do workers authenticate?

    **From**: nexus → **To**: de
    **Status**: 🟡 Open
    **Question**: Which token do we send?
    **Answer**: _Waiting for DE response_

Blocks that are malformed or half-written (no From/To line) are skipped
silently; other teams edit the ledger concurrently and that is expected.
"""

import logging
import re
from datetime import date

from ecosystem_agent.models import Question, QuestionStatus

logger = logging.getLogger(__name__)

WAITING_PREFIX = "_Waiting"

# Suffix is captured loosely so headers without digits still delimit a block
_HEADER_RE = re.compile(r"^###\s+\[Q-([^\]\n]*)\][ \t]*(.*)$", re.MULTILINE)
_ENTRY_START_RE = re.compile(r"^###\s+\[Q-", re.MULTILINE)
_FROM_TO_RE = re.compile(r"\*\*From\*\*:\s*(\w+)\s*→\s*\*\*To\*\*:\s*(\w+)")
_STATUS_GLYPH_RE = re.compile(r"(🟡|🟢|✅|🔴)")
_ANSWERED_RE = re.compile(r"\*\*Answered\*\*:\s*(\S+)(?:\s+by\s+(.+))?")
_LABEL_RE = re.compile(r"^\*\*[A-Za-z][A-Za-z ]*\*\*:")

_OPEN_STATUS_RE = re.compile(r"(\*\*Status\*\*:)[ \t]*" + re.escape(QuestionStatus.OPEN.value))


def _question_id(header_suffix: str) -> str:
    digits = re.search(r"\d+", header_suffix)
    # No digits: every such entry collapses onto the same placeholder id
    return f"Q-{digits.group(0) if digits else '000'}"


def _is_waiting(answer: str, waiting_markers: tuple[str, ...]) -> bool:
    return answer in waiting_markers or answer.startswith(WAITING_PREFIX)


def _parse_block(
    header_suffix: str,
    title: str,
    block: str,
    waiting_markers: tuple[str, ...],
) -> Question | None:
    fields: dict = {"id": _question_id(header_suffix), "title": title.strip()}
    answer_lines: list[str] | None = None

    for raw_line in block.split("\n"):
        line = raw_line.strip()

        if answer_lines is not None:
            if _LABEL_RE.match(line) or line == "---":
                answer_lines = None
            else:
                answer_lines.append(raw_line.rstrip())
                continue

        if line.startswith("**From**:"):
            match = _FROM_TO_RE.search(line)
            if match:
                fields["asked_by"] = match.group(1).lower()
                fields["asked_to"] = match.group(2).lower()
        elif line.startswith("**Status**:"):
            glyph = _STATUS_GLYPH_RE.search(line)
            if glyph:
                fields["status"] = QuestionStatus.from_glyph(glyph.group(1))
        elif line.startswith("**Question**:"):
            fields["body"] = line[len("**Question**:"):].strip()
        elif line.startswith("**Context**:"):
            fields["context"] = line[len("**Context**:"):].strip() or None
        elif line.startswith("**Answered**:"):
            match = _ANSWERED_RE.search(line)
            if match:
                fields["answered_at"] = match.group(1)
                fields["answered_by"] = (match.group(2) or "").strip() or None
        elif line.startswith("**Answer**:"):
            answer = line[len("**Answer**:"):].strip()
            if not _is_waiting(answer, waiting_markers):
                answer_lines = [answer]
                fields["_answer"] = answer_lines

    collected = fields.pop("_answer", None)
    if collected is not None:
        answer_text = "\n".join(collected).strip()
        fields["answer_body"] = answer_text or None

    if not (fields.get("id") and fields.get("asked_by") and fields.get("asked_to")):
        logger.debug("Skipping malformed ledger block %s", fields.get("id"))
        return None
    return Question(**fields)


def parse_ledger(markdown: str, waiting_markers: tuple[str, ...] = ()) -> list[Question]:
    """Split the ledger at entry headers and return well-formed questions in document order.

    Args:
        markdown: Full ledger text.
        waiting_markers: Team-specific answer placeholders
            (e.g. ``_Waiting for DE response_``) meaning "no answer yet".
    """
    headers = list(_HEADER_RE.finditer(markdown))
    questions: list[Question] = []
    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(markdown)
        block = markdown[header.end():end]
        question = _parse_block(header.group(1), header.group(2), block, tuple(waiting_markers))
        if question is not None:
            questions.append(question)
    return questions


def _waiting_answer_re(waiting_markers: tuple[str, ...]) -> re.Pattern[str]:
    # Longest first so a marker that extends another is matched whole
    alternatives = [re.escape(m) for m in sorted(set(waiting_markers), key=len, reverse=True) if m]
    alternatives.append(re.escape(WAITING_PREFIX))
    return re.compile(r"(\*\*Answer\*\*:)[ \t]*(?:" + "|".join(alternatives) + r")[^\n]*")


def _block_span(markdown: str, question_id: str) -> tuple[int, int] | None:
    header = re.search(
        r"^###\s+\[" + re.escape(question_id) + r"\]", markdown, re.MULTILINE
    )
    if header is None:
        return None
    following = _ENTRY_START_RE.search(markdown, header.end())
    end = following.start() if following else len(markdown)
    return header.start(), end


def apply_answer(
    markdown: str,
    question_id: str,
    answer_text: str,
    answered_by: str,
    answered_on: date | None = None,
    waiting_markers: tuple[str, ...] = (),
) -> str:
    """Write an answer into one ledger block and flip its status to Answered.

    Only the block headed ``[question_id]`` is touched. The answer replaces the
    waiting placeholder (one of ``waiting_markers`` or any ``_Waiting...`` text),
    so calling this again for the same id finds nothing to replace and returns
    the text unchanged. Unknown ids are a no-op as well.
    """
    span = _block_span(markdown, question_id)
    if span is None:
        return markdown

    start, end = span
    block = markdown[start:end]
    stamp = (answered_on or date.today()).isoformat()

    block, replaced = _waiting_answer_re(waiting_markers).subn(
        lambda m: f"{m.group(1)} {answer_text}\n\n**Answered**: {stamp} by {answered_by} (Autonomous Agent)",
        block,
        count=1,
    )
    if not replaced:
        return markdown

    block = _OPEN_STATUS_RE.sub(
        lambda m: f"{m.group(1)} {QuestionStatus.ANSWERED.value}", block, count=1
    )
    return markdown[:start] + block + markdown[end:]
