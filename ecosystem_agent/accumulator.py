"""Append-only derived documents (insights log, update digest)."""

from datetime import date

SECTION_SEPARATOR = "---"


class DocumentAccumulator:
    """Grow a markdown log one dated section at a time.

    Args:
        header_template: Text written at the top of a document that does not
            exist yet. Formatted with ``display_name``.
        heading_format: Section heading, formatted with ``entry_id`` and ``date``.
    """

    def __init__(self, header_template: str, heading_format: str, display_name: str = "") -> None:
        self._header = header_template.format(display_name=display_name)
        self._heading_format = heading_format

    def seed(self) -> str:
        header = self._header.rstrip("\n")
        return header + "\n"

    def append(
        self,
        existing: str | None,
        entry_id: str,
        body: str,
        *,
        today: date | None = None,
    ) -> str:
        """Return ``existing`` (or the seeded header) with one new section appended."""
        base = self.seed() if existing is None else existing
        heading = self._heading_format.format(
            entry_id=entry_id, date=(today or date.today()).isoformat()
        )
        return f"{base}\n## {heading}\n\n{body.strip()}\n\n{SECTION_SEPARATOR}\n"


def insights_log(header_template: str, display_name: str) -> DocumentAccumulator:
    return DocumentAccumulator(header_template, "[{entry_id}] - {date}", display_name)


def update_digest(header_template: str, display_name: str) -> DocumentAccumulator:
    return DocumentAccumulator(header_template, "Updates Checked: {date}", display_name)
