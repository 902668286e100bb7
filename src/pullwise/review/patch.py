"""Unified diff helpers.

Patches are annotated before they are sent to the LLM so that suggestions can
reference new-file line numbers::

    @@ -10,4 +10,5 @@ def handler():
    __new hunk__
    10  context line
    11 +added line
    12  context line
    __old hunk__
     context line
    -removed line
     context line
"""

import re
from dataclasses import dataclass, field

from pullwise.models.pull_request import FileChange, FileStatus

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")


@dataclass
class Hunk:
    """One hunk of a unified diff.

    Attributes:
        old_start: First line in the old file
        old_count: Lines covered in the old file
        new_start: First line in the new file
        new_count: Lines covered in the new file
        header: Text after the closing ``@@``
        lines: Body lines including their ``+``/``-``/`` `` prefix
    """

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    header: str = ""
    lines: list[str] = field(default_factory=list)

    @property
    def new_end(self) -> int:
        """Last line of the hunk in the new file."""
        return self.new_start + max(self.new_count, 1) - 1

    def added_lines(self) -> list[int]:
        """New-file numbers of the added lines."""
        numbers = []
        line_number = self.new_start
        for line in self.lines:
            if line.startswith("+"):
                numbers.append(line_number)
                line_number += 1
            elif not line.startswith("-") and not line.startswith("\\"):
                line_number += 1
        return numbers


def parse_hunks(patch: str | None) -> list[Hunk]:
    """Split a unified diff into hunks.

    Lines before the first hunk header (``diff --git``, ``+++``) are ignored.

    Args:
        patch: Unified diff text

    Returns:
        Hunks in file order
    """
    hunks: list[Hunk] = []
    current: Hunk | None = None
    for line in (patch or "").splitlines():
        match = _HUNK_HEADER_RE.match(line)
        if match:
            old_start, old_count, new_start, new_count, header = match.groups()
            current = Hunk(
                old_start=int(old_start),
                old_count=int(old_count) if old_count is not None else 1,
                new_start=int(new_start),
                new_count=int(new_count) if new_count is not None else 1,
                header=header.strip(),
            )
            hunks.append(current)
        elif current is not None:
            current.lines.append(line)
    return hunks


def format_hunk_with_line_numbers(hunk: Hunk) -> str:
    """Render a hunk with its new-file and old-file sections."""
    header = f"@@ -{hunk.old_start},{hunk.old_count} +{hunk.new_start},{hunk.new_count} @@"
    if hunk.header:
        header = f"{header} {hunk.header}"

    new_lines: list[str] = []
    old_lines: list[str] = []
    line_number = hunk.new_start
    for line in hunk.lines:
        if line.startswith("\\"):
            continue
        if line.startswith("+"):
            new_lines.append(f"{line_number} {line}")
            line_number += 1
        elif line.startswith("-"):
            old_lines.append(line)
        else:
            content = line[1:] if line.startswith(" ") else line
            new_lines.append(f"{line_number}  {content}")
            old_lines.append(f" {content}")
            line_number += 1

    parts = [header]
    if new_lines:
        parts.append("__new hunk__")
        parts.extend(new_lines)
    if any(line.startswith("-") for line in old_lines):
        parts.append("__old hunk__")
        parts.extend(old_lines)
    return "\n".join(parts)


def convert_to_hunks_with_line_numbers(file: FileChange) -> str | None:
    """Annotate the patch of a changed file.

    Args:
        file: Changed file

    Returns:
        Annotated patch, or None for removed files and files without a patch
    """
    if not file.patch or file.status == FileStatus.REMOVED:
        return None
    hunks = parse_hunks(file.patch)
    if not hunks:
        return None
    body = "\n\n".join(format_hunk_with_line_numbers(h) for h in hunks)
    return f"## File: '{file.filename}'\n\n{body}"


def changed_line_ranges(patch: str | None) -> list[tuple[int, int]]:
    """New-file line ranges covered by the hunks of a patch."""
    return [(h.new_start, h.new_end) for h in parse_hunks(patch)]


def is_within_changed_lines(
    ranges: list[tuple[int, int]],
    start: int | None,
    end: int | None,
) -> bool:
    """Return True if a line range overlaps any changed range.

    Suggestions without line numbers are only accepted when the file has no
    diff to check against.
    """
    if not ranges:
        return True
    if start is None:
        return False
    end = end if end is not None else start
    if end < start:
        start, end = end, start
    return any(start <= range_end and end >= range_start for range_start, range_end in ranges)
