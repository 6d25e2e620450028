"""
Patch Applier — Applies oracle/fallback fixes to file contents.

Operates on source strings (in-memory), not disk files. File contents are
fetched from the repository at the analysed commit and the patched text is
committed back through the source-control orchestrator.

Strategies, in order:
1. Line-anchored replace (authoritative: uses start_line/end_line)
2. String match on original_code (exact, then trimmed single-line)

Line handling splits on "\\n" and re-joins with "\\n", so a trailing newline
and CRLF line endings survive untouched outside the replaced range.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from codepolice.models.fix_models import FilePatchResult, Fix

logger = logging.getLogger("codepolice.engine.patch_applier")

_LEADING_WS = re.compile(r"^\s*")

# Single-line trimmed matching only for lines long enough to be distinctive
MIN_TRIMMED_MATCH_LENGTH = 10


@dataclass
class LinePatchOutcome:
    """Result of a line-anchored replacement attempt."""

    success: bool
    new_content: str
    error: str | None = None


def _indent_of(line: str) -> str:
    return _LEADING_WS.match(line).group(0)


def apply_fix_by_line_numbers(
    content: str,
    start_line: int,
    end_line: int,
    fixed_code: str,
) -> LinePatchOutcome:
    """
    Replace lines start_line..end_line (1-indexed, inclusive) with fixed_code.

    The first replacement line takes the indentation of the original
    start line. Later non-blank lines are raised to at least that
    indentation; blank lines stay blank.
    """
    lines = content.split("\n")

    if start_line < 1 or end_line > len(lines) or start_line > end_line:
        return LinePatchOutcome(
            success=False,
            new_content=content,
            error=(
                f"Invalid line range: {start_line}-{end_line} "
                f"(file has {len(lines)} lines)"
            ),
        )

    reference_indent = _indent_of(lines[start_line - 1])

    fixed_lines: list[str] = []
    for idx, line in enumerate(fixed_code.split("\n")):
        if idx == 0:
            fixed_lines.append(reference_indent + line.lstrip())
            continue
        if line.strip() == "":
            fixed_lines.append("")
            continue
        if len(_indent_of(line)) >= len(reference_indent):
            fixed_lines.append(line)
        else:
            fixed_lines.append(reference_indent + line.lstrip())

    lines[start_line - 1 : end_line] = fixed_lines
    return LinePatchOutcome(success=True, new_content="\n".join(lines))


def apply_fix_by_string_match(content: str, fix: Fix) -> str:
    """
    Fallback: locate fix.original_code textually.

    Returns the original content unchanged when nothing matched.
    """
    # Exact substring, first occurrence
    if fix.original_code and fix.original_code in content:
        return content.replace(fix.original_code, fix.fixed_code, 1)

    # Trimmed single-line match
    original_lines = [
        line.strip() for line in fix.original_code.split("\n") if line.strip()
    ]
    if len(original_lines) == 1 and len(original_lines[0]) > MIN_TRIMMED_MATCH_LENGTH:
        target = original_lines[0]
        file_lines = content.split("\n")
        for i, line in enumerate(file_lines):
            if line.strip() == target:
                indent = _indent_of(line)
                file_lines[i] = "\n".join(
                    indent + fixed.strip() for fixed in fix.fixed_code.split("\n")
                )
                return "\n".join(file_lines)

    return content


def apply_fix(content: str, fix: Fix) -> str:
    """
    Apply a single fix. Line numbers first, string match as fallback.

    A fix that no strategy can place leaves the content unchanged.
    """
    logger.debug(
        f"Applying fix {fix.issue_id} to {fix.file_path} "
        f"(lines {fix.start_line}-{fix.end_line})"
    )

    if fix.start_line and fix.end_line and fix.start_line > 0:
        outcome = apply_fix_by_line_numbers(
            content, fix.start_line, fix.end_line, fix.fixed_code
        )
        if outcome.success:
            return outcome.new_content
        logger.warning(f"Line-based fix failed for {fix.issue_id}: {outcome.error}")

    patched = apply_fix_by_string_match(content, fix)
    if patched != content:
        logger.info(f"Applied fix {fix.issue_id} using string match")
        return patched

    logger.warning(f"Could not apply fix {fix.issue_id}: no strategy worked")
    return content


def sort_fixes_bottom_up(fixes: list[Fix]) -> list[Fix]:
    """Descending start_line; ties keep their input order."""
    return sorted(fixes, key=lambda f: f.start_line or 0, reverse=True)


def find_overlaps(fixes: list[Fix]) -> list[tuple[Fix, Fix]]:
    """Pairs of fixes whose line ranges intersect, in bottom-up order."""
    ordered = sort_fixes_bottom_up(fixes)
    overlaps: list[tuple[Fix, Fix]] = []
    for upper, lower in zip(ordered, ordered[1:]):
        if lower.end_line >= upper.start_line:
            overlaps.append((upper, lower))
    return overlaps


def combine_fixes(path: str, content: str, fixes: list[Fix]) -> FilePatchResult:
    """
    Apply every fix for one file, bottom of file first.

    Replacing a range shifts all lines below it, so higher ranges go first to
    keep the line numbers of still-pending fixes valid. Overlapping ranges are
    applied best-effort against the already modified text.
    """
    if not fixes:
        return FilePatchResult(path=path, new_content=content)

    for upper, lower in find_overlaps(fixes):
        logger.warning(
            f"{path}: fix {lower.issue_id} (lines {lower.start_line}-{lower.end_line}) "
            f"overlaps fix {upper.issue_id} (lines {upper.start_line}-{upper.end_line})"
        )

    applied: list[Fix] = []
    failed: list[Fix] = []
    current = content

    for fix in sort_fixes_bottom_up(fixes):
        patched = apply_fix(current, fix)
        if patched != current:
            applied.append(fix)
            current = patched
        else:
            failed.append(fix)

    logger.info(f"{path}: applied {len(applied)}/{len(fixes)} fixes")

    return FilePatchResult(
        path=path,
        new_content=current,
        applied_fix_count=len(applied),
        applied_fixes=applied,
        failed_fixes=failed,
    )


def apply_multiple_fixes(content: str, fixes: list[Fix]) -> str:
    """Apply fixes bottom-up and return the resulting content."""
    path = fixes[0].file_path if fixes else ""
    return combine_fixes(path, content, fixes).new_content
