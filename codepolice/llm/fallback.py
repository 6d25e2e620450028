"""
Deterministic Fallback — Synthesises annotation fixes without the oracle.

Used when every oracle attempt failed, or when the oracle left some issues
without a fix. Each synthesised fix keeps the original lines untouched and
prepends a categorised comment, so the pipeline always has something to
publish for review.

Never raises.
"""

from __future__ import annotations

import logging

from codepolice.models.fix_models import Fix
from codepolice.models.issue_models import Issue, IssueCategory
from codepolice.utils.language import comment_prefix

logger = logging.getLogger("codepolice.llm.fallback")


# Comment lines per category; {c} is the comment token, {msg} the issue message
CATEGORY_TEMPLATES: dict[str, dict[str, object]] = {
    IssueCategory.SECURITY.value: {
        "lines": ["{c} SECURITY: {msg}", "{c} TODO: Review and fix security concern"],
        "explanation": "Marked security issue for review: {msg}",
    },
    IssueCategory.PERFORMANCE.value: {
        "lines": ["{c} PERF: {msg}"],
        "explanation": "Flagged performance issue: {msg}",
    },
    IssueCategory.BUG.value: {
        "lines": ["{c} BUG: {msg}", "{c} TODO: Fix this bug"],
        "explanation": "Marked bug for fixing: {msg}",
    },
    IssueCategory.READABILITY.value: {
        "lines": ["{c} STYLE: {msg}"],
        "explanation": "Marked style issue: {msg}",
    },
    IssueCategory.STYLE.value: {
        "lines": ["{c} STYLE: {msg}"],
        "explanation": "Marked style issue: {msg}",
    },
}

DEFAULT_TEMPLATE: dict[str, object] = {
    "lines": ["{c} TODO: {msg}"],
    "explanation": "Added TODO for issue: {msg}",
}


def _clamp_range(issue: Issue, total_lines: int) -> tuple[int, int]:
    start = issue.line or 1
    end = issue.end_line or start
    safe_start = max(1, min(start, total_lines))
    safe_end = max(safe_start, min(end, total_lines))
    return safe_start, safe_end


def synthesize_fix(
    issue: Issue,
    file_lines: list[str],
    file_path: str,
    language: str = "",
) -> Fix:
    """Build one annotation fix for an issue against the split file lines."""
    start, end = _clamp_range(issue, len(file_lines))
    original_lines = file_lines[start - 1 : end]
    original_code = "\n".join(original_lines)
    first = original_lines[0] if original_lines else ""
    indent = first[: len(first) - len(first.lstrip())]
    token = comment_prefix(language)
    message = " ".join((issue.message or issue.explanation or issue.id).split())

    if issue.suggested_fix:
        suggestion = " ".join(issue.suggested_fix.split())
        comments = [f"{token} FIXED: {suggestion}"]
        explanation = issue.suggested_fix
    else:
        template = CATEGORY_TEMPLATES.get(issue.category.lower(), DEFAULT_TEMPLATE)
        comments = [line.format(c=token, msg=message) for line in template["lines"]]
        explanation = str(template["explanation"]).format(msg=message)

    fixed_code = "\n".join([indent + comment for comment in comments] + [original_code])

    return Fix(
        issue_id=issue.id,
        file_path=file_path,
        start_line=start,
        end_line=end,
        original_code=original_code,
        fixed_code=fixed_code,
        explanation=explanation,
        confidence="medium",
        can_auto_apply=True,
    )


def create_fallback_fixes(
    file_content: str,
    file_path: str,
    issues: list[Issue],
    language: str = "",
) -> list[Fix]:
    """
    Generate one annotation fix per issue.

    No oracle involved — pure template-based generation.
    """
    file_lines = file_content.split("\n")
    fixes = [synthesize_fix(issue, file_lines, file_path, language) for issue in issues]
    logger.info(f"{file_path}: created {len(fixes)} fallback fixes")
    return fixes
