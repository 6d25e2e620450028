"""
Response Validator — Schema validation for oracle fix output.

Produces a tagged result:
- ValidFixes: top-level "fixes" list present; each entry normalised and
  validated individually (bad entries dropped with a reason)
- MalformedResponse: not a dict, or "fixes" missing / not a list

Normalisation:
- canAutoApply defaults to True, confidence to "high"
- missing startLine/endLine fall back to the issue's line/endLine
- endLine below startLine is raised to startLine
- filePath defaults to the requested file
- entries for unknown issue ids are dropped
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from codepolice.models.fix_models import Fix, MalformedResponse, OracleResult, ValidFixes
from codepolice.models.issue_models import Issue

logger = logging.getLogger("codepolice.llm.validator")

VALID_CONFIDENCE = {"high", "medium", "low"}


def _as_line(value: Any) -> int | None:
    """Coerce an oracle line value to a positive int, else None."""
    if isinstance(value, bool):
        return None
    try:
        line = int(value)
    except (TypeError, ValueError):
        return None
    return line if line > 0 else None


def _normalize_fix(
    raw: dict[str, Any],
    issues_by_id: dict[str, Issue],
    file_path: str,
) -> dict[str, Any]:
    issue = issues_by_id.get(str(raw.get("issueId", "")))
    normalized = dict(raw)
    normalized["issueId"] = str(raw.get("issueId", ""))
    normalized["filePath"] = raw.get("filePath") or file_path

    start = _as_line(raw.get("startLine"))
    end = _as_line(raw.get("endLine"))
    if start is None:
        start = issue.line if issue else None
    if end is None:
        if issue and issue.end_line and start == issue.line:
            end = issue.end_line
        else:
            end = start
    if start is not None and end is not None and end < start:
        end = start
    normalized["startLine"] = start
    normalized["endLine"] = end

    if raw.get("confidence") not in VALID_CONFIDENCE:
        normalized["confidence"] = "high"
    if not isinstance(raw.get("canAutoApply"), bool):
        normalized["canAutoApply"] = True
    if not isinstance(raw.get("originalCode"), str):
        normalized["originalCode"] = ""
    if not isinstance(raw.get("explanation"), str):
        normalized["explanation"] = ""
    return normalized


def validate_fix_response(
    parsed: Any,
    issues: list[Issue],
    file_path: str,
) -> OracleResult:
    """
    Validate an oracle response against the fix schema.

    Args:
        parsed: Parsed JSON from the gateway (may be None or any shape)
        issues: Issues that were sent in the request
        file_path: File the request was about

    Returns:
        ValidFixes or MalformedResponse
    """
    if not isinstance(parsed, dict):
        return MalformedResponse(raw=parsed, reason="Oracle returned non-JSON or non-object response")

    raw_fixes = parsed.get("fixes")
    if not isinstance(raw_fixes, list):
        return MalformedResponse(raw=parsed, reason="Missing or non-list 'fixes' field")

    issues_by_id = {issue.id: issue for issue in issues}
    result = ValidFixes()

    for i, raw in enumerate(raw_fixes):
        if not isinstance(raw, dict):
            result.dropped.append(f"fixes[{i}]: not an object")
            continue

        normalized = _normalize_fix(raw, issues_by_id, file_path)
        if normalized["issueId"] not in issues_by_id:
            result.dropped.append(
                f"fixes[{i}]: unknown issueId '{normalized['issueId']}'"
            )
            continue

        try:
            result.fixes.append(Fix.model_validate(normalized))
        except ValidationError as e:
            result.dropped.append(f"fixes[{i}]: {e.error_count()} validation error(s)")

    if result.dropped:
        logger.warning(
            f"{file_path}: dropped {len(result.dropped)} oracle fix entries: {result.dropped}"
        )

    return result
