"""
Fix Prompt Builder — Builds oracle prompts for line-anchored fix generation.

The file is sent with every line prefixed by its 1-indexed number so the
oracle can answer with exact startLine/endLine ranges.
"""

from __future__ import annotations

import json

from codepolice.models.issue_models import Issue


FIX_OUTPUT_SCHEMA = """\
{
  "fixes": [
    {
      "issueId": "the-issue-id",
      "filePath": "<file path>",
      "startLine": 42,
      "endLine": 45,
      "originalCode": "exact code from lines 42-45 with indentation",
      "fixedCode": "corrected code with the same indentation",
      "explanation": "what was fixed and why",
      "confidence": "high",
      "canAutoApply": true
    }
  ],
  "unfixableIssues": []
}"""

PRECISE_FIX_PROMPT = """\
You are Code Police Fix Engine, an expert code fixer. You generate precise,
minimal edits for reported code issues.

ABSOLUTE RULES:
1. Generate a fix for EVERY issue listed. "Unfixable" is not an allowed answer;
   unfixableIssues MUST be empty and the fixes array MUST NOT be empty.
2. Use EXACT line numbers. The file below is shown with line numbers; startLine
   and endLine (1-indexed, inclusive) select the lines your fixedCode replaces.
3. Copy originalCode character-by-character from those lines (without the
   line-number prefix), including indentation.
4. Keep fixedCode at the same indentation as the lines it replaces and change
   only what the issue requires.
5. Set confidence to "high" and canAutoApply to true.
6. Output STRICT JSON only. No markdown, no text outside JSON.

FIX STRATEGIES:
- security: parameterise queries, sanitise inputs/outputs, move secrets to
  environment variables, add validation
- performance: release resources, batch operations, cache repeated work
- bug: add null/bounds checks, correct conditions, fix types
- style/readability: rename, simplify, add types

OUTPUT SCHEMA:
{schema}
"""

RETRY_FIX_PROMPT = """\
URGENT: THE PREVIOUS ATTEMPT RETURNED 0 FIXES. THAT IS NOT ACCEPTABLE.

You are given the same issues again. This time you MUST return fixes.
Do NOT return an empty fixes array. Do NOT mark anything unfixable.

If the previous fix did not match, change strategy:
1. Copy the EXACT code from the numbered lines shown
2. Match the indentation EXACTLY
3. Use a SMALLER snippet (only the problematic line) or a DIFFERENT line range
4. Try a DIFFERENT fix approach

Output STRICT JSON only, in this schema:
{schema}
"""


def add_line_numbers(content: str) -> str:
    """Prefix each line with its right-aligned 1-indexed number and ' | '."""
    lines = content.split("\n")
    width = len(str(len(lines)))
    return "\n".join(
        f"{str(i + 1).rjust(width)} | {line}" for i, line in enumerate(lines)
    )


def serialize_issues(issues: list[Issue]) -> str:
    return json.dumps([issue.oracle_payload() for issue in issues], indent=2)


def build_fix_prompt(
    file_content: str,
    file_path: str,
    language: str,
    issues: list[Issue],
    attempt: int = 1,
) -> str:
    """
    Build the oracle prompt for one file.

    Args:
        file_content: Full file source at the analysed commit
        file_path: Repository path of the file
        language: Detected language name
        issues: Issues in this file to fix
        attempt: 1 for the precise prompt, 2+ for the retry prompt

    Returns:
        Complete prompt string
    """
    template = PRECISE_FIX_PROMPT if attempt <= 1 else RETRY_FIX_PROMPT
    header = template.format(schema=FIX_OUTPUT_SCHEMA)

    return f"""{header}