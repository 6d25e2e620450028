"""
Tests for Fix Generator — attempts, retry prompt, fallback.
"""

import asyncio

from codepolice.engine.fix_generator import FixGenerator, generate_commit_message
from codepolice.llm.fix_prompt_builder import add_line_numbers, build_fix_prompt


def _oracle_fix(issue_id="issue-1", start=3, end=3, fixed="query = 'SELECT * FROM users WHERE name = %s'"):
    return {
        "issueId": issue_id,
        "filePath": "app/handler.py",
        "startLine": start,
        "endLine": end,
        "originalCode": "",
        "fixedCode": fixed,
        "explanation": "Use a parameterised query",
        "confidence": "high",
        "canAutoApply": True,
    }


def _generate(generator, content, issues, path="app/handler.py"):
    return asyncio.run(generator.generate_fixes(content, path, "python", issues))


def test_empty_issue_list_makes_no_oracle_call(fake_oracle, ten_line_file):
    oracle = fake_oracle()
    output = _generate(FixGenerator(oracle), ten_line_file, [])
    assert output.fixes == []
    assert oracle.calls == []


def test_first_attempt_success(fake_oracle, ten_line_file, make_issue):
    oracle = fake_oracle([{"fixes": [_oracle_fix()]}])
    output = _generate(FixGenerator(oracle), ten_line_file, [make_issue()])

    assert len(oracle.calls) == 1
    assert oracle.calls[0]["temperature"] == 0.1
    assert output.attempts == 1
    assert not output.used_fallback
    assert output.fixes[0].start_line == 3
    assert output.fixes[0].confidence == "high"


def test_retry_uses_urgent_prompt_and_higher_temperature(fake_oracle, ten_line_file, make_issue):
    oracle = fake_oracle([{"fixes": []}, {"fixes": [_oracle_fix()]}])
    output = _generate(FixGenerator(oracle), ten_line_file, [make_issue()])

    assert len(oracle.calls) == 2
    assert oracle.calls[1]["temperature"] == 0.2
    assert oracle.calls[1]["prompt"].startswith("URGENT")
    assert "URGENT" not in oracle.calls[0]["prompt"]
    assert output.attempts == 2


def test_oracle_always_failing_yields_one_fallback_per_issue(fake_oracle, ten_line_file, make_issue):
    oracle = fake_oracle([RuntimeError("503"), RuntimeError("503"), RuntimeError("503")])
    issues = [
        make_issue("sec", line=3, category="security"),
        make_issue("perf", line=6, category="performance"),
        make_issue("bug", line=9, category="bug"),
    ]
    output = _generate(FixGenerator(oracle), ten_line_file, issues)

    assert len(oracle.calls) == 3
    assert output.used_fallback
    assert [f.issue_id for f in output.fixes] == ["sec", "perf", "bug"]
    assert all(f.confidence == "medium" for f in output.fixes)


def test_malformed_responses_count_as_empty(fake_oracle, ten_line_file, make_issue):
    oracle = fake_oracle([None, {"result": "ok"}, {"fixes": "none"}])
    output = _generate(FixGenerator(oracle), ten_line_file, [make_issue()])
    assert len(oracle.calls) == 3
    assert output.used_fallback
    assert len(output.fixes) == 1


def test_uncovered_issues_filled_by_fallback(fake_oracle, ten_line_file, make_issue):
    oracle = fake_oracle([{"fixes": [_oracle_fix("a")]}])
    issues = [make_issue("a", line=3), make_issue("b", line=9, category="bug")]
    output = _generate(FixGenerator(oracle), ten_line_file, issues)

    assert [f.issue_id for f in output.fixes] == ["a", "b"]
    assert output.fixes[0].confidence == "high"
    assert output.fixes[1].confidence == "medium"
    assert output.used_fallback


def test_no_oracle_configured_goes_straight_to_fallback(ten_line_file, make_issue):
    output = _generate(FixGenerator(None, max_attempts=2), ten_line_file, [make_issue()])
    assert output.used_fallback
    assert output.attempts == 2
    assert len(output.fixes) == 1


def test_prompt_carries_numbered_lines_and_issue_ids(ten_line_file, make_issue):
    prompt = build_fix_prompt(ten_line_file, "app/handler.py", "python", [make_issue("sqli-7")])
    assert " 3 |     query = 'SELECT * FROM users WHERE name = ' + user" in prompt
    assert "10 |     return result" in prompt
    assert '"id": "sqli-7"' in prompt
    assert "=== FILE: app/handler.py ===" in prompt


def test_line_numbers_right_aligned():
    numbered = add_line_numbers("\n".join(["x"] * 12)).split("\n")
    assert numbered[0] == " 1 | x"
    assert numbered[11] == "12 | x"


def test_commit_message(make_fix):
    assert generate_commit_message([]) == "fix: automated code quality improvements"

    single = make_fix(3, file_path="src/app/handler.py", explanation="Use a parameterised query")
    assert generate_commit_message([single]) == "fix(handler.py): Use a parameterised query"

    many = [
        make_fix(3, file_path="a.py"),
        make_fix(5, file_path="a.py"),
        make_fix(1, file_path="b.py"),
    ]
    assert generate_commit_message(many) == "fix: automated fixes for 3 issues across 2 files"


def test_zero_attempts_is_honoured(fake_oracle, ten_line_file, make_issue):
    oracle = fake_oracle([{"fixes": [_oracle_fix()]}])
    output = _generate(FixGenerator(oracle, max_attempts=0), ten_line_file, [make_issue()])
    assert oracle.calls == []
    assert output.attempts == 0
    assert output.used_fallback
