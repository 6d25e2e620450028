"""
Tests for the deterministic fallback fix synthesiser.
"""

from codepolice.engine.patch_applier import apply_multiple_fixes
from codepolice.llm.fallback import CATEGORY_TEMPLATES, create_fallback_fixes
from codepolice.models.issue_models import IssueCategory
from codepolice.utils.language import comment_prefix, detect_language


def test_security_issue_gets_marker_and_todo(ten_line_file, make_issue):
    fix = create_fallback_fixes(ten_line_file, "app/handler.py", [make_issue(line=3)], "python")[0]

    assert fix.start_line == fix.end_line == 3
    assert fix.original_code == "    query = 'SELECT * FROM users WHERE name = ' + user"
    assert fix.fixed_code.split("\n") == [
        "    # SECURITY: SQL built by string concatenation",
        "    # TODO: Review and fix security concern",
        "    query = 'SELECT * FROM users WHERE name = ' + user",
    ]
    assert fix.confidence == "medium"
    assert fix.can_auto_apply


def test_category_templates(ten_line_file, make_issue):
    issues = [
        make_issue("p", line=6, category="performance", message="N+1 loop"),
        make_issue("b", line=8, category="bug", message="Null result"),
        make_issue("s", line=9, category="style", message="Bad name"),
        make_issue("o", line=10, category="best-practice", message="Early return"),
    ]
    fixes = create_fallback_fixes(ten_line_file, "app/handler.py", issues, "python")
    first_lines = [f.fixed_code.split("\n")[0].strip() for f in fixes]
    assert first_lines == [
        "# PERF: N+1 loop",
        "# BUG: Null result",
        "# STYLE: Bad name",
        "# TODO: Early return",
    ]


def test_suggested_fix_becomes_fixed_comment(ten_line_file, make_issue):
    issue = make_issue(line=4, suggested_fix="Pass parameters\nto execute()")
    fix = create_fallback_fixes(ten_line_file, "app/handler.py", [issue], "python")[0]
    assert fix.fixed_code.split("\n")[0] == "    # FIXED: Pass parameters to execute()"


def test_comment_token_follows_language(make_issue):
    content = "function f() {\n  eval(x);\n}"
    issue = make_issue(line=2, file_path="src/f.js")
    fix = create_fallback_fixes(content, "src/f.js", [issue], detect_language("src/f.js"))[0]
    assert fix.fixed_code.startswith("  // SECURITY:")


def test_out_of_range_issue_clamped(ten_line_file, make_issue):
    fix = create_fallback_fixes(ten_line_file, "app/handler.py", [make_issue(line=40, end_line=55)])[0]
    assert (fix.start_line, fix.end_line) == (10, 10)


def test_fallback_fixes_apply_cleanly(ten_line_file, make_issue):
    issues = [make_issue("a", line=2), make_issue("b", line=9, category="bug")]
    fixes = create_fallback_fixes(ten_line_file, "app/handler.py", issues, "python")
    patched = apply_multiple_fixes(ten_line_file, fixes).split("\n")

    assert len(patched) == 14
    assert patched[1] == "    # SECURITY: SQL built by string concatenation"
    assert patched[3] == "    user = request.args.get('user')"
    assert patched[10] == "    # BUG: SQL built by string concatenation"
    assert patched[12] == "    cache.set(user, result)"


def test_language_helpers():
    assert detect_language("a/b/main.py") == "python"
    assert detect_language("README") == "plaintext"
    assert comment_prefix("python") == "#"
    assert comment_prefix("sql") == "--"
    assert comment_prefix("typescript") == "//"


def test_templates_cover_known_categories(ten_line_file, make_issue):
    assert {IssueCategory.SECURITY.value, IssueCategory.BUG.value} <= set(CATEGORY_TEMPLATES)
    issue = make_issue(line=5, category=IssueCategory.PERFORMANCE.value, message="Slow loop")
    fix = create_fallback_fixes(ten_line_file, "app/handler.py", [issue], "python")[0]
    assert fix.fixed_code.split("\n")[0] == "    # PERF: Slow loop"
