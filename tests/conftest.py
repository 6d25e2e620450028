"""
Test fixtures shared across all Code Police tests.

Remote collaborators (oracle, GitHub, Redis) are in-memory fakes.
"""

import base64

import pytest

from codepolice.models.autofix_models import FileInfo, PullRequestRef
from codepolice.models.fix_models import Fix
from codepolice.models.issue_models import Issue


class FakeOracle:
    """Returns queued responses in order; Exceptions in the queue are raised."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def complete(self, prompt, temperature=0.1):
        self.calls.append({"prompt": prompt, "temperature": temperature})
        if not self.responses:
            return {"content": "", "parsed": {"fixes": []}, "success": True}
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return {"content": "", "parsed": response, "success": response is not None}


class FakeSourceControl:
    """Records every call; ``fail_on`` names a method that raises."""

    def __init__(self, files=None, fetch_errors=None, fail_on=None, label_error=False):
        self.files = dict(files or {})
        self.fetch_errors = set(fetch_errors or [])
        self.fail_on = fail_on
        self.label_error = label_error
        self.calls = []
        self.committed = {}
        self.closed = False

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if self.fail_on == name:
            raise RuntimeError(f"{name} exploded")

    async def fetch_file_content(self, owner, repo, path, ref=None, fallback_branch=None):
        self._record("fetch_file_content", path, ref)
        if path in self.fetch_errors:
            raise RuntimeError(f"Failed to fetch file: 404 Not Found: {path}")
        return self.files[path]

    async def get_branch_ref(self, owner, repo, branch):
        self._record("get_branch_ref", branch)
        return "base-sha-123"

    async def create_branch(self, owner, repo, branch_name, from_sha):
        self._record("create_branch", branch_name, from_sha)

    async def get_file_info(self, owner, repo, path, branch):
        self._record("get_file_info", path, branch)
        return FileInfo(sha=f"blob-{path}", content=self.files.get(path, ""))

    async def create_or_update_file(
        self, owner, repo, path, content, message, branch, file_sha=None
    ):
        self._record("create_or_update_file", path, message, branch, file_sha)
        self.committed[path] = content
        return f"new-{path}"

    async def create_pull_request(self, owner, repo, title, body, head_branch, base_branch):
        self._record("create_pull_request", title, head_branch, base_branch)
        self.pr_body = body
        return PullRequestRef(number=42, url=f"https://github.com/{owner}/{repo}/pull/42")

    async def add_labels(self, owner, repo, pr_number, labels):
        self._record("add_labels", pr_number, labels)
        if self.label_error:
            raise RuntimeError("Label 'priority:critical' does not exist")

    async def aclose(self):
        self.closed = True

    def call_names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_oracle():
    return FakeOracle


@pytest.fixture
def fake_scm():
    return FakeSourceControl


@pytest.fixture
def ten_line_file():
    return "\n".join(
        [
            "def handler(request):",
            "    user = request.args.get('user')",
            "    query = 'SELECT * FROM users WHERE name = ' + user",
            "    rows = db.execute(query)",
            "    result = []",
            "    for row in rows:",
            "        result.append(row)",
            "    log(result)",
            "    cache.set(user, result)",
            "    return result",
        ]
    )


@pytest.fixture
def make_issue():
    def _make(issue_id="issue-1", line=3, end_line=None, severity="high",
              category="security", file_path="app/handler.py", **extra):
        return Issue(
            id=issue_id,
            file_path=file_path,
            line=line,
            end_line=end_line,
            severity=severity,
            category=category,
            message=extra.pop("message", "SQL built by string concatenation"),
            explanation=extra.pop("explanation", "User input reaches the query"),
            **extra,
        )
    return _make


@pytest.fixture
def make_fix():
    def _make(start_line, end_line=None, fixed_code="X", issue_id="issue-1",
              original_code="", file_path="app/handler.py", explanation="Fixed it"):
        return Fix(
            issue_id=issue_id,
            file_path=file_path,
            start_line=start_line,
            end_line=end_line if end_line is not None else start_line,
            original_code=original_code,
            fixed_code=fixed_code,
            explanation=explanation,
        )
    return _make


@pytest.fixture
def b64():
    def _encode(text):
        return base64.b64encode(text.encode("utf-8")).decode("ascii")
    return _encode
