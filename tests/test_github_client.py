"""
Tests for the GitHub REST client against httpx.MockTransport.
"""

import asyncio
import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

from codepolice.scm.github_client import GitHubClient, SourceControlError
from codepolice.scm.pr_creator import PRCreator


def _client(handler):
    return GitHubClient(
        "tok-123",
        api_base="https://api.github.test",
        transport=httpx.MockTransport(handler),
    )


def _run(handler, call):
    async def go():
        async with _client(handler) as client:
            return await call(client)

    return asyncio.run(go())


def test_get_branch_ref_sends_token():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        return httpx.Response(200, json={"object": {"sha": "deadbeef"}})

    sha = _run(handler, lambda c: c.get_branch_ref("octo", "shop", "main"))
    assert sha == "deadbeef"
    assert seen == {"auth": "Bearer tok-123", "path": "/repos/octo/shop/git/refs/heads/main"}


def test_create_branch_body():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={})

    _run(handler, lambda c: c.create_branch("octo", "shop", "code-police/fix-x", "base1"))
    assert bodies == [{"ref": "refs/heads/code-police/fix-x", "sha": "base1"}]


def test_fetch_file_content_uses_raw_accept_and_ref():
    seen = {}

    def handler(request):
        seen["accept"] = request.headers["Accept"]
        seen["ref"] = request.url.params.get("ref")
        return httpx.Response(200, text="print('hi')\n")

    text = _run(handler, lambda c: c.fetch_file_content("octo", "shop", "/src/a.py", "abc123", "main"))
    assert text == "print('hi')\n"
    assert seen == {"accept": "application/vnd.github.v3.raw", "ref": "abc123"}


def test_fetch_latest_ref_uses_branch():
    refs = []

    def handler(request):
        refs.append(request.url.params.get("ref"))
        return httpx.Response(200, text="x")

    _run(handler, lambda c: c.fetch_file_content("octo", "shop", "a.py", "latest", "develop"))
    assert refs == ["develop"]


def test_fetch_404_retries_on_fallback_branch():
    refs = []

    def handler(request):
        ref = request.url.params.get("ref")
        refs.append(ref)
        if ref == "gone-sha":
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, text="from main")

    text = _run(handler, lambda c: c.fetch_file_content("octo", "shop", "a.py", "gone-sha", "main"))
    assert text == "from main"
    assert refs == ["gone-sha", "main"]


def test_fetch_failure_raises_with_status():
    def handler(request):
        return httpx.Response(404, json={"message": "Not Found"})

    with pytest.raises(SourceControlError) as exc_info:
        _run(handler, lambda c: c.fetch_file_content("octo", "shop", "a.py", "sha1", "main"))
    assert exc_info.value.status_code == 404
    assert "Failed to fetch file" in str(exc_info.value)


def test_get_file_info_decodes_content():
    encoded = base64.b64encode("hello\nworld".encode()).decode()

    def handler(request):
        assert request.url.params.get("ref") == "fix-branch"
        return httpx.Response(200, json={"sha": "blob9", "content": encoded})

    info = _run(handler, lambda c: c.get_file_info("octo", "shop", "a.py", "fix-branch"))
    assert info.sha == "blob9"
    assert info.content == "hello\nworld"


def test_create_or_update_file_encodes_content_and_sha(b64):
    bodies = []

    def handler(request):
        assert request.method == "PUT"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"content": {"sha": "newblob"}})

    new_sha = _run(
        handler,
        lambda c: c.create_or_update_file("octo", "shop", "a.py", "x = 1\n", "fix: a", "fix-branch", "old"),
    )
    assert new_sha == "newblob"
    assert bodies == [
        {"message": "fix: a", "content": b64("x = 1\n"), "branch": "fix-branch", "sha": "old"}
    ]


def test_create_pull_request_returns_html_url():
    def handler(request):
        body = json.loads(request.content)
        assert body["head"] == "fix-branch" and body["base"] == "main"
        return httpx.Response(
            201, json={"number": 7, "html_url": "https://github.com/octo/shop/pull/7"}
        )

    pr = _run(handler, lambda c: c.create_pull_request("octo", "shop", "T", "B", "fix-branch", "main"))
    assert (pr.number, pr.url) == (7, "https://github.com/octo/shop/pull/7")


def test_error_message_includes_github_detail():
    def handler(request):
        return httpx.Response(422, json={"message": "Reference already exists"})

    with pytest.raises(SourceControlError) as exc_info:
        _run(handler, lambda c: c.create_branch("octo", "shop", "b", "s"))
    assert exc_info.value.status_code == 422
    assert "Reference already exists" in str(exc_info.value)


LATIN1_BLOB = base64.b64encode("# caf\xe9\nna\xefve = 0\n".encode("latin-1")).decode()


def test_get_file_info_tolerates_non_utf8_blob():
    def handler(request):
        return httpx.Response(200, json={"sha": "blob-latin1", "content": LATIN1_BLOB})

    info = _run(handler, lambda c: c.get_file_info("octo", "shop", "legacy.py", "fix-branch"))
    assert info.sha == "blob-latin1"
    assert info.content.startswith("# caf\ufffd")


def test_pr_flow_commits_over_non_utf8_file():
    routes = {
        ("GET", "/repos/octo/shop/git/refs/heads/main"): (200, {"object": {"sha": "base1"}}),
        ("POST", "/repos/octo/shop/git/refs"): (201, {}),
        ("GET", "/repos/octo/shop/contents/legacy.py"): (
            200,
            {"sha": "blob-latin1", "content": LATIN1_BLOB},
        ),
        ("PUT", "/repos/octo/shop/contents/legacy.py"): (200, {"content": {"sha": "new1"}}),
        ("POST", "/repos/octo/shop/pulls"): (
            201,
            {"number": 5, "html_url": "https://github.com/octo/shop/pull/5"},
        ),
        ("POST", "/repos/octo/shop/issues/5/labels"): (200, []),
    }
    puts = []

    def handler(request):
        if request.method == "PUT":
            puts.append(json.loads(request.content))
        status, body = routes[(request.method, request.url.path)]
        return httpx.Response(status, json=body)

    result = _run(
        handler,
        lambda c: PRCreator(c).create_fix_pull_request(
            "octo",
            "shop",
            "main",
            "abc1234def",
            [],
            [],
            {"legacy.py": "# fix\nna\xefve = 1\n"},
            now=datetime(2026, 3, 14, tzinfo=timezone.utc),
        ),
    )

    assert result.success, result.error
    assert result.pr_number == 5
    assert puts[0]["sha"] == "blob-latin1"
