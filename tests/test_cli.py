import json

import httpx
import pytest
from typer.testing import CliRunner

import librarian.main as cli
from librarian.main import app

runner = CliRunner()

TITLES = [
    {"_id": "t1", "title": "Dune", "authors": ["Frank Herbert"]},
    {"_id": "t2", "title": "Emma", "authors": ["Jane Austen"]},
]


@pytest.fixture
def use_backend(monkeypatch, make_client):
    """Point the CLI at a MockTransport handler instead of the real backend."""
    def install(handler):
        monkeypatch.setattr(cli, "_client", lambda: make_client(handler))
    return install


def test_titles_plain_output(use_backend):
    use_backend(lambda request: httpx.Response(200, json={
        "success": True, "data": TITLES,
        "pagination": {"page": 1, "limit": 2, "total": 4, "pages": 2},
    }))

    result = runner.invoke(app, ["titles", "--limit", "2"])
    assert result.exit_code == 0
    assert "t1 - Dune - Frank Herbert" in result.stdout
    assert "t2 - Emma - Jane Austen" in result.stdout
    assert "Page 1/2 (4 total)" in result.stdout


def test_titles_json_output(use_backend):
    use_backend(lambda request: httpx.Response(200, json={"success": True, "data": {"titles": TITLES}}))

    result = runner.invoke(app, ["--output", "json", "titles"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip().splitlines()[0])
    assert payload[0] == {"_id": "t1", "title": "Dune", "authors": "Frank Herbert"}


def test_search_with_no_results(use_backend):
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json={"success": True, "data": []})

    use_backend(handler)
    result = runner.invoke(app, ["titles", "--search", "zzz"])
    assert result.exit_code == 0
    assert "No results found" in result.stdout
    assert seen[0].path == "/api/v1/titles/search"
    assert seen[0].params["q"] == "zzz"


def test_login_success_stores_token(use_backend, store):
    use_backend(lambda request: httpx.Response(200, json={
        "success": True,
        "data": {"accessToken": "tok", "user": {"id": "u1", "name": "Ada", "role": "student"}},
    }))

    result = runner.invoke(app, ["login", "ada@example.com", "--password", "pw"])
    assert result.exit_code == 0
    assert "Welcome back!" in result.stdout
    assert "Logged in as Ada (student)" in result.stdout
    assert store.get_access_token() == "tok"


def test_login_failure_shows_envelope_error(use_backend, store):
    use_backend(lambda request: httpx.Response(401, json={"success": False, "error": "Invalid credentials"}))

    result = runner.invoke(app, ["login", "ada@example.com", "--password", "nope"])
    assert result.exit_code == 1
    assert "Invalid credentials" in result.stdout
    assert store.get_access_token() is None


def test_whoami_when_logged_out(use_backend):
    use_backend(lambda request: httpx.Response(500))
    result = runner.invoke(app, ["whoami"])
    assert result.exit_code == 1
    assert "Not logged in." in result.stdout


def test_expired_session_exits_with_login_hint(use_backend, store):
    store.set_access_token("old")
    use_backend(lambda request: httpx.Response(401, json={"success": False, "error": "Token expired"}))

    result = runner.invoke(app, ["libraries"])
    assert result.exit_code == 1
    assert "Your session has expired" in result.stdout
    assert "librarian login" in result.stdout
    assert store.get_access_token() is None


def test_unreachable_backend(use_backend, delays):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    use_backend(handler)
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 1
    assert "Unable to connect to the server" in result.stdout
    assert delays == [1.0]


def test_approve_reports_backend_error(use_backend):
    use_backend(lambda request: httpx.Response(404, json={"success": False}))
    result = runner.invoke(app, ["approve", "u9"])
    assert result.exit_code == 1
    assert "The requested resource was not found." in result.stdout


def test_cancel_request(use_backend):
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path))
        return httpx.Response(200, json={"success": True, "message": "Cancelled"})

    use_backend(handler)
    result = runner.invoke(app, ["cancel-request", "r1"])
    assert result.exit_code == 0
    assert "Borrow request cancelled successfully." in result.stdout
    assert seen == [("PATCH", "/api/v1/borrow-requests/r1/cancel")]


def test_stats_skips_nested_activity(use_backend):
    use_backend(lambda request: httpx.Response(200, json={"success": True, "data": {
        "totalBooks": 120, "overdueBooks": 3, "recentActivity": [{"id": "a1"}],
    }}))

    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "totalBooks: 120" in result.stdout
    assert "overdueBooks: 3" in result.stdout
    assert "recentActivity" not in result.stdout


def test_logout(use_backend, store):
    store.set_access_token("tok")
    use_backend(lambda request: httpx.Response(200, json={"success": True}))

    result = runner.invoke(app, ["logout"])
    assert result.exit_code == 0
    assert "successfully logged out" in result.stdout
    assert store.get_access_token() is None
