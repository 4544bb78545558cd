import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer

from librarian.auth import AuthSession
from librarian.config import settings
from librarian.library import Library
from librarian.models import ApiResponse
from librarian.services.api_client import ApiClient, SessionExpiredError
from librarian.services.http_client import TransportError
from librarian.utils.messages import get_error_message, get_info_message, get_success_message
from librarian.utils.ui_helpers import print_mapping, print_rows, set_output_mode

APP_NAME = "Librarian CLI"

logger = logging.getLogger(__name__)

app = typer.Typer(help="Command line client for The Librarian")


def _client() -> ApiClient:
    """Build the API client used by a command."""
    return ApiClient()


def _on_session_invalidated() -> None:
    print(get_info_message("session_expired"))
    print("Run 'librarian login' to sign in again.")


def _run(command: Callable[[ApiClient], Awaitable[Any]]) -> Any:
    """Run one async command against a fresh client and map client errors to exit codes."""
    async def runner():
        client = _client()
        client.on_session_invalidated(_on_session_invalidated)
        try:
            return await command(client)
        finally:
            await client.close()

    try:
        return asyncio.run(runner())
    except SessionExpiredError:
        # The session-invalidated subscriber has already told the user
        raise typer.Exit(code=1)
    except TransportError as e:
        logger.debug(f"Transport failure: {e!r}")
        print(get_error_message(e))
        raise typer.Exit(code=1)


def _require_success(response: ApiResponse) -> Any:
    if not response.success:
        print(get_error_message(response))
        raise typer.Exit(code=1)
    return response.data


def _items(data: Any, *keys: str) -> List[Dict[str, Any]]:
    """Pull the list out of a payload that is either a list or wraps one under a known key."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    return []


def _print_pagination(response: ApiResponse) -> None:
    if response.pagination and response.pagination.pages > 1:
        p = response.pagination
        print(f"Page {p.page}/{p.pages} ({p.total} total)")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and retries"),
):
    """Global options for the CLI (output mode, logging)."""
    if output:
        set_output_mode(output)
    level = logging.INFO if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# ------------------------- Session ------------------------- #
@app.command("login")
def cli_login(
    email: str,
    password: str = typer.Option(..., prompt=True, hide_input=True),
    remember_me: bool = typer.Option(False, "--remember-me", help="Keep the session longer"),
):
    """Log in and store the session token."""
    async def go(client: ApiClient):
        session = AuthSession(client)
        response = await session.login(email, password, remember_me)
        if not session.is_authenticated:
            print(get_error_message(response))
            raise typer.Exit(code=1)
        print(get_success_message("login"))
        print(f"Logged in as {session.user.name} ({session.user.role})")

    _run(go)


@app.command("logout")
def cli_logout():
    """Log out and forget the stored session."""
    async def go(client: ApiClient):
        await AuthSession(client).logout()
        print(get_success_message("logout"))

    _run(go)


@app.command("whoami")
def cli_whoami():
    """Show the logged-in user."""
    async def go(client: ApiClient):
        session = AuthSession(client)
        if not await session.initialize():
            print("Not logged in.")
            raise typer.Exit(code=1)
        print_mapping(session.user.to_dict(), title="Profile")

    _run(go)


# ------------------------- Catalogue ------------------------- #
@app.command("titles")
def cli_titles(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Search query"),
    page: int = typer.Option(1, "--page"),
    limit: int = typer.Option(settings.default_page_size, "--limit"),
):
    """List or search book titles."""
    async def go(client: ApiClient):
        library = Library(client)
        if search:
            response = await library.search_titles(search, page=page, limit=limit)
        else:
            response = await library.get_titles(page=page, limit=limit)
        data = _require_success(response)
        empty = get_info_message("search_no_results") if search else "No titles in the catalogue."
        print_rows(
            _items(data, "titles", "items", "results"),
            columns=[("_id", "ID"), ("title", "Title"), ("authors", "Authors")],
            title="Titles",
            empty_message=empty,
        )
        _print_pagination(response)

    _run(go)


@app.command("title")
def cli_title(title_id: str):
    """Show one title."""
    async def go(client: ApiClient):
        title = _require_success(await Library(client).get_title(title_id)) or {}
        if isinstance(title.get("title"), dict):
            title = title["title"]
        fields = ["title", "subtitle", "authors", "isbn13", "publisher", "publishedYear", "language"]
        print_mapping({k: title[k] for k in fields if title.get(k) not in (None, "", [])}, title="Title")

    _run(go)


@app.command("libraries")
def cli_libraries():
    """List libraries."""
    async def go(client: ApiClient):
        response = await Library(client).get_libraries()
        print_rows(
            _items(_require_success(response), "libraries", "items"),
            columns=[("_id", "ID"), ("code", "Code"), ("name", "Name")],
            title="Libraries",
            empty_message="No libraries found.",
        )

    _run(go)


# ------------------------- Users ------------------------- #
@app.command("pending-users")
def cli_pending_users():
    """List students waiting for approval."""
    async def go(client: ApiClient):
        response = await Library(client).get_pending_students()
        print_rows(
            _items(_require_success(response), "users", "items"),
            columns=[("_id", "ID"), ("name", "Name"), ("email", "Email"), ("status", "Status")],
            title="Pending users",
            empty_message="No pending users.",
        )

    _run(go)


@app.command("approve")
def cli_approve(user_id: str):
    """Approve a pending student."""
    async def go(client: ApiClient):
        _require_success(await Library(client).approve_student(user_id))
        print(get_success_message("user_approved"))

    _run(go)


@app.command("reject")
def cli_reject(user_id: str):
    """Reject a pending student."""
    async def go(client: ApiClient):
        _require_success(await Library(client).reject_student(user_id))
        print(get_success_message("user_rejected"))

    _run(go)


# ------------------------- Borrowing ------------------------- #
@app.command("requests")
def cli_requests(user_id: Optional[str] = typer.Option(None, "--user", help="Show one user's requests")):
    """List borrow requests (pending ones by default)."""
    async def go(client: ApiClient):
        library = Library(client)
        response = await (library.get_user_requests(user_id) if user_id else library.get_pending_requests())
        print_rows(
            _items(_require_success(response), "requests", "items"),
            columns=[("_id", "ID"), ("userId", "User"), ("titleId", "Title"), ("status", "Status"),
                     ("requestedAt", "Requested")],
            title="Borrow requests",
            empty_message="No borrow requests.",
        )

    _run(go)


@app.command("cancel-request")
def cli_cancel_request(request_id: str):
    """Cancel a borrow request."""
    async def go(client: ApiClient):
        _require_success(await Library(client).cancel_request(request_id))
        print(get_success_message("request_cancelled"))

    _run(go)


# ------------------------- Reporting ------------------------- #
@app.command("stats")
def cli_stats():
    """Show dashboard statistics."""
    async def go(client: ApiClient):
        data = _require_success(await Library(client).get_dashboard_stats()) or {}
        # Nested activity lists are not part of the summary
        summary = {k: v for k, v in data.items() if not isinstance(v, (list, dict))}
        print_mapping(summary, title="Stats")

    _run(go)


@app.command("report")
def cli_report(
    report_type: Optional[str] = typer.Argument(None, help="Report type, e.g. popular-books"),
    date_range: Optional[str] = typer.Option(None, "--range", help="Date range, e.g. 30d"),
):
    """Fetch a report."""
    async def go(client: ApiClient):
        library = Library(client)
        if report_type:
            response = await library.get_report(report_type, date_range)
        else:
            response = await library.get_reports(date_range)
        data = _require_success(response)
        if isinstance(data, list):
            keys = list(data[0].keys()) if data and isinstance(data[0], dict) else []
            print_rows(data, columns=[(k, k) for k in keys], title="Report")
        else:
            print_mapping(data or {}, title="Report")

    _run(go)


if __name__ == "__main__":
    app()
