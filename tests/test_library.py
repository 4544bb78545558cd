import asyncio
import json

import httpx
import pytest

from librarian.library import Library


@pytest.fixture
def recorded():
    return []


@pytest.fixture
def library_call(make_client, recorded):
    def handler(request):
        body = request.read()
        recorded.append((
            request.method,
            request.url.path.replace("/api/v1", "", 1),
            dict(request.url.params),
            json.loads(body) if body else None,
        ))
        return httpx.Response(200, json={"success": True, "data": []})

    def call(method_name, *args, **kwargs):
        async def scenario():
            async with make_client(handler) as client:
                return await getattr(Library(client), method_name)(*args, **kwargs)
        return asyncio.run(scenario())

    return call


@pytest.mark.parametrize("method_name,args,expected", [
    ("get_pending_students", (), ("GET", "/users/pending")),
    ("approve_student", ("u1",), ("PUT", "/users/u1/approve")),
    ("reject_student", ("u1",), ("PUT", "/users/u1/reject")),
    ("delete_user", ("u1",), ("DELETE", "/users/u1")),
    ("get_library_admins", ("lib-1",), ("GET", "/libraries/lib-1/admins")),
    ("assign_admin", ("lib-1", "u2"), ("POST", "/libraries/lib-1/admins/u2")),
    ("remove_admin", ("lib-1", "u2"), ("DELETE", "/libraries/lib-1/admins/u2")),
    ("get_title", ("t1",), ("GET", "/titles/t1")),
    ("get_popular_titles", (), ("GET", "/titles/search/popular")),
    ("get_categories", (), ("GET", "/titles/categories")),
    ("delete_copy", ("c1",), ("DELETE", "/copies/c1")),
    ("get_pending_requests", (), ("GET", "/borrow-requests/pending")),
    ("get_user_requests", ("u1",), ("GET", "/borrow-requests/user/u1")),
    ("cancel_request", ("r1",), ("PATCH", "/borrow-requests/r1/cancel")),
    ("get_user_records", ("u1",), ("GET", "/borrow-records/user/u1")),
    ("get_active_records", (), ("GET", "/borrow-records/active")),
    ("get_overdue_records", (), ("GET", "/borrow-records/overdue")),
    ("get_csv_template", (), ("GET", "/csv/template")),
    ("export_csv", (), ("GET", "/csv/export")),
    ("get_dashboard_stats", (), ("GET", "/dashboard/stats")),
])
def test_routes(library_call, recorded, method_name, args, expected):
    response = library_call(method_name, *args)
    assert response.success
    assert recorded[0][:2] == expected


def test_list_params_skip_unset_values(library_call, recorded):
    library_call("get_users", role="admin", page=2)
    assert recorded[0][2] == {"role": "admin", "page": "2"}


def test_search_sends_query(library_call, recorded):
    library_call("search_titles", "dune", limit=5)
    assert recorded[0][1] == "/titles/search"
    assert recorded[0][2] == {"q": "dune", "limit": "5"}


def test_inventory_filter_uses_backend_names(library_call, recorded):
    library_call("get_inventories", title_id="t1")
    assert recorded[0][2] == {"titleId": "t1"}


def test_report_with_date_range(library_call, recorded):
    library_call("get_report", "popular-books", "30d")
    assert recorded[0][1] == "/reports/popular-books"
    assert recorded[0][2] == {"dateRange": "30d"}


def test_create_copy_sends_body(library_call, recorded):
    library_call("create_copy", {"inventoryId": "i1", "condition": "new"})
    assert recorded[0][0] == "POST"
    assert recorded[0][3] == {"inventoryId": "i1", "condition": "new"}


CSV = b"title,authors,totalCopies\nDune,Frank Herbert,2\n"


@pytest.fixture
def upload(make_client):
    uploads = []

    def handler(request):
        uploads.append((request.method, request.url.path, request.headers["Content-Type"], request.read()))
        return httpx.Response(200, json={"success": True, "data": {"imported": 1}})

    def call(*args, **kwargs):
        async def scenario():
            async with make_client(handler) as client:
                return await Library(client).import_csv(*args, **kwargs)
        response = asyncio.run(scenario())
        return response, uploads[0]

    return call


def test_csv_import_uploads_bytes_as_file_field(upload):
    response, (method, path, content_type, body) = upload(CSV)

    assert response.data == {"imported": 1}
    assert (method, path) == ("POST", "/api/v1/csv/import")
    assert content_type.startswith("multipart/form-data; boundary=")
    assert b'name="file"; filename="books.csv"' in body
    assert b"Content-Type: text/csv" in body
    assert CSV in body


def test_csv_import_reads_a_path(upload, tmp_path):
    path = tmp_path / "inventory.csv"
    path.write_bytes(CSV)

    _, (_, _, _, body) = upload(str(path))
    assert b'filename="inventory.csv"' in body
    assert CSV in body
