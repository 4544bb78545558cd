from pathlib import Path
from typing import Any, Dict, Optional, Union

from librarian.models import ApiResponse
from librarian.services.api_client import ApiClient


def _clean(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


class Library:
    """Typed entry points for the backend's library-management routes."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    # ------------------------- Users ------------------------- #
    async def get_users(self, role: Optional[str] = None, status: Optional[str] = None,
                        page: Optional[int] = None, limit: Optional[int] = None) -> ApiResponse:
        return await self.client.get("/users", params=_clean({"role": role, "status": status, "page": page, "limit": limit}))

    async def get_user(self, user_id: str) -> ApiResponse:
        return await self.client.get(f"/users/{user_id}")

    async def create_user(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.post("/users", data)

    async def update_user(self, user_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/users/{user_id}", data)

    async def delete_user(self, user_id: str) -> ApiResponse:
        return await self.client.delete(f"/users/{user_id}")

    async def get_pending_students(self) -> ApiResponse:
        return await self.client.get("/users/pending")

    async def approve_student(self, user_id: str) -> ApiResponse:
        return await self.client.put(f"/users/{user_id}/approve")

    async def reject_student(self, user_id: str) -> ApiResponse:
        return await self.client.put(f"/users/{user_id}/reject")

    # ------------------------- Libraries ------------------------- #
    async def get_libraries(self, page: Optional[int] = None, limit: Optional[int] = None) -> ApiResponse:
        return await self.client.get("/libraries", params=_clean({"page": page, "limit": limit}))

    async def get_library(self, library_id: str) -> ApiResponse:
        return await self.client.get(f"/libraries/{library_id}")

    async def create_library(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.post("/libraries", data)

    async def update_library(self, library_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/libraries/{library_id}", data)

    async def delete_library(self, library_id: str) -> ApiResponse:
        return await self.client.delete(f"/libraries/{library_id}")

    async def get_library_admins(self, library_id: str) -> ApiResponse:
        return await self.client.get(f"/libraries/{library_id}/admins")

    async def assign_admin(self, library_id: str, user_id: str) -> ApiResponse:
        return await self.client.post(f"/libraries/{library_id}/admins/{user_id}")

    async def remove_admin(self, library_id: str, user_id: str) -> ApiResponse:
        return await self.client.delete(f"/libraries/{library_id}/admins/{user_id}")

    # ------------------------- Titles ------------------------- #
    async def get_titles(self, page: Optional[int] = None, limit: Optional[int] = None) -> ApiResponse:
        return await self.client.get("/titles", params=_clean({"page": page, "limit": limit}))

    async def get_title(self, title_id: str) -> ApiResponse:
        return await self.client.get(f"/titles/{title_id}")

    async def create_title(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.post("/titles", data)

    async def update_title(self, title_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/titles/{title_id}", data)

    async def search_titles(self, query: str, page: Optional[int] = None, limit: Optional[int] = None) -> ApiResponse:
        return await self.client.get("/titles/search", params=_clean({"q": query, "page": page, "limit": limit}))

    async def advanced_search(self, filters: Dict[str, Any]) -> ApiResponse:
        return await self.client.get("/titles/search/advanced", params=_clean(filters))

    async def search_suggestions(self, query: str) -> ApiResponse:
        return await self.client.get("/titles/search/suggestions", params={"q": query})

    async def get_popular_titles(self) -> ApiResponse:
        return await self.client.get("/titles/search/popular")

    async def get_categories(self) -> ApiResponse:
        return await self.client.get("/titles/categories")

    # ------------------------- Inventory & copies ------------------------- #
    async def get_inventories(self, title_id: Optional[str] = None, library_id: Optional[str] = None) -> ApiResponse:
        return await self.client.get("/inventories", params=_clean({"titleId": title_id, "libraryId": library_id}))

    async def create_inventory(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.post("/inventories", data)

    async def get_copies(self, title_id: Optional[str] = None) -> ApiResponse:
        return await self.client.get("/copies", params=_clean({"titleId": title_id}))

    async def create_copy(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.post("/copies", data)

    async def update_copy(self, copy_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.client.put(f"/copies/{copy_id}", data)

    async def delete_copy(self, copy_id: str) -> ApiResponse:
        return await self.client.delete(f"/copies/{copy_id}")

    # ------------------------- Borrowing ------------------------- #
    async def get_pending_requests(self) -> ApiResponse:
        return await self.client.get("/borrow-requests/pending")

    async def get_user_requests(self, user_id: str) -> ApiResponse:
        return await self.client.get(f"/borrow-requests/user/{user_id}")

    async def cancel_request(self, request_id: str) -> ApiResponse:
        return await self.client.patch(f"/borrow-requests/{request_id}/cancel")

    async def get_user_records(self, user_id: str) -> ApiResponse:
        return await self.client.get(f"/borrow-records/user/{user_id}")

    async def get_active_records(self) -> ApiResponse:
        return await self.client.get("/borrow-records/active")

    async def get_overdue_records(self) -> ApiResponse:
        return await self.client.get("/borrow-records/overdue")

    # ------------------------- CSV ------------------------- #
    async def get_csv_template(self) -> ApiResponse:
        return await self.client.get("/csv/template")

    async def export_csv(self) -> ApiResponse:
        return await self.client.get("/csv/export")

    async def import_csv(self, csv_file: Union[bytes, str, Path], filename: str = "books.csv") -> ApiResponse:
        """Upload a CSV of books as the multipart ``file`` field.

        ``csv_file`` is either the raw CSV bytes or a path to read them from.
        """
        if isinstance(csv_file, bytes):
            content = csv_file
        else:
            path = Path(csv_file)
            content = path.read_bytes()
            filename = path.name
        return await self.client.post("/csv/import", files={"file": (filename, content, "text/csv")})

    # ------------------------- Dashboard & reports ------------------------- #
    async def get_dashboard_stats(self) -> ApiResponse:
        return await self.client.get("/dashboard/stats")

    async def get_recent_activity(self, limit: Optional[int] = None) -> ApiResponse:
        return await self.client.get("/dashboard/activity", params=_clean({"limit": limit}))

    async def get_reports(self, date_range: Optional[str] = None) -> ApiResponse:
        return await self.client.get("/reports", params=_clean({"dateRange": date_range}))

    async def get_report(self, report_type: str, date_range: Optional[str] = None) -> ApiResponse:
        return await self.client.get(f"/reports/{report_type}", params=_clean({"dateRange": date_range}))
