from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import httpx


@dataclass(frozen=True)
class PendingRequest:
    """An outbound call captured so it can be replayed verbatim."""
    method: str
    path: str
    body: Any = None
    params: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    # Multipart parts as accepted by httpx; content must be bytes so a replay can resend it
    files: Optional[Dict[str, Any]] = None

    @staticmethod
    def build(method: str, path: str, body: Any = None, params: Optional[Dict[str, Any]] = None,
              headers: Optional[Dict[str, str]] = None, timeout: Optional[float] = None,
              files: Optional[Dict[str, Any]] = None) -> "PendingRequest":
        path = (path or "").strip()
        route = path.split("?", 1)[0]
        if "://" in route or route.startswith("//"):
            raise ValueError(f"Expected a relative API route, got {path!r}")
        if not path.startswith("/"):
            path = "/" + path
        return PendingRequest(
            method=method.upper(),
            path=path,
            body=body,
            params=params,
            headers=dict(headers or {}),
            timeout=timeout,
            files=files,
        )

    def with_token(self, token: Optional[str]) -> "PendingRequest":
        headers = {k: v for k, v in self.headers.items() if k.lower() != "authorization"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return replace(self, headers=headers)

    @property
    def authorization(self) -> Optional[str]:
        for key, value in self.headers.items():
            if key.lower() == "authorization":
                return value
        return None


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    pages: int

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Pagination":
        return Pagination(
            page=_as_int(data.get("page"), 1),
            limit=_as_int(data.get("limit"), 0),
            total=_as_int(data.get("total"), 0),
            pages=_as_int(data.get("pages"), 0),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


@dataclass
class ApiResponse:
    """The JSON envelope every backend response is expected to follow.

    Callers branch on ``success`` rather than the HTTP status; ``status_code``
    is kept so user-facing messages can fall back to it.
    """
    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None
    details: List[Dict[str, Any]] = field(default_factory=list)
    pagination: Optional[Pagination] = None
    status_code: Optional[int] = None

    @staticmethod
    def from_dict(payload: Dict[str, Any], status_code: Optional[int] = None) -> "ApiResponse":
        if "success" in payload:
            success = bool(payload["success"])
        else:
            success = status_code is None or 200 <= status_code < 300

        details = payload.get("details")
        pagination = payload.get("pagination")
        return ApiResponse(
            success=success,
            data=payload.get("data"),
            message=payload.get("message"),
            error=payload.get("error"),
            details=details if isinstance(details, list) else [],
            pagination=Pagination.from_dict(pagination) if isinstance(pagination, dict) else None,
            status_code=status_code,
        )

    @staticmethod
    def from_response(response: httpx.Response) -> "ApiResponse":
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            return ApiResponse.from_dict(payload, status_code=response.status_code)
        if response.is_success:
            # CSV exports and other plain bodies
            return ApiResponse(
                success=True,
                data=payload if payload is not None else response.text,
                status_code=response.status_code,
            )
        return ApiResponse(success=False, status_code=response.status_code)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            result["data"] = self.data
        if self.message:
            result["message"] = self.message
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        if self.pagination:
            result["pagination"] = self.pagination.to_dict()
        return result

    def error_message(self) -> str:
        from librarian.utils.messages import get_error_message
        return get_error_message(self)


@dataclass
class AuthUser:
    id: str
    name: str
    email: str
    role: str
    status: str
    libraries: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "AuthUser":
        return AuthUser(
            id=str(data.get("id") or data.get("_id") or ""),
            name=data.get("name", ""),
            email=data.get("email", ""),
            role=data.get("role", "guest"),
            status=data.get("status", "pending"),
            libraries=[str(lib) for lib in data.get("libraries") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "libraries": self.libraries,
        }
