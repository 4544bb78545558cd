import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from librarian.config import Settings, settings as default_settings
from librarian.models import ApiResponse, PendingRequest
from librarian.services.http_client import ApiClientError, RetryingHTTPClient, TransportError
from librarian.services.pipeline import RetryPolicy, max_attempts_for, should_refresh
from librarian.services.token_store import FileTokenStore, TokenStore

logger = logging.getLogger(__name__)

# Cookie set by the backend on login; it authenticates /auth/refresh
REFRESH_COOKIE = "refreshToken"


class SessionExpiredError(ApiClientError):
    """The access token expired and could not be refreshed; the user must log in again."""

    def __init__(self, message: str = "Session expired", response: Optional[ApiResponse] = None):
        super().__init__(message)
        self.response = response


class ApiClient:
    """Single gateway for every call to the Librarian backend.

    Attaches the stored bearer token, retries transient transport failures,
    repairs one expired-token response per call by refreshing and replaying,
    and hands every well-formed response back as an ``ApiResponse``.
    """

    def __init__(self, settings: Optional[Settings] = None, token_store: Optional[TokenStore] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None, sleep=None):
        self.settings = settings or default_settings
        self.token_store = token_store or FileTokenStore(self.settings.session_file)
        self.policy = RetryPolicy.from_settings(self.settings)
        self._http = RetryingHTTPClient(
            base_url=self.settings.api_url,
            timeout=self.settings.request_timeout,
            base_delay=self.policy.base_delay,
            transport=transport,
            sleep=sleep,
        )
        self._refresh_task: Optional[asyncio.Future] = None
        self._session_invalidated_listeners: List[Callable[[], Any]] = []
        self._token_refreshed_listeners: List[Callable[[str], Any]] = []

        refresh_cookie = self.token_store.get_refresh_token()
        if refresh_cookie:
            self._http.cookies.set(REFRESH_COOKIE, refresh_cookie)

    # ------------------------- Signals ------------------------- #
    def on_session_invalidated(self, callback: Callable[[], Any]) -> None:
        self._session_invalidated_listeners.append(callback)

    def on_token_refreshed(self, callback: Callable[[str], Any]) -> None:
        self._token_refreshed_listeners.append(callback)

    def _emit_session_invalidated(self) -> None:
        for callback in list(self._session_invalidated_listeners):
            callback()

    def _emit_token_refreshed(self, token: str) -> None:
        for callback in list(self._token_refreshed_listeners):
            callback(token)

    # ------------------------- Token handling ------------------------- #
    def clear_tokens(self) -> None:
        self.token_store.clear_tokens()
        self._http.cookies.delete(REFRESH_COOKIE)

    def _remember_refresh_cookie(self, response: httpx.Response) -> None:
        value = response.cookies.get(REFRESH_COOKIE)
        if value:
            # Keep exactly one refresh cookie in the jar, whatever domain it was stored under
            self._http.cookies.delete(REFRESH_COOKIE)
            self._http.cookies.set(REFRESH_COOKIE, value)
            self.token_store.set_refresh_token(value)

    async def refresh_token(self) -> bool:
        """Obtain a new access token; concurrent callers share one in-flight refresh."""
        if not self.settings.single_flight_refresh:
            return await self._refresh_once()

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._refresh_once())
            self._refresh_task = task
        return await asyncio.shield(task)

    async def _refresh_once(self) -> bool:
        request = PendingRequest.build("POST", self.settings.refresh_path, body={})
        try:
            response = await self._http.send(request, max_attempts=1)
        except TransportError as e:
            logger.warning(f"Token refresh failed: {e}")
            return False

        envelope = ApiResponse.from_response(response)
        token = envelope.data.get("accessToken") if isinstance(envelope.data, dict) else None
        if not (response.is_success and envelope.success and token):
            logger.warning(f"Token refresh rejected with status {response.status_code}")
            return False

        self.token_store.set_access_token(token)
        self._remember_refresh_cookie(response)
        logger.info("Access token refreshed")
        self._emit_token_refreshed(token)
        return True

    # ------------------------- Request pipeline ------------------------- #
    async def _attempt(self, request: PendingRequest) -> httpx.Response:
        token = self.token_store.get_access_token()
        response = await self._http.send(
            request.with_token(token),
            max_attempts=max_attempts_for(request.path, self.policy),
        )
        self._remember_refresh_cookie(response)
        return response

    async def send(self, method: str, path: str, body: Any = None, *,
                   params: Optional[Dict[str, Any]] = None,
                   headers: Optional[Dict[str, str]] = None,
                   timeout: Optional[float] = None,
                   files: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """Issue one logical call and return the response envelope.

        Raises ``TransportError`` once the retry budget is spent without a
        response, and ``SessionExpiredError`` when an expired token cannot be
        refreshed. Every other outcome, including 4xx/5xx, is returned.
        """
        request = PendingRequest.build(method, path, body=body, params=params, headers=headers,
                                       timeout=timeout, files=files)
        response = await self._attempt(request)

        if should_refresh(response.status_code, request.path, replayed=False):
            logger.info(f"{request.method} {request.path} returned 401, refreshing token")
            if not await self.refresh_token():
                self.clear_tokens()
                self._emit_session_invalidated()
                raise SessionExpiredError(response=ApiResponse.from_response(response))
            response = await self._attempt(request)

        return ApiResponse.from_response(response)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> ApiResponse:
        return await self.send("GET", path, params=params, **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs) -> ApiResponse:
        return await self.send("POST", path, body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs) -> ApiResponse:
        return await self.send("PUT", path, body, **kwargs)

    async def patch(self, path: str, body: Any = None, **kwargs) -> ApiResponse:
        return await self.send("PATCH", path, body, **kwargs)

    async def delete(self, path: str, **kwargs) -> ApiResponse:
        return await self.send("DELETE", path, **kwargs)

    # ------------------------- Auth endpoints ------------------------- #
    # Tokens from login/register are stored by AuthSession, not here.
    async def login(self, email: str, password: str, remember_me: bool = False) -> ApiResponse:
        return await self.post("/auth/login", {"email": email, "password": password, "rememberMe": remember_me})

    async def register(self, name: str, email: str, password: str, role: Optional[str] = None) -> ApiResponse:
        body = {"name": name, "email": email, "password": password}
        if role:
            body["role"] = role
        return await self.post("/auth/register", body)

    async def logout(self) -> ApiResponse:
        try:
            return await self.post("/auth/logout")
        finally:
            self.clear_tokens()

    async def get_profile(self) -> ApiResponse:
        return await self.get("/auth/profile")

    async def update_profile(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.put("/auth/profile", data)

    async def change_password(self, current_password: str, new_password: str) -> ApiResponse:
        return await self.put("/auth/change-password", {
            "currentPassword": current_password,
            "newPassword": new_password,
        })

    async def close(self):
        await self._http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
