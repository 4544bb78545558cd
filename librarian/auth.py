import logging
from typing import Iterable, Optional, Union

from librarian.models import ApiResponse, AuthUser
from librarian.services.api_client import ApiClient
from librarian.services.http_client import ApiClientError

logger = logging.getLogger(__name__)


class AuthSession:
    """Owns the login/logout lifecycle and the current user.

    The API client never stores tokens from login or register; this class
    does, so there is exactly one place deciding when a session starts.
    """

    def __init__(self, client: ApiClient):
        self.client = client
        self.user: Optional[AuthUser] = None
        self.access_token: Optional[str] = None
        self.is_loading = True

        client.on_token_refreshed(self._handle_token_refreshed)
        client.on_session_invalidated(self._reset)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.access_token is not None

    def _handle_token_refreshed(self, token: str) -> None:
        logger.debug("Token refresh received by auth session")
        self.access_token = token

    def _reset(self) -> None:
        self.user = None
        self.access_token = None
        self.is_loading = False

    def _start(self, response: ApiResponse) -> bool:
        data = response.data if isinstance(response.data, dict) else {}
        token = data.get("accessToken")
        if not (response.success and token):
            return False
        self.client.token_store.set_access_token(token)
        self.access_token = token
        self.user = AuthUser.from_dict(data.get("user") or {})
        self.is_loading = False
        return True

    async def initialize(self) -> bool:
        """Restore the session from a stored token, verifying it against the profile endpoint."""
        token = self.client.token_store.get_access_token()
        if not token:
            self._reset()
            return False
        try:
            response = await self.client.get_profile()
        except ApiClientError as e:
            logger.warning(f"Auth initialization error: {e}")
            self.client.clear_tokens()
            self._reset()
            return False

        user = response.data.get("user") if isinstance(response.data, dict) else None
        if response.success and user:
            # A refresh during the profile call may have replaced the token
            self.access_token = self.client.token_store.get_access_token()
            self.user = AuthUser.from_dict(user)
            self.is_loading = False
            return True

        self.client.clear_tokens()
        self._reset()
        return False

    async def login(self, email: str, password: str, remember_me: bool = False) -> ApiResponse:
        self.is_loading = True
        response = await self.client.login(email, password, remember_me)
        if not self._start(response):
            logger.info(f"Login failed: {response.error}")
            self.is_loading = False
        return response

    async def register(self, name: str, email: str, password: str, role: Optional[str] = None) -> ApiResponse:
        self.is_loading = True
        response = await self.client.register(name, email, password, role)
        if not self._start(response):
            self.is_loading = False
        return response

    async def logout(self) -> None:
        try:
            await self.client.logout()
        except ApiClientError as e:
            logger.warning(f"Logout error: {e}")
        finally:
            self.client.clear_tokens()
            self._reset()

    async def refresh_user(self) -> Optional[AuthUser]:
        response = await self.client.get_profile()
        user = response.data.get("user") if isinstance(response.data, dict) else None
        if response.success and user:
            self.user = AuthUser.from_dict(user)
        return self.user

    def has_role(self, roles: Union[str, Iterable[str]]) -> bool:
        if not self.user:
            return False
        allowed = [roles] if isinstance(roles, str) else list(roles)
        return self.user.role in allowed

    def has_library_access(self, library_id: str) -> bool:
        if not self.user:
            return False
        if self.user.role == "superadmin":
            return True
        if self.user.role == "admin":
            return library_id in self.user.libraries
        # Students and guests may browse any library
        return True
