import httpx
import pytest

from librarian.config import Settings, settings
from librarian.services.api_client import ApiClient
from librarian.services.token_store import MemoryTokenStore

BASE_URL = "http://testserver/api/v1"


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path, monkeypatch):
    # Never touch the real ~/.librarian session while testing
    monkeypatch.setattr(settings, "session_file", str(tmp_path / "session.json"))
    monkeypatch.delenv("LIBRARIAN_CLI_OUTPUT", raising=False)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        api_url=BASE_URL,
        request_timeout=5.0,
        retry_base_delay=1.0,
        auth_retry_attempts=3,
        default_retry_attempts=2,
        single_flight_refresh=True,
        session_file=str(tmp_path / "session.json"),
    )


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def delays():
    """Backoff delays requested by the client, in order."""
    return []


@pytest.fixture
def make_client(test_settings, store, delays):
    async def fake_sleep(seconds):
        delays.append(seconds)

    def factory(handler, settings=None, token_store=None):
        return ApiClient(
            settings=settings or test_settings,
            token_store=token_store or store,
            transport=httpx.MockTransport(handler),
            sleep=fake_sleep,
        )

    return factory
