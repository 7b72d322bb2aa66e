import pytest
import pytest_asyncio
import httpx

from formreg.config import Settings
from formreg.domain.errors import DeliveryError, StoreError
from formreg.main import create_app
from formreg.services.otp import OtpManager, OtpPolicy


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_code(self, email: str, code: str) -> None:
        if self.fail:
            raise DeliveryError("smtp down")
        self.sent.append((email, code))

    def last_code(self, email: str) -> str:
        return [c for e, c in self.sent if e == email][-1]


class MemoryStore:
    enabled = True

    def __init__(self) -> None:
        self.rows: list[dict] = []
        self.fail = False

    async def append(self, payload) -> None:
        if self.fail:
            raise StoreError("quota exceeded")
        self.rows.append(dict(payload))


@pytest.fixture
def clock():
    # start well away from zero so "first issuance" never collides with epoch math
    return FakeClock(1_700_000_000.0)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def policy():
    return OtpPolicy()


@pytest.fixture
def manager(policy, notifier, clock):
    return OtpManager(policy, notifier, clock=clock)


@pytest.fixture
def settings():
    return Settings(_env_file=None, EMAIL_PROVIDER="console", SPREADSHEET_ID="sheet-123")


@pytest_asyncio.fixture
async def client(settings, notifier, store, clock):
    app = create_app(settings, notifier=notifier, store=store, clock=clock)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
