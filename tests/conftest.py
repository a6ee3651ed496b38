import os
import sys
from typing import Callable, List, Optional

import jwt
import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `common.*` / `state.*` / `gateway.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


SECRET = "test-local-secret"


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock for timer-driven code: nothing fires until `advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        t = FakeTimer(self.now + delay, callback)
        self._timers.append(t)
        return t

    def advance(self, dt: float) -> None:
        target = self.now + dt
        while True:
            pending = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not pending:
                break
            t = min(pending, key=lambda x: x.due)
            self._timers.remove(t)
            self.now = t.due
            t.callback()
        self.now = target

    @property
    def pending(self) -> int:
        return len([t for t in self._timers if not t.cancelled])


class FakeClock:
    def __init__(self, t: float = 1_700_000_000.0) -> None:
        self.t = t

    def __call__(self) -> float:  # acts like time.time
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def make_token(exp: Optional[float] = None, **claims) -> str:
    payload = dict(claims)
    if exp is not None:
        payload["exp"] = int(exp)
    return jwt.encode(payload, "signing-key-the-client-never-sees", algorithm="HS256")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store():
    from common.cipher import StorageCipher
    from state.backends import MemoryBackend
    from state.local_store import LocalStore

    return LocalStore(MemoryBackend(), StorageCipher(SECRET))


@pytest.fixture
def settings():
    from common.config import GatewaySettings

    return GatewaySettings(
        base_url="https://api.example.test/v1",
        api_key="test-api-key",
        local_secret=SECRET,
    )


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token
