# Shared fakes for the dispatcher tests.
# Both fake sessions record every requested URL and the peak number of
# requests in flight, so tests can check the concurrency cap without a network.

from __future__ import annotations

import asyncio
import threading
import time
from typing import Dict, Optional

import pytest


class FakeResponse:
    def __init__(self, url: str, status: int) -> None:
        self.url = url
        self.status = status
        self.status_code = status

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> bool:
        return False


class FakeAsyncSession:
    """Quacks like aiohttp.ClientSession.get() used as an async context manager."""

    def __init__(
        self,
        delays: Optional[Dict[str, float]] = None,
        failures: Optional[Dict[str, BaseException]] = None,
        statuses: Optional[Dict[str, int]] = None,
        final_urls: Optional[Dict[str, str]] = None,
        default_delay: float = 0.001,
    ) -> None:
        self.delays = delays or {}
        self.failures = failures or {}
        self.statuses = statuses or {}
        self.final_urls = final_urls or {}
        self.default_delay = default_delay
        self.calls = []
        self.in_flight = 0
        self.peak = 0

    def get(self, url: str, **kwargs) -> "_AsyncRequest":
        return _AsyncRequest(self, url)


class _AsyncRequest:
    def __init__(self, session: FakeAsyncSession, url: str) -> None:
        self.session = session
        self.url = url

    async def __aenter__(self) -> FakeResponse:
        s = self.session
        s.calls.append(self.url)
        s.in_flight += 1
        s.peak = max(s.peak, s.in_flight)
        try:
            await asyncio.sleep(s.delays.get(self.url, s.default_delay))
            if self.url in s.failures:
                raise s.failures[self.url]
        except BaseException:
            s.in_flight -= 1
            raise
        return FakeResponse(s.final_urls.get(self.url, self.url), s.statuses.get(self.url, 200))

    async def __aexit__(self, *exc) -> bool:
        self.session.in_flight -= 1
        return False


class FakeSyncSession:
    """Quacks like requests.Session.get(..., stream=True) used as a context manager."""

    def __init__(
        self,
        delays: Optional[Dict[str, float]] = None,
        failures: Optional[Dict[str, BaseException]] = None,
        statuses: Optional[Dict[str, int]] = None,
        default_delay: float = 0.005,
    ) -> None:
        self.delays = delays or {}
        self.failures = failures or {}
        self.statuses = statuses or {}
        self.default_delay = default_delay
        self.calls = []
        self.kwargs = []
        self.in_flight = 0
        self.peak = 0
        self._lock = threading.Lock()

    def get(self, url: str, **kwargs) -> FakeResponse:
        with self._lock:
            self.calls.append(url)
            self.kwargs.append(kwargs)
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            time.sleep(self.delays.get(url, self.default_delay))
            if url in self.failures:
                raise self.failures[url]
            return FakeResponse(url, self.statuses.get(url, 200))
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def urls():
    return [f"https://ggez.ch/{w}" for w in ("aa", "ab", "ba", "bb", "ca", "cb", "da", "db")]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for var in ("BASE_URL", "ALPHABET", "LENGTH", "CONCURRENCY"):
        monkeypatch.delenv(f"PERMSWEEP_{var}", raising=False)
