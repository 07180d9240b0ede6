"""Shared fixtures: fake clock, fake HTTP session and upstream payload builders."""

import os
import tempfile
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

# Keep test runs from writing into the repository's logs/ directory.
os.environ.setdefault(
    "GOLDWATCH_LOG_FILE", os.path.join(tempfile.gettempdir(), "goldwatch-tests.log")
)

from goldwatch.core.rate_gate import RateGate  # noqa: E402

RUN_AT = datetime(2024, 7, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock whose sleep only advances time."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None):
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else repr(payload)

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Stands in for ``requests.Session``; routes each GET through ``handler``.

    ``handler(url, params)`` returns a :class:`FakeResponse` or raises.
    """

    def __init__(self, handler: Callable[[str, Dict[str, Any]], FakeResponse]) -> None:
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Any = None):
        params = dict(params or {})
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        return self.handler(url, params)


def route_by_key(routes: Dict[str, Any]) -> Callable[[str, Dict[str, Any]], FakeResponse]:
    """Build a handler that picks a route by symbol, series id, FX function or URL.

    Route values may be payload dicts, :class:`FakeResponse` objects or exceptions.
    Unknown requests fail with a connection error.
    """
    def handler(url: str, params: Dict[str, Any]) -> FakeResponse:
        key = (
            params.get("symbol") or params.get("series_id")
            or params.get("function") or url
        )
        if key not in routes:
            raise requests.ConnectionError(f"no route for {key}")
        route = routes[key]
        if isinstance(route, Exception):
            raise route
        if isinstance(route, FakeResponse):
            return route
        return FakeResponse(route)
    return handler


# ── payload builders ──────────────────────────────────────────────────────────

def days_back(count: int, newest: date = date(2024, 6, 28)) -> List[date]:
    """``count`` consecutive days, newest first."""
    return [newest - timedelta(days=i) for i in range(count)]


def twelve_data_payload(closes_newest_first: List[float], newest: date = date(2024, 6, 28)) -> Dict:
    days = days_back(len(closes_newest_first), newest)
    return {
        "meta": {"interval": "1day"},
        "status": "ok",
        "values": [
            {"datetime": d.isoformat(), "close": f"{c:.5f}"}
            for d, c in zip(days, closes_newest_first)
        ],
    }


def fred_payload(values_newest_first: List[str], newest: date = date(2024, 6, 28)) -> Dict:
    days = days_back(len(values_newest_first), newest)
    return {
        "observations": [
            {"date": d.isoformat(), "value": v} for d, v in zip(days, values_newest_first)
        ]
    }


def alpha_vantage_payload(closes_newest_first: List[float], newest: date = date(2024, 6, 28)) -> Dict:
    days = days_back(len(closes_newest_first), newest)
    return {
        "Meta Data": {"1. Information": "Forex Daily Prices (open, high, low, close)"},
        "Time Series FX (Daily)": {
            d.isoformat(): {"4. close": f"{c:.4f}"} for d, c in zip(days, closes_newest_first)
        },
    }


def news_payload(articles: List[Dict[str, Any]]) -> Dict:
    return {"status": "ok", "totalResults": len(articles), "articles": articles}


def article(title: str, description: str = "", published: str = "2024-06-28T09:30:00Z",
            url: str = "https://example.com/a") -> Dict[str, Any]:
    return {"title": title, "description": description, "publishedAt": published, "url": url}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gate(clock: FakeClock) -> RateGate:
    return RateGate(clock=clock, sleep=clock.sleep)


@pytest.fixture
def run_at() -> datetime:
    return RUN_AT
