"""
Pytest configuration and fixtures for IT Glue client tests.
"""

import json

import httpx
import pytest
import structlog

from itglue_client.config import ClientConfig, RateLimitConfig
from itglue_client.models import Page, PaginationMeta


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Records requested sleeps and advances an optional clock instead of waiting."""

    def __init__(self, clock: FakeClock | None = None):
        self.calls: list[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


@pytest.fixture(autouse=True)
def reset_structlog():
    """The CLI configures structlog globally; undo it after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_sleep(fake_clock):
    return FakeSleep(fake_clock)


@pytest.fixture
def config():
    """Client config with instant retries so tests never really wait."""
    return ClientConfig(
        api_key="ITG.test-key-1234567890",
        rate_limiter=RateLimitConfig(retry_after_seconds=0, max_retries=2),
    )


@pytest.fixture
def sample_organization_wire():
    """Single organization resource as IT Glue sends it."""
    return {
        "id": "12345",
        "type": "organizations",
        "attributes": {
            "name": "Acme Corporation",
            "organization-type-name": "Customer",
            "organization-status-name": "Active",
            "short-name": "ACME",
            "quick-notes": "VIP customer",
            "created-at": "2024-01-15T10:30:00.000Z",
            "updated-at": "2024-01-16T14:20:00.000Z",
        },
        "relationships": {
            "organization-type": {"data": {"id": "7", "type": "organization-types"}},
            "adapters-resources": {"data": None},
        },
    }


@pytest.fixture
def sample_list_envelope(sample_organization_wire):
    """Collection response with pagination meta."""
    second = {
        "id": "12346",
        "type": "organizations",
        "attributes": {"name": "Globex", "organization-type-name": "Vendor"},
    }
    return {
        "data": [sample_organization_wire, second],
        "meta": {
            "current-page": 1,
            "next-page": 2,
            "prev-page": None,
            "total-pages": 3,
            "total-count": 6,
        },
    }


@pytest.fixture
def sample_validation_body():
    """422 body with field-level errors."""
    return {
        "errors": [
            {
                "status": "422",
                "title": "Invalid attribute",
                "detail": "Name can't be blank",
                "source": {"pointer": "/data/attributes/name"},
            },
            {
                "status": "422",
                "title": "Invalid attribute",
                "detail": "Organization type is invalid",
            },
        ]
    }


def make_page(items, next_page=None, current_page=1):
    return Page(
        data=items,
        meta=PaginationMeta(
            current_page=current_page,
            next_page=next_page,
            total_count=len(items),
        ),
    )


class PageStub:
    """Serves pre-built pages and counts fetches."""

    def __init__(self, pages):
        self.pages = pages
        self.requests: list[dict] = []

    async def __call__(self, page: dict) -> Page:
        self.requests.append(page)
        return self.pages[page["number"] - 1]

    @property
    def calls(self) -> int:
        return len(self.requests)


def json_response(status_code: int, body=None, headers=None) -> httpx.Response:
    if body is None:
        return httpx.Response(status_code, headers=headers)
    return httpx.Response(
        status_code,
        content=json.dumps(body).encode(),
        headers={"Content-Type": "application/vnd.api+json", **(headers or {})},
    )


class Recorder:
    """``httpx.MockTransport`` handler that replays responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)
