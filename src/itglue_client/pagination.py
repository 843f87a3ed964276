"""
Async pagination over page-numbered list endpoints.

Example:
    async for org in ItemIterator(fetch_page):
        print(org["name"])

    first_ten = await take(fetch_page, 10)
"""

from typing import Any, Awaitable, Callable, Generic, TypeVar

import structlog

from itglue_client.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from itglue_client.models import Page

logger = structlog.get_logger(__name__)

T = TypeVar("T")

PageFetcher = Callable[[dict[str, int]], Awaitable[Page]]


def clamp_page_size(page_size: int | None) -> int:
    """Default for missing/non-positive sizes, capped at the API maximum."""
    if not page_size or page_size < 1:
        return DEFAULT_PAGE_SIZE
    return min(page_size, MAX_PAGE_SIZE)


class ItemIterator(Generic[T]):
    """
    Lazily yields individual items across pages.

    A page is fetched only once the previous one is used up. Iteration ends
    when the last page reported no ``next_page``, when a page comes back
    empty, or when ``max_items`` items have been yielded. Single pass: build
    a new iterator to start over.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        *,
        start_page: int = 1,
        page_size: int | None = DEFAULT_PAGE_SIZE,
        max_items: int | None = None,
    ):
        self._fetch_page = fetch_page
        self.page_size = clamp_page_size(page_size)
        self.max_items = max_items

        self._page_number = start_page or 1
        self._buffer: list[T] = []
        self._index = 0
        self._yielded = 0
        self._has_more = True
        self._done = False

    def __aiter__(self) -> "ItemIterator[T]":
        return self

    async def __anext__(self) -> T:
        if self._done:
            raise StopAsyncIteration

        if self.max_items is not None and self._yielded >= self.max_items:
            self._finish()

        while self._index >= len(self._buffer) and self._has_more:
            page = await self._fetch_page(
                {"number": self._page_number, "size": self.page_size}
            )
            logger.debug(
                "Fetched page",
                page=self._page_number,
                count=len(page.data),
                next_page=page.meta.next_page,
            )

            self._buffer = list(page.data)
            self._index = 0
            self._page_number += 1
            self._has_more = page.meta.has_next

            if not self._buffer:
                self._finish()

        if self._index >= len(self._buffer):
            self._finish()

        item = self._buffer[self._index]
        self._index += 1
        self._yielded += 1
        return item

    def _finish(self) -> None:
        self._done = True
        self._buffer = []
        raise StopAsyncIteration

    async def to_list(self) -> list[T]:
        """Drain the iterator. Holds every item in memory."""
        return [item async for item in self]


class PageIterator(Generic[T]):
    """
    Yields whole pages instead of items.

    The first page is always yielded, even when empty, so callers can observe
    an empty result set. Later empty pages end iteration.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        *,
        start_page: int = 1,
        page_size: int | None = DEFAULT_PAGE_SIZE,
    ):
        self._fetch_page = fetch_page
        self.page_size = clamp_page_size(page_size)

        self._page_number = start_page or 1
        self._first = True
        self._has_more = True

    def __aiter__(self) -> "PageIterator[T]":
        return self

    async def __anext__(self) -> Page:
        if not self._has_more:
            raise StopAsyncIteration

        page = await self._fetch_page(
            {"number": self._page_number, "size": self.page_size}
        )
        self._page_number += 1
        self._has_more = page.meta.has_next

        first, self._first = self._first, False
        if not page.data and not first:
            self._has_more = False
            raise StopAsyncIteration

        return page

    async def to_list(self) -> list[Page]:
        return [page async for page in self]


async def collect_all(fetch_page: PageFetcher, **options: Any) -> list[Any]:
    """Fetch every item of a collection into a list."""
    return await ItemIterator(fetch_page, **options).to_list()


async def take(fetch_page: PageFetcher, count: int, **options: Any) -> list[Any]:
    """First ``count`` items, fetching no more pages than needed."""
    options["max_items"] = count
    return await ItemIterator(fetch_page, **options).to_list()
