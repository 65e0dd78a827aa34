"""Draining cursor-paginated listings."""

from __future__ import annotations

import dataclasses
from typing import Callable, Protocol, TypeVar

from loguru import logger

from ecr_cleanup.base import Page
from ecr_cleanup.errors import (
    NotFoundError,
    PaginationError,
    REMOTE_EXCEPTIONS,
    RemoteError,
)

T = TypeVar("T")

DEFAULT_MAX_PAGES = 1000


class _PageRequest(Protocol):
    cursor: str | None


R = TypeVar("R", bound=_PageRequest)


def drain(
    request: R,
    fetch_page: Callable[[R], Page[T]],
    *,
    operation: str,
    not_found_message: str,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[T]:
    """Fetch every page of a listing and concatenate the items in page order.

    `operation` names the listing in error messages ("list images"). A page
    without items raises NotFoundError wherever it occurs in the chain. Remote
    failures raise RemoteError and stop the drain; a partial list is never
    returned.
    """
    items: list[T] = []
    seen_cursors: set[str] = set()
    pages = 0

    while True:
        if pages >= max_pages:
            raise PaginationError(
                f"Could not {operation}: gave up after {max_pages} pages"
            )
        try:
            page = fetch_page(request)
        except REMOTE_EXCEPTIONS as e:
            raise RemoteError(f"Could not {operation}: {e}") from e
        pages += 1

        logger.debug(
            f"{operation}: page {pages} returned {len(page.items or [])} item(s)"
        )
        if not page.items:
            raise NotFoundError(not_found_message)
        items.extend(page.items)

        if page.next_cursor is None:
            return items

        if page.next_cursor in seen_cursors:
            raise PaginationError(
                f"Could not {operation}: cursor repeated after {pages} pages"
            )
        seen_cursors.add(page.next_cursor)
        request = dataclasses.replace(request, cursor=page.next_cursor)
