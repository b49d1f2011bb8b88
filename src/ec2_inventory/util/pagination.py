from __future__ import annotations

from typing import Callable, Generator, Optional, Tuple, TypeVar

T = TypeVar("T")


def paginate_pages(
    fetch: Callable[[Optional[str]], Tuple[T, Optional[str]]],
    *,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Generator[T, None, None]:
    """
    Generic paginator yielding one value per page from a fetch(page_token) function.
    The fetch function must return (page_value, next_page_token). The first call
    receives None; every later call receives exactly the token of the prior page.
    If next_page_token is falsy, pagination stops.

    When fetch raises and on_error is given, on_error receives the exception and
    the sequence ends without yielding anything for the failed page. Without
    on_error the exception propagates to the consumer.
    """
    page: Optional[str] = None
    while True:
        try:
            value, next_page = fetch(page)
        except Exception as e:
            if on_error is None:
                raise
            on_error(e)
            return
        yield value
        if not next_page:
            break
        page = next_page
