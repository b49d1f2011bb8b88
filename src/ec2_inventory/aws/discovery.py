from __future__ import annotations

from typing import Callable, Iterator, List, Optional, Tuple

from ..logging import get_logger
from ..normalize.schema import DEFAULT_PAGE_SIZE, Details, PageRequest, PageResult
from ..normalize.transform import flatten_reservations
from ..util.concurrency import parallel_map_ordered
from ..util.pagination import paginate_pages
from .clients import FetcherFactory, PageFetcher
from .regions import resolve_regions

LOG = get_logger(__name__)


def iter_instance_pages(
    fetch_page: PageFetcher,
    region: str,
    *,
    page_size: Optional[int] = DEFAULT_PAGE_SIZE,
) -> Iterator[Optional[List[Details]]]:
    """
    Lazily describe instances in one region, yielding one flattened page at a time.
    - The first request carries no continuation token; each later request echoes
      the token returned by the previous page.
    - Stops after the first page without a NextToken.
    - A failed fetch ends the sequence; the failed page yields nothing.
    Each item is None when the page had no Reservations list at all.
    Only fetch errors end the sequence; flattening errors propagate.
    """
    base = PageRequest(max_results=page_size)

    def fetch(token: Optional[str]) -> Tuple[PageResult, Optional[str]]:
        result = fetch_page(base.with_token(token))
        return result, result.next_token

    def _stop(exc: Exception) -> None:
        LOG.warning(
            "Instance pagination stopped early; region results truncated",
            extra={"region": region, "error": str(exc)},
        )

    for page in paginate_pages(fetch, on_error=_stop):
        yield flatten_reservations(page.reservations, region)


def collect_region(
    region: str,
    fetch_page: PageFetcher,
    *,
    page_size: Optional[int] = DEFAULT_PAGE_SIZE,
) -> List[Details]:
    """
    Drain one region's pages into a single ordered list. Page fetch failures
    truncate the result to the pages already fetched and are not raised.
    """
    out: List[Details] = []
    for page in iter_instance_pages(fetch_page, region, page_size=page_size):
        if page:
            out.extend(page)
    LOG.debug("Collected region", extra={"region": region, "count": len(out)})
    return out


def collect_instances(
    selector: str,
    make_fetcher: FetcherFactory,
    *,
    page_size: Optional[int] = DEFAULT_PAGE_SIZE,
    max_workers: int = 1,
    on_region_done: Optional[Callable[[str, int], None]] = None,
) -> List[Details]:
    """
    Collect instances for a single region or for every catalog region ('all').

    The selector is validated before any fetcher is created. Results are
    concatenated in catalog order regardless of max_workers.
    """
    regions = resolve_regions(selector)

    def _one(region: str) -> List[Details]:
        details = collect_region(region, make_fetcher(region), page_size=page_size)
        if on_region_done is not None:
            on_region_done(region, len(details))
        return details

    out: List[Details] = []
    for details in parallel_map_ordered(_one, regions, max_workers=max_workers):
        out.extend(details)
    return out
