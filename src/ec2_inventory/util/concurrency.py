from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def parallel_map_ordered(
    func: Callable[[T], R],
    items: Sequence[T] | Iterable[T],
    max_workers: int,
) -> List[R]:
    """
    Execute func over items and return results preserving the input order.
    Exceptions from workers are propagated.

    max_workers <= 1 runs items one after another in the calling thread, each
    fully finished before the next starts. Otherwise a thread pool with a
    sliding window of futures is used so large iterables are not materialized.
    """
    if max_workers <= 1:
        return [func(item) for item in items]

    results: List[R] = []
    iterator = iter(items)
    inflight: Dict[Future[R], int] = {}
    pending: Dict[int, R] = {}
    next_index = 0
    submitted = 0

    def _submit_next() -> bool:
        nonlocal submitted
        try:
            item = next(iterator)
        except StopIteration:
            return False
        inflight[executor.submit(func, item)] = submitted
        submitted += 1
        return True

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for _ in range(max_workers):
            if not _submit_next():
                break

        while inflight:
            done, _ = wait(inflight.keys(), return_when=FIRST_COMPLETED)
            for fut in done:
                idx = inflight.pop(fut)
                try:
                    pending[idx] = fut.result()
                except BaseException:
                    for pending_fut in inflight:
                        pending_fut.cancel()
                    raise
            for _ in range(len(done)):
                if not _submit_next():
                    break
            while next_index in pending:
                results.append(pending.pop(next_index))
                next_index += 1

    return results
