"""Concurrent, order-preserving store queries."""

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from kube_vault.models import Report, ResolvedSecret

T = TypeVar("T")

DEFAULT_WORKERS = 4


def map_in_order(func: Callable[[ResolvedSecret], T], secrets: Sequence[ResolvedSecret], workers: int) -> list[T]:
    """Apply ``func`` to every secret, possibly in parallel.

    Results come back in the order of ``secrets`` no matter which call
    finishes first.

    Args:
        func: The per-secret store query.
        secrets: The resolved secrets to query.
        workers: Maximum number of concurrent queries; 1 runs sequentially.

    Returns:
        One result per secret, in input order.

    """
    if workers <= 1 or len(secrets) <= 1:
        return [func(secret) for secret in secrets]
    with ThreadPoolExecutor(max_workers=min(workers, len(secrets))) as pool:
        return list(pool.map(func, secrets))


def merge_reports(reports: Sequence[Report]) -> Report:
    """Concatenate partial reports into one, keeping their order."""
    merged = Report()
    for report in reports:
        merged.extend(report)
    return merged
