"""Metrics side channel: observers of per-call metric records."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

MetricsObserver = Callable[[str, List[Dict[str, Any]]], None]
"""Called with the function name and its enriched metric records."""


def enrich_metrics(
    name: str,
    records: Iterable[Mapping[str, Any]],
    base: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Return new records carrying *base* fields and ``fnId``.

    The incoming records are left untouched.
    """
    base = base or {}
    return [{**record, **base, "fnId": name} for record in records]


class MetricsDispatcher:
    """Fan metric events out to registered observers.

    Registration is append-only. Each observer gets its own list of
    enriched records. An observer that raises is logged and skipped; the run
    that produced the metrics carries on.
    """

    def __init__(self, observers: Iterable[MetricsObserver] = ()) -> None:
        self._observers: List[MetricsObserver] = list(observers)

    def subscribe(self, observer: MetricsObserver) -> None:
        self._observers.append(observer)

    def __len__(self) -> int:
        return len(self._observers)

    def emit(
        self,
        name: str,
        records: Iterable[Mapping[str, Any]],
        base: Optional[Mapping[str, Any]] = None,
    ) -> None:
        records = list(records)
        for observer in list(self._observers):
            try:
                observer(name, enrich_metrics(name, records, base))
            except Exception:
                logger.error("Failed to emit metrics for %s", name, exc_info=True)
