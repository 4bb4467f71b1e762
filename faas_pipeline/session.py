"""FaasPipeline: public entry point for running a pipeline definition."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

import httpx

from .invoker import HttpInvoker, RemoteInvoker
from .metrics import MetricsDispatcher, MetricsObserver
from .nodes import Pipe, Split, parse_tree
from .run import PipelineRun

if TYPE_CHECKING:
    from .config import PipelineSettings

logger = logging.getLogger(__name__)


class FaasPipeline:
    """A pipeline definition bound to a function gateway.

    The definition is only checked when it runs (or on :meth:`validate`),
    never at construction. Every :meth:`run` uses a fresh
    :class:`~faas_pipeline.run.PipelineRun`, so one session can serve any
    number of concurrent runs.

    Example::

        pipeline = FaasPipeline(
            "http://127.0.0.1:8080/function",
            {"~pipe": [{"extract": {}}, {"~split": [{"index": {}}, {"notify": None}]}]},
        )
        pipeline.on_metrics(lambda fn, records: print(fn, records))
        result = await pipeline.run({"document": "..."})

    Args:
        gateway_url: Base address; functions are called at ``<gateway_url>/<name>``.
        pipeline_root: Root ``~split`` or ``~pipe`` node.
        invoker: Custom leaf executor. Defaults to an :class:`HttpInvoker`.
        client: ``httpx.AsyncClient`` for the default invoker.
        timeout: Request timeout for the default invoker.
        metrics_base: Fields merged into every metric record.
        on_metrics: Observer registered right away.
    """

    def __init__(
        self,
        gateway_url: str,
        pipeline_root: Any,
        *,
        invoker: Optional[RemoteInvoker] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        metrics_base: Optional[Mapping[str, Any]] = None,
        on_metrics: Optional[MetricsObserver] = None,
    ) -> None:
        self.gateway_url = gateway_url
        self.pipeline_root = pipeline_root
        self.invoker: RemoteInvoker = invoker or HttpInvoker(
            gateway_url, client=client, timeout=timeout
        )
        self.metrics_base: Dict[str, Any] = dict(metrics_base or {})
        self._metrics = MetricsDispatcher([on_metrics] if on_metrics else ())

    @classmethod
    def from_settings(
        cls, settings: "PipelineSettings", pipeline_root: Any, **kwargs: Any
    ) -> "FaasPipeline":
        """Build a session from :class:`~faas_pipeline.config.PipelineSettings`."""
        kwargs.setdefault("timeout", settings.timeout)
        return cls(settings.gateway_url, pipeline_root, **kwargs)

    def on_metrics(self, observer: MetricsObserver) -> MetricsObserver:
        """Register *observer* for metric events. Usable as a decorator."""
        self._metrics.subscribe(observer)
        return observer

    async def get_metrics_base(self, payload: Any) -> Dict[str, Any]:
        """Per-run metric fields derived from the initial payload.

        Evaluated once per :meth:`run`; override in subclasses. Values here
        take precedence over ``metrics_base``.
        """
        return {}

    def validate(self) -> Union[Split, Pipe]:
        """Check the whole definition without calling any function."""
        return parse_tree(self.pipeline_root)

    async def run(self, payload: Any = None) -> Any:
        """Run the pipeline and return its result.

        A pipe resolves to its last stage's result, a split to the list of
        branch results in declaration order.

        Raises:
            FaasPipelineError: the first error met, wrapped once per
                split/pipe level it crossed.
        """
        if payload is None:
            payload = {}

        metrics_base = {**self.metrics_base, **(await self.get_metrics_base(payload))}
        pipeline_run = PipelineRun(
            self.invoker,
            self.pipeline_root,
            payload,
            metrics=self._metrics,
            metrics_base=metrics_base,
        )
        logger.debug("Starting pipeline run against %s", self.gateway_url)
        return await pipeline_run.run()
