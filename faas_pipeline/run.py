"""PipelineRun, the recursive interpreter for one execution of a pipeline.

Used by :class:`~faas_pipeline.session.FaasPipeline`; not part of the public
surface on its own.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Awaitable, List, Mapping, Optional

from .errors import (
    AlreadyRan,
    BranchFailure,
    FaasPipelineError,
    RemoteInvocationFailure,
    StageFailure,
)
from .invoker import RemoteInvoker
from .metrics import MetricsDispatcher
from .nodes import Control, Leaf, Pipe, Split, classify, control_node

logger = logging.getLogger(__name__)


class PipelineRun:
    """Execute a pipeline definition against a single payload, exactly once.

    Control nodes are resolved lazily as the interpreter reaches them, so a
    bad node deep in a pipe is only reported after the stages before it have
    run.

    Args:
        invoker: Executes leaf nodes.
        pipeline_root: Raw definition; must be a ``~split`` or ``~pipe`` node.
        payload: Initial payload.
        metrics: Receives metric records returned next to leaf results.
        metrics_base: Extra fields merged into every metric record.
    """

    def __init__(
        self,
        invoker: RemoteInvoker,
        pipeline_root: Any,
        payload: Any,
        *,
        metrics: Optional[MetricsDispatcher] = None,
        metrics_base: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self._invoker = invoker
        self._pipeline_root = pipeline_root
        self._payload = payload
        self._metrics = metrics
        self._metrics_base = dict(metrics_base or {})
        self._already_ran = False

    @property
    def already_ran(self) -> bool:
        return self._already_ran

    def run(self) -> Awaitable[Any]:
        """Start the run and return an awaitable for its result.

        Raises:
            AlreadyRan: immediately, if this run was started before.
        """
        if self._already_ran:
            raise AlreadyRan()

        self._already_ran = True
        return self._run_control_node(self._pipeline_root, self._payload)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _run_control_node(self, node: Any, payload: Any) -> Any:
        control = control_node(node)
        if isinstance(control, Split):
            return await self._run_split(control, payload)
        return await self._run_pipe(control, payload)

    async def _execute(self, leaf: Leaf, payload: Any) -> Any:
        try:
            response = await self._invoker.invoke(leaf.name, leaf.params, payload)
        except RemoteInvocationFailure:
            raise
        except Exception as exc:
            raise RemoteInvocationFailure(str(exc), function=leaf.name) from exc

        # Metrics go to observers only, never into the payload.
        if response.metrics and self._metrics is not None:
            self._metrics.emit(leaf.name, response.metrics, self._metrics_base)

        return response.result

    # ------------------------------------------------------------------
    # Split
    # ------------------------------------------------------------------

    @staticmethod
    def _clone(payload: Any) -> Any:
        cloned = copy.deepcopy(payload)
        return {} if cloned is None else cloned

    async def _run_split(self, split: Split, payload: Any) -> List[Any]:
        # Each branch gets its own copy taken at fan-out time.
        branches = [(item, self._clone(payload)) for _, item in split.branches]
        logger.debug("Split fan-out over %d branches", len(branches))

        # gather() resolves in declaration order and fails on the first error
        # without waiting for the remaining branches.
        results = await asyncio.gather(
            *(self._run_branch(item, cloned) for item, cloned in branches)
        )
        return list(results)

    async def _run_branch(self, item: Any, payload: Any) -> Any:
        branch = classify(item)

        if isinstance(branch, Control):
            try:
                return await self._run_control_node(branch.node, payload)
            except FaasPipelineError as exc:
                raise BranchFailure(exc) from exc

        try:
            return await self._execute(branch, payload)
        except FaasPipelineError as exc:
            raise BranchFailure(exc, function=branch.name) from exc

    # ------------------------------------------------------------------
    # Pipe
    # ------------------------------------------------------------------

    async def _run_pipe(self, pipe: Pipe, payload: Any) -> Any:
        current = payload

        for index, item in enumerate(pipe.stages, start=1):
            stage = classify(item)
            logger.debug("Pipe stage %d/%d", index, len(pipe.stages))

            if isinstance(stage, Control):
                try:
                    current = await self._run_control_node(stage.node, current)
                except FaasPipelineError as exc:
                    raise StageFailure(exc) from exc
                continue

            try:
                current = await self._execute(stage, current)
            except FaasPipelineError as exc:
                raise StageFailure(exc, function=stage.name) from exc

        return current
