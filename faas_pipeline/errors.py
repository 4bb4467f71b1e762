"""Exception hierarchy for pipeline definition, execution and transport errors."""

from __future__ import annotations

from typing import Optional


class FaasPipelineError(Exception):
    """Base class for every error raised by a pipeline run."""


# ---------------------------------------------------------------------------
# Definition errors ("Bad FaaS pipeline")
# ---------------------------------------------------------------------------


class PipelineConfigError(FaasPipelineError):
    """The pipeline definition has the wrong shape at some node."""


class MalformedNode(PipelineConfigError):
    """Node is not a mapping, or does not have exactly one key."""


class UnknownControlNodeType(PipelineConfigError):
    """A control-node position holds a key other than ``~split``/``~pipe``."""

    def __init__(self, key: str) -> None:
        super().__init__(f'Bad FaaS pipeline: control node is of unknown type "{key}"')
        self.key = key


class InvalidParams(PipelineConfigError):
    """Leaf parameters are neither absent, ``None`` nor a mapping."""

    def __init__(self, function: str) -> None:
        super().__init__(f"Bad FaaS pipeline: params must be object for {function}")
        self.function = function


class EmptySplit(PipelineConfigError):
    def __init__(self) -> None:
        super().__init__("Bad FaaS pipeline: split node data must be non-empty object")


class EmptyPipe(PipelineConfigError):
    def __init__(self) -> None:
        super().__init__("Bad FaaS pipeline: pipe node data must be a non-empty array")


# ---------------------------------------------------------------------------
# Remote invocation
# ---------------------------------------------------------------------------


class RemoteInvocationFailure(FaasPipelineError):
    """A remote function call failed or returned an error body.

    Args:
        message: Text that ends up after ``failed with`` in wrapped errors.
        function: Name of the remote function that was called.
    """

    def __init__(self, message: str, *, function: Optional[str] = None) -> None:
        super().__init__(message)
        self.function = function


class ContractViolation(RemoteInvocationFailure):
    """The function answered, but not with ``{"result": ...}`` or ``{"error": ...}``."""


# ---------------------------------------------------------------------------
# Wrapping errors raised by the interpreter
# ---------------------------------------------------------------------------


class _WrappedFailure(FaasPipelineError):
    leaf_template = ""
    complex_template = ""

    def __init__(self, cause: BaseException, function: Optional[str] = None) -> None:
        if function is None:
            message = self.complex_template.format(cause=cause)
        else:
            message = self.leaf_template.format(function=function, cause=cause)
        super().__init__(message)
        self.function = function
        self.cause = cause


class BranchFailure(_WrappedFailure):
    """First failing branch of a split.

    ``function`` is the leaf's name, or ``None`` when the branch was a nested
    control node.
    """

    leaf_template = "Failure during split run: {function} failed with {cause}"
    complex_template = "Failure during complex split run: {cause}"


class StageFailure(_WrappedFailure):
    """Failing stage of a pipe; same conventions as :class:`BranchFailure`."""

    leaf_template = "Failure during pipe run: {function} failed with {cause}"
    complex_template = "Failure during complex pipe run: {cause}"


class AlreadyRan(FaasPipelineError):
    def __init__(self) -> None:
        super().__init__("FaasPipelineRun can be run only once")
