"""Split/pipe pipelines of remote functions.

Public surface::

    from faas_pipeline import (
        FaasPipeline,
        PipelineSettings,
        HttpInvoker,
        RemoteInvoker,
        InvocationResponse,
        Leaf,
        Split,
        Pipe,
        parse_tree,
        FaasPipelineError,
        PipelineConfigError,
        BranchFailure,
        StageFailure,
    )
"""

from .config import PipelineSettings
from .errors import (
    AlreadyRan,
    BranchFailure,
    ContractViolation,
    EmptyPipe,
    EmptySplit,
    FaasPipelineError,
    InvalidParams,
    MalformedNode,
    PipelineConfigError,
    RemoteInvocationFailure,
    StageFailure,
    UnknownControlNodeType,
)
from .invoker import HttpInvoker, InvocationResponse, RemoteInvoker
from .metrics import MetricsDispatcher, MetricsObserver, enrich_metrics
from .nodes import PIPE_KEY, SPLIT_KEY, Leaf, Pipe, Split, parse_tree
from .run import PipelineRun
from .session import FaasPipeline

__version__ = "0.1.0"

__all__ = [
    # Session
    "FaasPipeline",
    "PipelineRun",
    "PipelineSettings",
    # Definition
    "Leaf",
    "Split",
    "Pipe",
    "SPLIT_KEY",
    "PIPE_KEY",
    "parse_tree",
    # Remote invocation
    "HttpInvoker",
    "RemoteInvoker",
    "InvocationResponse",
    # Metrics
    "MetricsDispatcher",
    "MetricsObserver",
    "enrich_metrics",
    # Errors
    "FaasPipelineError",
    "PipelineConfigError",
    "MalformedNode",
    "UnknownControlNodeType",
    "InvalidParams",
    "EmptySplit",
    "EmptyPipe",
    "RemoteInvocationFailure",
    "ContractViolation",
    "BranchFailure",
    "StageFailure",
    "AlreadyRan",
]
