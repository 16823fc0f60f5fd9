"""Batch execution: call executor, result aggregator, operation dispatcher."""

from callbatch.execution.aggregator import FailurePolicy, ResultAggregator
from callbatch.execution.dispatcher import OperationDispatcher
from callbatch.execution.executor import CallExecutor

__all__ = [
    "CallExecutor",
    "FailurePolicy",
    "ResultAggregator",
    "OperationDispatcher",
]
