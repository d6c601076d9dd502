"""Dune Analytics API module.

Exports:
    - AsyncDuneClient: HTTP client for the Dune API v1
    - QueryExecutor: Submit executions, wait for completion
    - ResultFetcher: Status and results (preview or all pages)
    - save_csv: Write a ResultSet to CSV
    - Models: EngineSize, ExecutionState, ExecutionRequest, ResultSet, ...
"""

from dunecli.dune.client import AsyncDuneClient, results_endpoint
from dunecli.dune.executor import QueryExecutor
from dunecli.dune.fetcher import ResultFetcher
from dunecli.dune.models import (
    EngineSize,
    ExecutionHandle,
    ExecutionRequest,
    ExecutionState,
    ExecutionStatus,
    MaterializedView,
    ResultMetadata,
    ResultPage,
    ResultSet,
    ResultsFilter,
    parse_params,
)
from dunecli.dune.storage import save_csv, stringify_value

__all__ = [
    "AsyncDuneClient",
    "EngineSize",
    "ExecutionHandle",
    "ExecutionRequest",
    "ExecutionState",
    "ExecutionStatus",
    "MaterializedView",
    "QueryExecutor",
    "ResultFetcher",
    "ResultMetadata",
    "ResultPage",
    "ResultSet",
    "ResultsFilter",
    "parse_params",
    "results_endpoint",
    "save_csv",
    "stringify_value",
]
