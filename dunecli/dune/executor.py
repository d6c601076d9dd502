"""Query executor for Dune.

Submits executions and, for execute-and-wait, polls the execution status
at a fixed interval until it reaches a terminal state.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from dunecli.core.exceptions import ExecutionError, ValidationError, add_context_note
from dunecli.logging.context import get_dune_logger

if TYPE_CHECKING:
    from dunecli.dune.client import AsyncDuneClient
    from dunecli.dune.fetcher import ResultFetcher
    from dunecli.dune.models import (
        ExecutionHandle,
        ExecutionRequest,
        ExecutionStatus,
        ResultSet,
        ResultsFilter,
    )

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_POLLS = 120


class QueryExecutor:
    """Dune query executor.

    Example:
        >>> async with AsyncDuneClient(api_key) as client:
        ...     executor = QueryExecutor(client)
        ...     handle = await executor.submit(ExecutionRequest.build(3998990))
    """

    def __init__(
        self,
        client: AsyncDuneClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_polls: int = DEFAULT_MAX_POLLS,
    ) -> None:
        """Initialize executor.

        Raises:
            ValidationError: max_polls < 1 or poll_interval < 0
        """
        if max_polls < 1:
            msg = "max_polls must be >= 1"
            raise ValidationError(msg, context={"max_polls": max_polls})
        if poll_interval < 0:
            msg = "poll_interval must be >= 0"
            raise ValidationError(msg, context={"poll_interval": poll_interval})
        self._client = client
        self._poll_interval = poll_interval
        self._max_polls = max_polls

    async def submit(self, request: ExecutionRequest) -> ExecutionHandle:
        """Submit one execution. No retry on failure."""
        log = get_dune_logger(query_id=request.query_id)
        log.info(
            f"Submitting query {request.query_id} (engine={request.engine_size}, "
            f"params={request.parameters or {}})"
        )
        handle = await self._client.execute_query(request)
        get_dune_logger(execution_id=handle.execution_id).info(
            f"Execution submitted: {handle.execution_id} ({handle.state})"
        )
        return handle

    async def wait_for_completion(self, execution_id: str) -> ExecutionStatus:
        """Poll the execution status until it completes.

        Args:
            execution_id: Execution to watch.

        Returns:
            The completed ExecutionStatus.

        Raises:
            ExecutionError: Execution failed/cancelled/expired, or max_polls
                was reached first.
        """
        log = get_dune_logger(execution_id=execution_id)

        for attempt in range(1, self._max_polls + 1):
            status = await self._client.get_execution_status(execution_id)
            if status.state.is_completed:
                log.info(f"Execution finished after {attempt} poll(s)")
                return status
            if status.state.is_failed:
                raise ExecutionError(
                    f"Execution {execution_id} ended with {status.state}",
                    state=status.state.value,
                    context={"query_id": status.query_id},
                )
            log.info(
                f"Execution not finished yet ({status.state}), poll {attempt}/{self._max_polls}. "
                f"Waiting {self._poll_interval:g} seconds..."
            )
            if attempt < self._max_polls:
                await asyncio.sleep(self._poll_interval)

        raise ExecutionError(
            f"Execution {execution_id} did not finish after {self._max_polls} polls",
            state=status.state.value,
            context={"poll_interval": self._poll_interval},
        )

    async def execute_and_wait(
        self,
        request: ExecutionRequest,
        fetcher: ResultFetcher,
        *,
        peak: bool = False,
        results_filter: ResultsFilter | None = None,
    ) -> ResultSet:
        """Submit, wait for completion, then fetch results."""
        handle = await self.submit(request)
        await self.wait_for_completion(handle.execution_id)
        try:
            return await fetcher.fetch(
                handle.execution_id, peak=peak, results_filter=results_filter
            )
        except Exception as e:
            add_context_note(e, f"while fetching results of execution {handle.execution_id}")
            raise
