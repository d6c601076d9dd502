"""Result fetcher for Dune executions.

Fetches:
- Execution status (single request)
- Results preview (first ``preview_rows`` rows, single request)
- Full results (pages of ``page_size`` rows, following ``next_offset``)

An execution that has not completed is not an error: the fetcher returns
a ResultSet carrying the current state and no rows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dunecli.core.exceptions import ApiError
from dunecli.dune.models import ExecutionStatus, JsonRow, ResultSet, ResultsFilter
from dunecli.logging.context import get_dune_logger

if TYPE_CHECKING:
    from dunecli.dune.client import AsyncDuneClient

DEFAULT_PREVIEW_ROWS = 10
DEFAULT_PAGE_SIZE = 1000


class ResultFetcher:
    """Dune execution result fetcher.

    Client is injected for testability.

    Example:
        >>> async with AsyncDuneClient(api_key) as client:
        ...     fetcher = ResultFetcher(client)
        ...     result = await fetcher.fetch("01J5ZMD33P6J413G1KQM6QTE4S", peak=True)
    """

    def __init__(
        self,
        client: AsyncDuneClient,
        *,
        preview_rows: int = DEFAULT_PREVIEW_ROWS,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialize fetcher.

        Args:
            client: Initialized AsyncDuneClient instance.
            preview_rows: Rows returned when peak is False.
            page_size: Rows per request when peak is True.
        """
        self._client = client
        self._preview_rows = preview_rows
        self._page_size = page_size

    async def status(self, execution_id: str) -> ExecutionStatus:
        """Fetch the current status of an execution."""
        log = get_dune_logger(execution_id=execution_id)
        status = await self._client.get_execution_status(execution_id)
        log.info(f"Execution {status.execution_id} state: {status.state}")
        return status

    async def fetch(
        self,
        identifier: str,
        *,
        peak: bool = False,
        results_filter: ResultsFilter | None = None,
    ) -> ResultSet:
        """Fetch results of an execution (or of the latest execution of a query).

        Args:
            identifier: Execution ID, or numeric query ID.
            peak: True → all rows, False → first ``preview_rows`` rows.
            results_filter: Optional server-side filters.

        Returns:
            ResultSet. ``rows`` is empty unless the execution completed.

        Raises:
            ApiError: Pagination offsets do not advance.
        """
        limit = self._page_size if peak else self._preview_rows

        page = await self._client.get_results_page(
            identifier, limit=limit, offset=0, results_filter=results_filter
        )
        log = get_dune_logger(execution_id=page.execution_id)

        if not page.state.is_completed or page.result is None:
            log.info(f"Execution {page.execution_id} has no results (state={page.state})")
            return ResultSet(execution_id=page.execution_id, state=page.state)

        rows: list[JsonRow] = list(page.result.rows)
        columns = list(page.result.metadata.column_names)

        if peak:
            offset = 0
            next_offset = page.next_offset
            while next_offset is not None:
                if next_offset <= offset:
                    msg = "Dune API returned a non-advancing next_offset"
                    raise ApiError(msg, context={"offset": offset, "next_offset": next_offset})
                log.info(f"{len(rows)} records processed...")
                offset = next_offset
                page = await self._client.get_results_page(
                    identifier, limit=limit, offset=offset, results_filter=results_filter
                )
                if page.result is not None:
                    rows.extend(page.result.rows)
                next_offset = page.next_offset
        else:
            rows = rows[: self._preview_rows]

        if not columns and rows:
            columns = list(rows[0].keys())

        log.info(f"Fetched {len(rows)} rows ({'all' if peak else 'preview'})")
        return ResultSet(
            execution_id=page.execution_id,
            state=page.state,
            rows=rows,
            columns=columns,
        )
