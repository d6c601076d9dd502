"""CLI commands for the Dune Analytics API.

Commands:
    - execute: Submit a query execution, print the execution ID
    - get-status: Show the status of an execution
    - get-results: Fetch results (preview or all rows), optionally save as CSV
    - execute-get-results: Submit, wait for completion, fetch results
    - get-materialized-view: Show materialized view metadata

Every command is one short-lived asyncio.run() around a single client.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, NoReturn

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dunecli.config.settings import DuneSettings, get_settings, resolve_api_key
from dunecli.core.exceptions import DuneCliError, ValidationError
from dunecli.core.logger import setup_logger_from_config
from dunecli.dune.client import AsyncDuneClient
from dunecli.dune.executor import QueryExecutor
from dunecli.dune.fetcher import ResultFetcher
from dunecli.dune.models import ExecutionRequest, ResultsFilter
from dunecli.dune.storage import save_csv, stringify_value
from dunecli.logging.config import LoggingConfig, get_logging_config

if TYPE_CHECKING:
    from dunecli.dune.models import (
        ExecutionHandle,
        ExecutionStatus,
        MaterializedView,
        ResultSet,
    )

console = Console()
_MAX_DISPLAY_ROWS = 100

_TRUE_VALUES = {"true", "t", "1", "yes", "y"}
_FALSE_VALUES = {"false", "f", "0", "no", "n"}

app = typer.Typer(
    name="dune-cli",
    help="Small CLI tool for executing commands of the Dune API Client.",
    no_args_is_help=True,
)

ApiKeyOption = Annotated[
    str | None,
    typer.Option(
        "--api-key",
        "-k",
        help="Dune API key. Falls back to DUNE_API_KEY (environment, then .env).",
        show_default=False,
    ),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging")]
EngineSizeOption = Annotated[
    str | None,
    typer.Option("--engine-size", help="Engine size: medium or large (default: medium)"),
]
ParamsOption = Annotated[
    str | None,
    typer.Option("--params", help='Query parameters as a JSON object, e.g. \'{"limit": 10}\''),
]
PeakOption = Annotated[
    str,
    typer.Option("--peak", "-p", help="true: all rows, false: first 10 rows only"),
]
PathCsvOption = Annotated[
    Path | None,
    typer.Option("--path-csv", help="Save the rows to this CSV file (overwritten)"),
]
FilterOption = Annotated[
    str | None,
    typer.Option("--filter", "-f", help="Server-side filter expression, e.g. 'amount > 100'"),
]
ColumnsOption = Annotated[
    str | None,
    typer.Option("--columns", help="Comma-separated list of columns to return"),
]
SortByOption = Annotated[
    str | None,
    typer.Option("--sort-by", help="Sort expression, e.g. 'amount desc'"),
]


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def parse_bool(value: str, *, option: str = "--peak") -> bool:
    """``true``/``false`` 형태의 CLI 값 → bool.

    Raises:
        ValidationError: 해석할 수 없는 값
    """
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    msg = f"Invalid value for {option}: expected true or false"
    raise ValidationError(msg, context={option: value})


def _build_results_filter(
    filters: str | None, columns: str | None, sort_by: str | None
) -> ResultsFilter | None:
    column_list = [c.strip() for c in columns.split(",") if c.strip()] if columns else None
    if not (filters or column_list or sort_by):
        return None
    return ResultsFilter(filters=filters, columns=column_list, sort_by=sort_by)


def _load_config() -> tuple[DuneSettings, LoggingConfig]:
    """환경 변수/.env 에서 설정 로드.

    Raises:
        ValidationError: 환경 변수 값이 잘못된 경우 (e.g. REQUEST_TIMEOUT=abc)
    """
    try:
        return get_settings(), get_logging_config()
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        msg = f"Invalid configuration: {field}: {error['msg']}"
        raise ValidationError(msg, context={"errors": e.error_count()}) from e


def _prepare(api_key: str | None, *, verbose: bool) -> tuple[DuneSettings, str]:
    """로거 설정 후 (settings, API key) 반환.

    로깅은 LOG_* 환경 변수를 따르며, --verbose 는 콘솔 레벨만 DEBUG 로 올립니다.
    """
    settings, log_config = _load_config()
    if verbose:
        log_config = log_config.model_copy(update={"console_level": "DEBUG"})
    setup_logger_from_config(log_config)
    return settings, resolve_api_key(api_key, settings)


def _build_client(settings: DuneSettings, api_key: str) -> AsyncDuneClient:
    return AsyncDuneClient(
        api_key,
        base_url=settings.dune_api_url,
        timeout=settings.request_timeout,
    )


def _build_fetcher(client: AsyncDuneClient, settings: DuneSettings) -> ResultFetcher:
    return ResultFetcher(
        client,
        preview_rows=settings.preview_rows,
        page_size=settings.page_size,
    )


def _fail(error: DuneCliError) -> NoReturn:
    """에러 출력 후 종료 (ValidationError → 2, 그 외 → 1)."""
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    code = 2 if isinstance(error, ValidationError) else 1
    raise typer.Exit(code=code) from error


def _display_rows(result: ResultSet) -> None:
    """결과 행을 Rich table로 출력."""
    table = Table(title=f"Results ({result.row_count:,} rows)", show_header=True)
    for column in result.columns:
        table.add_column(column, overflow="fold")

    for row in result.rows[:_MAX_DISPLAY_ROWS]:
        table.add_row(*(escape(stringify_value(row.get(col))) for col in result.columns))

    console.print(table)
    if result.row_count > _MAX_DISPLAY_ROWS:
        console.print(
            f"[dim]... and {result.row_count - _MAX_DISPLAY_ROWS:,} more rows "
            "(use --path-csv to save all)[/dim]"
        )


def _report_result(result: ResultSet, path_csv: Path | None, settings: DuneSettings) -> None:
    """결과 출력 또는 CSV 저장.

    완료되지 않은 실행은 상태만 보고합니다 (파일 미작성, exit 0).
    실패/취소/만료 상태는 exit 1.
    """
    if not result.is_completed:
        if result.state.is_failed:
            console.print(
                f"[bold red]Execution {escape(result.execution_id)} "
                f"ended with {result.state}[/bold red]"
            )
            raise typer.Exit(code=1)
        console.print(
            f"[yellow]Execution {escape(result.execution_id)} is not completed yet "
            f"({result.state}). Re-run the command later.[/yellow]"
        )
        return

    if path_csv is not None:
        path = save_csv(result, path_csv, delimiter=settings.csv_delimiter)
        console.print(
            f"[green]Results saved to CSV:[/green] {escape(str(path))} ({result.row_count:,} rows)"
        )
        return

    _display_rows(result)


# ---------------------------------------------------------------------------
# execute
# ---------------------------------------------------------------------------


async def _execute(settings: DuneSettings, api_key: str, request: ExecutionRequest) -> ExecutionHandle:
    async with _build_client(settings, api_key) as client:
        return await QueryExecutor(client).submit(request)


@app.command()
def execute(
    query_id: Annotated[
        int, typer.Option("--query-id", "--id", help="ID of the query to execute")
    ],
    engine_size: EngineSizeOption = None,
    params: ParamsOption = None,
    api_key: ApiKeyOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Execute a query with the Dune API and print the execution ID.

    Example:
        dune-cli execute --query-id 3998990 --params '{"min_lp_value_usd": 1000000000}'
    """
    try:
        request = ExecutionRequest.build(query_id, engine_size, params)
        settings, key = _prepare(api_key, verbose=verbose)
        handle = asyncio.run(_execute(settings, key, request))
    except DuneCliError as e:
        _fail(e)

    console.print(f"[green]Execution ID:[/green] {escape(handle.execution_id)}")
    console.print(f"State: {handle.state}")


# ---------------------------------------------------------------------------
# get-status
# ---------------------------------------------------------------------------


async def _get_status(settings: DuneSettings, api_key: str, execution_id: str) -> ExecutionStatus:
    async with _build_client(settings, api_key) as client:
        return await _build_fetcher(client, settings).status(execution_id)


@app.command()
def get_status(
    execution_id: Annotated[str, typer.Option("--id", help="Execution ID")],
    api_key: ApiKeyOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Retrieve the execution status of a previously executed query."""
    try:
        settings, key = _prepare(api_key, verbose=verbose)
        status = asyncio.run(_get_status(settings, key, execution_id))
    except DuneCliError as e:
        _fail(e)

    table = Table(title="Execution Status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Execution ID", escape(status.execution_id))
    table.add_row("Query ID", str(status.query_id))
    table.add_row("State", str(status.state))
    table.add_row("Finished", str(status.is_execution_finished).lower())
    table.add_row("Submitted at", status.submitted_at or "-")
    table.add_row("Ended at", status.execution_ended_at or "-")
    if status.result_metadata is not None:
        table.add_row("Rows", f"{status.result_metadata.total_row_count:,}")
        table.add_row("Columns", escape(", ".join(status.result_metadata.column_names)))
    console.print(table)


# ---------------------------------------------------------------------------
# get-results
# ---------------------------------------------------------------------------


async def _get_results(
    settings: DuneSettings,
    api_key: str,
    identifier: str,
    *,
    peak: bool,
    results_filter: ResultsFilter | None,
) -> ResultSet:
    async with _build_client(settings, api_key) as client:
        fetcher = _build_fetcher(client, settings)
        return await fetcher.fetch(identifier, peak=peak, results_filter=results_filter)


@app.command()
def get_results(
    identifier: Annotated[
        str,
        typer.Option(
            "--id",
            help="Execution ID, or a query ID for the results of its latest execution",
        ),
    ],
    peak: PeakOption = "false",
    path_csv: PathCsvOption = None,
    filters: FilterOption = None,
    columns: ColumnsOption = None,
    sort_by: SortByOption = None,
    api_key: ApiKeyOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Retrieve results for a previously executed query.

    Example:
        dune-cli get-results --id 3998990 --peak true --path-csv outputs/test.csv
    """
    try:
        want_all = parse_bool(peak)
        results_filter = _build_results_filter(filters, columns, sort_by)
        settings, key = _prepare(api_key, verbose=verbose)
        result = asyncio.run(
            _get_results(settings, key, identifier, peak=want_all, results_filter=results_filter)
        )
        _report_result(result, path_csv, settings)
    except DuneCliError as e:
        _fail(e)


# ---------------------------------------------------------------------------
# execute-get-results
# ---------------------------------------------------------------------------


async def _execute_get_results(
    settings: DuneSettings,
    api_key: str,
    request: ExecutionRequest,
    *,
    peak: bool,
    poll_interval: float,
    results_filter: ResultsFilter | None,
) -> ResultSet:
    async with _build_client(settings, api_key) as client:
        executor = QueryExecutor(
            client, poll_interval=poll_interval, max_polls=settings.max_polls
        )
        return await executor.execute_and_wait(
            request,
            _build_fetcher(client, settings),
            peak=peak,
            results_filter=results_filter,
        )


@app.command()
def execute_get_results(
    query_id: Annotated[
        int, typer.Option("--query-id", "--id", help="ID of the query to execute")
    ],
    engine_size: EngineSizeOption = None,
    params: ParamsOption = None,
    peak: PeakOption = "false",
    path_csv: PathCsvOption = None,
    poll_interval: Annotated[
        float | None,
        typer.Option("--poll-interval", help="Seconds between status polls (default: 5)"),
    ] = None,
    filters: FilterOption = None,
    api_key: ApiKeyOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Execute a query and wait until the results are ready."""
    try:
        request = ExecutionRequest.build(query_id, engine_size, params)
        want_all = parse_bool(peak)
        if poll_interval is not None and poll_interval < 0:
            msg = "--poll-interval must be >= 0"
            raise ValidationError(msg, context={"poll_interval": poll_interval})
        settings, key = _prepare(api_key, verbose=verbose)
        console.print(
            Panel.fit(
                f"[bold]Execute & Wait[/bold]\nQuery: {request.query_id}\n"
                f"Engine: {request.engine_size}",
                border_style="magenta",
            )
        )
        result = asyncio.run(
            _execute_get_results(
                settings,
                key,
                request,
                peak=want_all,
                poll_interval=settings.poll_interval if poll_interval is None else poll_interval,
                results_filter=_build_results_filter(filters, None, None),
            )
        )
        _report_result(result, path_csv, settings)
    except DuneCliError as e:
        _fail(e)


# ---------------------------------------------------------------------------
# get-materialized-view
# ---------------------------------------------------------------------------


async def _get_materialized_view(
    settings: DuneSettings, api_key: str, name: str
) -> MaterializedView:
    async with _build_client(settings, api_key) as client:
        return await client.get_materialized_view(name)


@app.command()
def get_materialized_view(
    name: Annotated[str, typer.Option("--id", help="Materialized view name, e.g. dune.team.result_x")],
    api_key: ApiKeyOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Retrieve metadata of a materialized view."""
    try:
        settings, key = _prepare(api_key, verbose=verbose)
        view = asyncio.run(_get_materialized_view(settings, key, name))
    except DuneCliError as e:
        _fail(e)

    console.print(
        Panel(
            escape(view.model_dump_json(indent=2)),
            title=f"Materialized view {escape(view.id)}",
            border_style="cyan",
        )
    )
