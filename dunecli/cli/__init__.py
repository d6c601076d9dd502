"""CLI interface using Typer.

Available commands:
    - execute: Execute a query, print the execution ID
    - get-status: Execution status
    - get-results: Results preview / all rows, optional CSV export
    - execute-get-results: Execute and wait for the results
    - get-materialized-view: Materialized view metadata

Usage:
    dune-cli execute --query-id 3998990 --engine-size large
    dune-cli get-results --id 01J5ZMD33P6J413G1KQM6QTE4S --peak true --path-csv out.csv
    dune-cli execute-get-results --query-id 3998990 --poll-interval 10
"""

import typer


def create_app() -> typer.Typer:
    """Create the CLI application.

    Lazy import로 커맨드 모듈을 필요할 때만 로드합니다.
    """
    from dunecli.cli.commands import app

    return app


def main() -> None:
    """Entry point for the ``dune-cli`` console script."""
    app = create_app()
    app()
