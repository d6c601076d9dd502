"""Dune CLI - Entry Point.

Small CLI tool for executing commands of the Dune API Client.

Usage:
    python main.py execute --query-id 3998990 --params '{"min_lp_value_usd": 1000000000}'
    python main.py get-status --id 01J5ZMD33P6J413G1KQM6QTE4S
    python main.py get-results --id 3998990 --peak true --path-csv outputs/test.csv
    python main.py execute-get-results --query-id 3998990
"""

from dunecli.cli import create_app

app = create_app()


if __name__ == "__main__":
    app()
