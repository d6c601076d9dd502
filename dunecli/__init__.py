"""dune-cli - command-line client for the Dune Analytics API."""

__version__ = "0.1.0"
