"""gameanchor CLI — Typer-based command-line interface.

Provides the ``gameanchor`` command with subcommands for uploading a
folder, deriving a wallet's metadata account, checking configuration, and
serving the HTTP API.

All output uses Rich for formatted terminal display.
"""
