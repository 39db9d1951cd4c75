"""Main Typer application — imports and registers all CLI commands.

Entry point: ``gameanchor`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from gameanchor.cli.commands.address import address_cmd
from gameanchor.cli.commands.status import status_cmd
from gameanchor.cli.commands.upload import upload_cmd
from gameanchor.config import config

app = typer.Typer(
    name="gameanchor",
    help="gameanchor: pin a game build to IPFS and anchor its manifest on Solana.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Configure logging once for every command."""
    level = "DEBUG" if verbose else config.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )


# Register subcommands
app.command(name="upload", help="Upload a folder and anchor its manifest.")(upload_cmd)
app.command(name="address", help="Derive the metadata account for a wallet.")(address_cmd)
app.command(name="status", help="Show configuration checks.")(status_cmd)


@app.command(name="serve", help="Run the HTTP API with uvicorn.")
def serve_cmd(
    host: str = typer.Option(config.host, help="Interface to bind."),
    port: int = typer.Option(config.port, help="Port to bind."),
) -> None:
    """Serve ``POST /api/uploadFolder`` and ``POST /api/uploadFiles``."""
    import uvicorn

    from gameanchor.api.app import create_app

    uvicorn.run(create_app(config), host=host, port=port, log_level=config.log_level.lower())


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
