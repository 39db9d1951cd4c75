"""``gameanchor upload`` — upload a folder and anchor its manifest.

Runs the full pipeline in-process. Exits 0 when the content is pinned
(whether or not the on-chain write succeeded) and 1 on a fatal failure.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from gameanchor.api.schemas import ErrorResponse, UploadResponse
from gameanchor.bridge.signer import KeypairFileError, Signer
from gameanchor.config import AppConfig, config
from gameanchor.core.errors import PipelineError
from gameanchor.core.identity import SignerRegistry
from gameanchor.core.orchestrator import Orchestrator
from gameanchor.core.startup_check import StartupConfigError, inspect_startup
from gameanchor.models.files import UploadRequest
from gameanchor.monitor.renderer import ResultRenderer

console = Console()


def build_orchestrator(cfg: AppConfig) -> Orchestrator:
    """Build the orchestrator for a CLI run.

    This wrapper exists so tests can monkeypatch it with stub clients.
    """
    return Orchestrator.from_config(cfg)


def upload_cmd(
    folder: Path = typer.Argument(..., help="Folder to upload (a Godot HTML5 export)."),
    wallet: str = typer.Option(
        None,
        "--wallet",
        "-w",
        help="Uploader wallet public key (base58). Defaults to the --keypair wallet.",
    ),
    keypair: Path = typer.Option(
        None,
        "--keypair",
        "-k",
        help="Solana CLI keypair file to sign the metadata transaction with.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the HTTP-style JSON response instead of a Rich panel.",
    ),
) -> None:
    """Upload FOLDER to the pinning service and anchor its manifest on-chain.

    Without a wallet able to sign, the content is still pinned and the
    on-chain write is reported as skipped.
    """
    renderer = ResultRenderer(console)

    try:
        inspect_startup(config)
        registry = SignerRegistry.from_config(config)
        if keypair is not None:
            signer = Signer.from_keypair_file(keypair)
            registry.register(signer)
            wallet = wallet or signer.public_key
    except (StartupConfigError, KeypairFileError) as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    orchestrator = build_orchestrator(config)

    try:
        identity = registry.resolve(wallet)
        result = orchestrator.run(
            UploadRequest(root_path=str(folder), uploader_identity=identity)
        )
    except PipelineError as exc:
        if json_output:
            typer.echo(ErrorResponse.from_error(exc).model_dump_json(exclude_none=True))
        else:
            console.print(
                renderer.render_failure(str(exc), exc.details, exc.transitions, exc.run_id)
            )
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(UploadResponse.from_result(result).model_dump_json(by_alias=True))
        return

    console.print()
    renderer.print_result(result)
    console.print()
