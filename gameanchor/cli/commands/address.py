"""``gameanchor address`` — derive a wallet's metadata account.

Pure and offline: the account is the program-derived address of
``[seed, wallet]`` under the program id.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from gameanchor.bridge.ledger import derive_metadata_address
from gameanchor.config import config
from gameanchor.core.errors import InvalidPublicKey

console = Console()


def address_cmd(
    pubkey: str = typer.Argument(..., help="Uploader wallet public key (base58)."),
    program_id: str = typer.Option(
        config.program_id,
        "--program-id",
        "-p",
        help="Game metadata program id.",
    ),
    seed: str = typer.Option(
        config.metadata_seed,
        "--seed",
        "-s",
        help="PDA seed prefix.",
    ),
) -> None:
    """Print the metadata account and bump for PUBKEY."""
    try:
        address, bump = derive_metadata_address(pubkey, program_id=program_id, seed=seed)
    except InvalidPublicKey as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)
    except ValueError as exc:
        console.print(f"[bold red]Invalid program id:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            "\n".join([
                f"[bold]Wallet:[/bold]   {pubkey}",
                f"[bold]Program:[/bold]  {program_id}",
                f"[bold]Seed:[/bold]     {seed}",
                "",
                f"[bold green]Account:[/bold green]  {address}",
                f"[bold]Bump:[/bold]     {bump}",
            ]),
            title="[bold]Metadata Account[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
