"""``gameanchor status`` — report configuration checks.

Shows whether the pinning credential and a signer keypair are configured,
and which RPC node, program and gateway uploads will use. Never contacts
the network.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from gameanchor.bridge.signer import KeypairFileError, Signer, key_fingerprint
from gameanchor.config import AppConfig, config

console = Console()


def _check_store(cfg: AppConfig) -> tuple[bool, str]:
    if cfg.store_configured:
        return True, f"JWT set ({cfg.pinning_endpoint})"
    return False, "GAMEANCHOR_PINATA_JWT not set; uploads will fail"


def _check_signer(cfg: AppConfig) -> tuple[bool, str]:
    if cfg.signer_keypair_path is None:
        return False, "GAMEANCHOR_SIGNER_KEYPAIR_PATH not set; anchoring will be skipped"
    try:
        signer = Signer.from_keypair_file(cfg.signer_keypair_path)
    except KeypairFileError as exc:
        return False, str(exc)
    return True, f"{signer.public_key} (fingerprint: {key_fingerprint(signer.public_key)})"


def status_cmd() -> None:
    """Show configuration checks for the pinning service and the ledger."""
    checks: list[tuple[str, bool | None, str]] = []

    ok, detail = _check_store(config)
    checks.append(("Pinning credential", ok, detail))

    ok, detail = _check_signer(config)
    checks.append(("Signer keypair", ok, detail))

    checks.append(("RPC URL", None, config.solana_rpc_url))
    checks.append(("Program id", None, config.program_id))
    checks.append(("Gateway", None, config.gateway_base))
    checks.append(("Environment", None, config.environment))

    table = Table(
        show_header=True,
        header_style="bold cyan",
        expand=True,
    )
    table.add_column("Check", min_width=18)
    table.add_column("Status", width=10, justify="center")
    table.add_column("Details")

    all_ok = True
    for name, ok, detail in checks:
        if ok is None:
            status = "[dim]-[/dim]"
        elif ok:
            status = "[green]OK[/green]"
        else:
            status = "[yellow]MISSING[/yellow]"
            all_ok = False
        table.add_row(name, status, detail)

    if all_ok:
        overall = "[bold green]Ready to upload and anchor.[/bold green]"
        border_style = "green"
    else:
        overall = "[bold yellow]Some checks failed.[/bold yellow]"
        border_style = "yellow"

    console.print()
    console.print(
        Panel(
            table,
            title="[bold]gameanchor Status[/bold]",
            subtitle=overall,
            border_style=border_style,
            padding=(1, 2),
        )
    )
    console.print()
