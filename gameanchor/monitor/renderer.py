"""Rich terminal renderer for upload runs.

Color scheme
------------
- green      : done, chain write succeeded
- yellow     : degraded_done, chain write skipped
- bold red   : failed, chain write failed
- cyan       : in-flight stages
- dim        : idle
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gameanchor.models.pipeline import (
    ChainWriteOutcome,
    PipelineResult,
    PipelineState,
    StateTransition,
)


# ---------------------------------------------------------------------------
# State -> Rich style mapping
# ---------------------------------------------------------------------------

_STATE_STYLES: dict[PipelineState, str] = {
    PipelineState.IDLE: "dim",
    PipelineState.INGESTING: "cyan",
    PipelineState.PACKAGING: "cyan",
    PipelineState.STORING_CONTENT: "cyan",
    PipelineState.BUILDING_MANIFEST: "cyan",
    PipelineState.ANCHORING: "cyan",
    PipelineState.DONE: "bold green",
    PipelineState.DEGRADED_DONE: "bold yellow",
    PipelineState.FAILED: "bold red",
}

_OUTCOME_LABELS: dict[ChainWriteOutcome, str] = {
    ChainWriteOutcome.SUCCEEDED: "[green]SUCCEEDED[/green]",
    ChainWriteOutcome.SKIPPED: "[yellow]SKIPPED[/yellow]",
    ChainWriteOutcome.FAILED: "[bold red]FAILED[/bold red]",
}

_BORDER_STYLES: dict[PipelineState, str] = {
    PipelineState.DONE: "green",
    PipelineState.DEGRADED_DONE: "yellow",
    PipelineState.FAILED: "red",
}


def _styled(state: PipelineState) -> str:
    style = _STATE_STYLES.get(state, "")
    return f"[{style}]{state.value}[/{style}]"


def _short(digest: str) -> str:
    return f"{digest[:12]}..." if digest else "[dim]-[/dim]"


class ResultRenderer:
    """Renders upload runs as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def build_transition_table(self, transitions: list[StateTransition]) -> Table:
        """Build a Rich Table of the run's state transitions."""
        table = Table(
            show_header=True,
            header_style="bold cyan",
            expand=True,
            show_lines=False,
        )
        table.add_column("#", style="dim", width=4, justify="right")
        table.add_column("From", min_width=18)
        table.add_column("To", min_width=18)
        table.add_column("Time", width=10)
        table.add_column("Input", width=16)
        table.add_column("Output", width=16)
        table.add_column("Detail")

        for i, t in enumerate(transitions):
            table.add_row(
                str(i),
                _styled(t.from_state),
                _styled(t.to_state),
                f"[dim]{t.timestamp_utc.strftime('%H:%M:%S')}[/dim]",
                _short(t.input_hash),
                _short(t.output_hash),
                Text(t.detail) if t.detail else Text("-", style="dim"),
            )
        return table

    def render_result(self, result: PipelineResult) -> Panel:
        """Render a completed run as a Panel: transitions, manifest, chain status."""
        manifest = result.manifest
        status = result.chain_write_status

        lines = [
            f"[bold]Name:[/bold]         {manifest.name}",
            f"[bold]Files:[/bold]        {manifest.file_count}",
            f"[bold]Total size:[/bold]   {manifest.total_size_bytes:,} bytes",
            f"[bold]Engine:[/bold]       {manifest.engine}",
            f"[bold]CID:[/bold]          {manifest.ipfs.cid}",
            f"[bold]Playable URL:[/bold] {manifest.ipfs.playable_url}",
            f"[bold]Uploaded:[/bold]     {manifest.upload_date}",
            "",
            f"[bold]Chain write:[/bold]  {_OUTCOME_LABELS[status.outcome]}",
        ]
        if result.metadata_account:
            lines.append(f"[bold]Account:[/bold]      {result.metadata_account}")
        if status.receipt is not None:
            lines.append(f"[bold]Signature:[/bold]    {status.receipt.signature}")
        if status.reason:
            lines.append(f"[bold]Reason:[/bold]       {status.reason}")

        body = Group(
            self.build_transition_table(result.transitions),
            Text(""),
            Text.from_markup("\n".join(lines)),
        )
        return Panel(
            body,
            title=f"[bold]Upload {result.run_id}[/bold]",
            subtitle=_styled(result.final_state),
            border_style=_BORDER_STYLES.get(result.final_state, "blue"),
            padding=(1, 2),
        )

    def render_failure(
        self,
        error: str,
        details: str | None,
        transitions: list[StateTransition],
        run_id: str | None = None,
    ) -> Panel:
        """Render a run that ended in ``failed``."""
        message = f"[bold red]{error}[/bold red]"
        if details:
            message += f"\n[dim]{details}[/dim]"
        parts: list = []
        if transitions:
            parts.extend([self.build_transition_table(transitions), Text("")])
        parts.append(Text.from_markup(message))
        return Panel(
            Group(*parts),
            title=f"[bold]Upload {run_id}[/bold]" if run_id else "[bold]Upload[/bold]",
            subtitle=_styled(PipelineState.FAILED),
            border_style="red",
            padding=(1, 2),
        )

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_result(self, result: PipelineResult) -> None:
        self.console.print(self.render_result(result))
