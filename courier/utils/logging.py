

from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from ..core.types import NormalizedPreview, DiagnosticsSnapshot, HealthStatus
console = Console(stderr=True)
def echo_debug(line: str):

    console.print(f"[dim]{line}[/dim]", highlight=False)
def print_preview(preview: NormalizedPreview):

    table = Table(title="📥 Ingested", border_style="blue", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Kind", preview.kind)
    table.add_row("Files", str(preview.file_count))
    table.add_row("Total Bytes", f"{preview.total_bytes:,}")
    table.add_row("Names", ", ".join(preview.names) or "[dim]—[/dim]")
    console.print(table)
    if preview.preview:
        console.print(Panel(preview.preview, title="[bold]Preview[/bold]",
                            border_style="dim", padding=(0, 1)))
def print_health(status: HealthStatus):

    color = "green" if status.ok else "red"
    mark = "✅" if status.ok else "❌"
    console.print(f"[{color}]{mark} {status.message}[/{color}]")
def print_error(message: str):

    console.print(Panel(f"[red]{message}[/red]", title="[bold red]Error[/bold red]",
                        border_style="red", padding=(0, 1)))
def print_snapshot(snapshot: DiagnosticsSnapshot, max_logs: Optional[int] = None):

    table = Table(title="🛰  Courier — Diagnostics", border_style="blue")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    args = snapshot.activation_args
    table.add_row("Activation Args", " ".join(args) if args else "[dim]—[/dim]")

    payload = snapshot.last_payload
    if payload is not None:
        table.add_row("Last Payload", f"{payload.context.kind} × {len(payload.context.paths)}")
        if payload.coords:
            table.add_row("Coords", f"({payload.coords.x}, {payload.coords.y})")
    else:
        table.add_row("Last Payload", "[dim]none[/dim]")
    console.print(table)

    logs = snapshot.logs[-max_logs:] if max_logs else snapshot.logs
    if logs:
        console.print(Panel("\n".join(logs), title="[bold blue]Log[/bold blue]",
                            border_style="blue", padding=(0, 1)))
    else:
        console.print("[dim]No log entries.[/dim]")
