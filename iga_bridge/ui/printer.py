from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from iga_bridge.models.catalog import CatalogItem
from iga_bridge.models.request import AccessRequestRecord
from iga_bridge.ui.views import format_date


# ---------- Helpers ----------

def _status_style(status: str) -> str:
    s = (status or "").upper()
    if s in ("APPROVED", "FULFILLED", "COMPLETED"):
        return "bold green"
    if s in ("REJECTED", "DENIED", "CANCELLED", "FAILED"):
        return "bold red"
    return "bold yellow"


def _divider(console: Console, title: Optional[str] = None) -> None:
    """
    Subtle section divider that adapts to terminal width.
    Example:
      ─────── CATALOG ─────────────────────────────
    """
    width = console.size.width if console.is_terminal else 80
    width = max(40, width)

    if title:
        label = f" {title.strip().upper()} "
        left = "─" * 6
        right = "─" * max(0, width - len(left) - len(label))
        console.print(f"[dim]{left}{label}{right}[/dim]")
    else:
        console.print(f"[dim]{'─' * width}[/dim]")


# ---------- UI ----------

def print_catalog(items: Sequence[CatalogItem], query: str = "", console: Optional[Console] = None) -> None:
    console = console or Console(highlight=False)
    _divider(console, f"catalog: {query}" if query else "catalog")

    if not items:
        console.print("[dim]No catalog items match.[/dim]\n")
        return

    table = Table(
        box=box.SIMPLE_HEAD if console.is_terminal else box.SIMPLE,
        show_header=True,
        header_style="bold white",
        border_style="dim",
        expand=True,
    )
    table.add_column("ID", ratio=2, no_wrap=True, style="yellow")
    table.add_column("LABEL", ratio=2, no_wrap=False)
    table.add_column("TYPE", ratio=1, justify="center", no_wrap=True)
    table.add_column("DESCRIPTION", ratio=4, no_wrap=False, style="dim")

    for item in items:
        table.add_row(item.id, item.label, item.type or "-", item.description or "-")

    console.print(table)
    console.print("")


def print_requests(requests: Sequence[AccessRequestRecord], console: Optional[Console] = None) -> None:
    console = console or Console(highlight=False)
    _divider(console, "requests")

    table = Table(
        box=box.SQUARE if console.is_terminal else box.SIMPLE,
        show_header=True,
        header_style="bold white",
        border_style="dim",
        expand=True,
        pad_edge=True,
    )
    table.add_column("REQUEST ID", ratio=3, no_wrap=False)
    table.add_column("ITEM", ratio=2, no_wrap=False)
    table.add_column("FOR", ratio=1, no_wrap=True)
    table.add_column("STATUS", ratio=1, justify="center", no_wrap=True)
    table.add_column("REQUESTED", ratio=2, no_wrap=True, style="dim")

    for request in requests:
        style = _status_style(request.status)
        table.add_row(
            request.id,
            request.catalog_item_label,
            request.requested_for_user_id,
            f"[{style}]{request.status}[/{style}]",
            format_date(request.requested_at),
        )

    console.print(table)
    console.print(f"[dim]{len(requests)} request(s)[/dim]\n")
