"""
Rendering functions for gupl output.

This module handles all pretty-printing.
Commands return data, this module makes it human-readable.
"""

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich import box
from typing import List, Dict, Any

from .domain.package import GeneratedSource

console = Console()

# Lexers for the generated files
LEXERS = {
    'go.mod': 'text',
    'tuple.go': 'go',
    'LICENSE': 'text',
}


def render_source(source: GeneratedSource) -> None:
    """Show each generated file in a titled panel."""
    for name, content in source.files:
        syntax = Syntax(content.decode('utf-8'), LEXERS.get(name, 'text'), line_numbers=True)
        console.print(Panel(syntax, title=f"tuple/{source.key}/{name}", box=box.ROUNDED))


def render_store_table(records: List[Dict[str, Any]]) -> None:
    """
    Render the materialized repositories as a table.

    Args:
        records: Dicts with key, path and commit
    """
    if not records:
        console.print("[yellow]No repositories materialized yet.[/yellow]")
        return

    table = Table(
        title="Materialized repositories",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("Arity", justify="right", style="cyan")
    table.add_column("Commit", style="green")
    table.add_column("Path")

    for record in records:
        table.add_row(str(record['key']), record.get('commit') or '', record['path'])

    console.print(table)
