#!/usr/bin/env python3
"""Output formatting for phpIPAM Address Manager."""

import csv
import io
import json
import sys
from typing import List, Dict, Any, Optional, Tuple, Union

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table
from tabulate import tabulate

from .config import get_config


class OutputFormatter:
    """Format and display output in various formats."""

    # Action / status color mapping
    ACTION_COLORS = {
        'create': 'green',
        'update': 'yellow',
        'replace': 'magenta',
        'delete': 'red',
        'gone': 'red',
        'no-op': 'dim',
        'error': 'red',
        'ok': 'green'
    }

    def __init__(self, format_type: Optional[str] = None, console: Optional[Console] = None,
                 config=None):
        """Initialize formatter.

        Args:
            format_type: Output format (table, json, csv). If None, uses config default.
            console: rich Console to write to. If None, writes to stdout.
            config: Config to take the default format from. If None, uses global config.
        """
        self.format_type = format_type or (config or get_config()).output_format
        self.console = console or Console()

    def _get_color(self, value: str) -> str:
        return self.ACTION_COLORS.get(value.lower(), 'white')

    def _format_table_rich(self, data: List[Dict[str, Any]],
                           columns: Optional[List[str]] = None,
                           title: Optional[str] = None) -> None:
        """Format data as rich table."""
        if not data:
            self.console.print("[dim]No data to display[/dim]")
            return

        if columns is None:
            columns = list(data[0].keys())

        table = Table(title=title, box=box.ROUNDED, show_header=True, header_style="bold cyan")

        for col in columns:
            table.add_column(col.replace('_', ' ').title())

        for row in data:
            cells = []
            for col in columns:
                value = str(row.get(col, ''))
                if col in ('action', 'status'):
                    color = self._get_color(value)
                    cells.append(f"[{color}]{value}[/{color}]")
                else:
                    cells.append(escape(value))
            table.add_row(*cells)

        self.console.print(table)

    def _format_table_tabulate(self, data: List[Dict[str, Any]],
                               columns: Optional[List[str]] = None,
                               title: Optional[str] = None) -> str:
        """Format data as plain text table, for pipes and log files."""
        if not data:
            return "No data to display"

        if columns is None:
            columns = list(data[0].keys())

        headers = [col.replace('_', ' ').title() for col in columns]
        rows = [[row.get(col, '') for col in columns] for row in data]

        output = ""
        if title:
            output = f"\n{title}\n{'=' * len(title)}\n"
        output += tabulate(rows, headers=headers, tablefmt='grid')
        return output

    def format_table(self, data: List[Dict[str, Any]],
                     columns: Optional[List[str]] = None,
                     title: Optional[str] = None) -> Optional[str]:
        """Format data as table.

        Args:
            data: List of dictionaries to display
            columns: Column names to include (default: all keys)
            title: Optional table title

        Returns:
            Formatted string (or None if printed straight to a terminal)
        """
        if self.console.is_terminal:
            self._format_table_rich(data, columns, title)
            return None
        return self._format_table_tabulate(data, columns, title)

    def format_json(self, data: Union[List, Dict], indent: int = 2) -> str:
        return json.dumps(data, indent=indent, ensure_ascii=False, default=str)

    def format_csv(self, data: List[Dict[str, Any]],
                   columns: Optional[List[str]] = None) -> str:
        """Format data as CSV.

        Args:
            data: List of dictionaries
            columns: Column names to include

        Returns:
            CSV string
        """
        if not data:
            return ""

        if columns is None:
            columns = list(data[0].keys())

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=columns, extrasaction='ignore',
                                quoting=csv.QUOTE_ALL)
        writer.writeheader()
        writer.writerows(data)
        return output.getvalue()

    def output(self, data: Union[List[Dict[str, Any]], Dict[str, Any]],
               columns: Optional[List[str]] = None,
               title: Optional[str] = None) -> None:
        """Output data in the configured format.

        Args:
            data: Data to output
            columns: Columns for table format
            title: Title for table format
        """
        data_list = [data] if isinstance(data, dict) else data

        if self.format_type == 'json':
            print(self.format_json(data))
        elif self.format_type == 'csv':
            print(self.format_csv(data_list, columns), end='')
        else:  # table
            result = self.format_table(data_list, columns, title)
            if result:
                print(result)

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def print_error(self, message: str) -> None:
        Console(stderr=True).print(f"[red]✗[/red] {escape(message)}", style="red")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ[/blue] {escape(message)}")

    def print_results(self, results: List[Tuple[str, bool, str]]) -> bool:
        """Print (name, success, message) results, failures last.

        Returns:
            True if every result succeeded
        """
        failed = [(name, message) for name, success, message in results if not success]
        for name, success, message in results:
            if success:
                self.print_success(message)
        for name, message in failed:
            self.print_error(f"{name}: {message}")
        if len(results) > 1:
            self.console.print(f"{len(results) - len(failed)} succeeded, {len(failed)} failed",
                               style="red" if failed else "green")
        return not failed

    def print_plan_summary(self, counts: Dict[str, int]) -> None:
        """Print planned action counts in a panel, one colored line per action."""
        grid = Table.grid(padding=(0, 2))
        grid.add_column(justify="right")
        grid.add_column()
        for action, count in counts.items():
            color = self._get_color(action) if count else 'dim'
            grid.add_row(f"[{color}]{count}[/{color}]", f"to {action}")
        self.console.print(Panel(grid, title="Plan Summary", border_style="blue", expand=False))

    def confirm(self, message: str, default: bool = False) -> bool:
        if not sys.stdin.isatty():
            return default
        return Confirm.ask(message, default=default, console=self.console)


# Default formatter instance
_formatter: Optional[OutputFormatter] = None


def get_formatter(format_type: Optional[str] = None, config=None) -> OutputFormatter:
    """Get formatter instance.

    Args:
        format_type: Output format type
        config: Config supplying the default format

    Returns:
        OutputFormatter instance
    """
    global _formatter
    if _formatter is None or format_type is not None or config is not None:
        _formatter = OutputFormatter(format_type, config=config)
    return _formatter
