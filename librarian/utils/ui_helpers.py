import os
import json
from typing import List, Any, Dict, Optional, Sequence, Tuple
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIBRARIAN_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _field(row: Any, key: str) -> str:
    value = row.get(key, "") if isinstance(row, dict) else getattr(row, key, "")
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return "" if value is None else str(value)


def print_rows(rows: List[Any], columns: Sequence[Tuple[str, str]], title: str,
               empty_message: str = "No data available to display.") -> None:
    """Print rows according to the current output mode.
    - plain: one ' - '-separated line per row
    - json: JSON array restricted to the given columns
    - rich: Rich table
    """
    mode = get_output_mode()

    if not rows:
        print(empty_message)
        return

    if mode == "json":
        payload = [{key: _field(row, key) for key, _ in columns} for row in rows]
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for _, label in columns:
            table.add_column(label)
        for row in rows:
            table.add_row(*(_field(row, key) for key, _ in columns))
        _console.print(table)
    else:
        for row in rows:
            print(" - ".join(_field(row, key) for key, _ in columns))


def print_mapping(data: Dict[str, Any], title: str, labels: Optional[Dict[str, str]] = None) -> None:
    """Print a flat mapping (stats, profile) according to the current output mode."""
    mode = get_output_mode()

    if not data:
        print("No data available to display.")
        return

    labels = labels or {}
    if mode == "json":
        print(json.dumps(data, ensure_ascii=False, default=str))
    elif mode == "rich":
        content = "\n".join(f"[bold]{labels.get(k, k)}:[/] {v}" for k, v in data.items())
        _console.print(Panel.fit(content, title=title, border_style="blue"))
    else:
        for key, value in data.items():
            print(f"{labels.get(key, key)}: {value}")
