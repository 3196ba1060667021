"""CLI output helpers: rich text for people, one JSON document for scripts.

Example:
    out = Output(console=console, json_mode=get_json_mode())
    out.success("Generated 6 names", total=6)
    out.table("Names", ["Chinese", "Pinyin"], [["王志明", "wáng zhì míng"]])
    raise typer.Exit(out.finish())
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, PrivateAttr
from rich.console import Console
from rich.table import Table


class ExitCode:
    """Exit codes for CLI commands.

        0 = Success
        1 = Invalid input
        2 = Quota or credits denied the request
        3 = Configuration problem (missing key, bad model string)
        4 = Storage failure
    """

    SUCCESS = 0
    VALIDATION_ERROR = 1
    QUOTA_ERROR = 2
    CONFIG_ERROR = 3
    STORAGE_ERROR = 4


class Output(BaseModel):
    """Dual-mode output handler.

    Human mode prints as it goes. JSON mode collects everything and prints a
    single object from `finish()`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    console: Console
    json_mode: bool = False

    _data: dict[str, Any] = PrivateAttr()
    _exit_code: int = PrivateAttr(default=ExitCode.SUCCESS)

    def model_post_init(self, __context: Any) -> None:
        self._data = {"status": "success", "errors": []}

    def success(self, message: str, **data: Any) -> None:
        if self.json_mode:
            self._data.update(data)
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def error(
        self,
        message: str,
        *,
        suggestion: str | None = None,
        exit_code: int = ExitCode.VALIDATION_ERROR,
    ) -> None:
        """Record an error and set the exit code."""
        self._exit_code = exit_code
        self._data["status"] = "error"
        if self.json_mode:
            error_obj: dict[str, Any] = {"message": message}
            if suggestion:
                error_obj["suggestion"] = suggestion
            self._data["errors"].append(error_obj)
        else:
            self.console.print(f"[red]✗[/red] {message}")
            if suggestion:
                self.console.print(f"  [dim]→ {suggestion}[/dim]")

    def text(self, message: str) -> None:
        if not self.json_mode:
            self.console.print(message)

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[str]],
        *,
        data_key: str | None = None,
    ) -> None:
        """Rich table in human mode; list of row dicts under `data_key` in JSON mode."""
        key = data_key or title.lower().replace(" ", "_")
        if self.json_mode:
            self._data[key] = [dict(zip(columns, row)) for row in rows]
        else:
            table = Table(title=title, show_header=True, header_style="bold")
            for col in columns:
                table.add_column(col)
            for row in rows:
                table.add_row(*row)
            self.console.print(table)

    def finish(self) -> int:
        """Print accumulated JSON (JSON mode) and return the exit code."""
        if self.json_mode:
            self._data["exit_code"] = self._exit_code
            print(json.dumps(self._data, indent=2, default=str, ensure_ascii=False))
        return self._exit_code
