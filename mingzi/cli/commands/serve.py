"""Serve command: run the HTTP API with uvicorn."""

import typer

from ..app import app, console


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the Mingzi HTTP API.

    Example:
        mingzi serve --host 0.0.0.0 --port 8080
    """
    import uvicorn

    console.print(f"[cyan]Serving Mingzi API on http://{host}:{port}[/cyan]")
    uvicorn.run("mingzi.api.app:app", host=host, port=port, reload=reload)
