"""Console entry point that serves the Mealbook API with uvicorn."""

from __future__ import annotations

import os

import typer
import uvicorn

cli = typer.Typer(help="Serve the Mealbook API.", add_completion=False)


@cli.command()
def serve(
    host: str = typer.Option(
        os.environ.get("MEALBOOK_SERVER_HOST", "127.0.0.1"), "--host", help="Interface to bind."
    ),
    port: int = typer.Option(
        int(os.environ.get("MEALBOOK_SERVER_PORT", "8000")), "--port", help="Port to bind."
    ),
    reload: bool = typer.Option(
        os.environ.get("RELOAD") == "1", "--reload/--no-reload", help="Restart on code changes."
    ),
) -> None:
    """Run the API server."""

    uvicorn.run(
        "mealbook.server.app:app",
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


def main() -> None:
    cli(prog_name="mealbook-server")


if __name__ == "__main__":
    main()
