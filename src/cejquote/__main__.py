"""Entry point: `python -m cejquote` runs the CLI, `--mode api` serves HTTP."""

import logging
from typing import Optional

import typer

from cejquote.cli import app as cli_app
from cejquote.config import get_config

app = typer.Typer(
    help="Concrete quote engine - CLI or API mode.",
    no_args_is_help=False,
)
app.add_typer(cli_app, name="", help="Quote and pricing rule commands.")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    mode: str = typer.Option(
        "cli",
        "--mode",
        help="Run mode: cli (default) or api",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="API bind address (default: API_HOST)"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", help="API port (default: API_PORT)"
    ),
    log_level: str = typer.Option("info", "--log-level", help="API log level"),
) -> None:
    """Concrete quote engine - CLI or API mode."""
    if mode == "api":
        import uvicorn

        logging.basicConfig(
            level=log_level.upper(),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        config = get_config()
        uvicorn.run(
            "cejquote.api:app",
            host=host or config.api_host,
            port=port or config.api_port,
            log_level=log_level,
            reload=False,
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


if __name__ == "__main__":
    app()
