"""chapter-relay CLI."""

import typer

from chapter_relay.cli._console import console, error, info, setup_logging, success

app = typer.Typer(
    name="chapter-relay",
    help="WebSocket relay between the translation app and the browser worker.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        from chapter_relay import __version__

        console.print(f"[bold]chapter-relay[/bold] [dim]{__version__}[/dim]")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version",
    ),
) -> None:
    """Chapter translation relay."""


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind host"),
    port: int | None = typer.Option(None, "--port", help="Bind port"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """
    Run the relay server.

    Host and port default to CHAPTER_RELAY_HOST / CHAPTER_RELAY_PORT.
    """
    import uvicorn

    from chapter_relay.config import get_settings
    from chapter_relay.logging import configure_logging
    from chapter_relay.server import create_app

    settings = get_settings()
    overrides = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if overrides:
        settings = settings.model_copy(update=overrides)

    if settings.log_format == "json":
        configure_logging(log_format="json", debug=verbose or settings.debug)
    else:
        setup_logging(verbose=verbose or settings.debug)

    success(f"Relay listening on ws://{settings.host}:{settings.port}")
    info(f"Settings file: {settings.settings_path}")

    try:
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_config=None,
        )
    except Exception as e:
        error(f"Server failed: {e}")
        raise typer.Exit(1) from e


__all__ = ["app"]
