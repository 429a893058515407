import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Optional

import typer
from rich.console import Console as RichConsole
from typing_extensions import Annotated

from live_console.commands import Command
from live_console.config import ConsoleConfig, load_config
from live_console.logger import setup_logging
from live_console.service import ConsoleService
from live_console.surface import TerminalSurface, Vt100Surface

# Global factory function - set by create_app()
_surface_factory: Optional[Callable[[], TerminalSurface]] = None


def default_surface_factory() -> TerminalSurface:
    """Default factory for creating the terminal surface."""
    return Vt100Surface()


def install_session_commands(console: ConsoleService) -> None:
    """Commands available in an interactive `live-console` session."""
    console.add_command(
        "echo", Command("Print the argument back", lambda argument: argument)
    )

    def shutdown(argument: str) -> str:
        console.shutdown()
        return ""

    console.add_command(
        ["shutdown", "quit"], Command("Shut down the console", shutdown)
    )


def run_session(
    config: ConsoleConfig,
    surface_factory: Callable[[], TerminalSurface],
    transcript: bool = False,
    echo: Callable[[str], None] = typer.echo,
) -> ConsoleService:
    """Run a console until it is shut down from the input line, then close it."""
    logger = logging.getLogger(__name__)
    console = ConsoleService(surface_factory(), config)
    install_session_commands(console)
    console.message('Console ready. Type "commands" to list commands.')
    console.start()
    try:
        console.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        console.close()

    if transcript:
        printer = RichConsole()
        for message in console.scrollback():
            printer.print(message)
    echo("goodbye.")
    return console


def create_app(
    surface_factory: Optional[Callable[[], TerminalSurface]] = None,
) -> typer.Typer:
    """
    Create and configure the Typer application.

    Args:
        surface_factory: Factory function to create the terminal surface

    Returns:
        Typer application
    """
    global _surface_factory
    _surface_factory = surface_factory

    def main(
        render_interval: Annotated[
            Optional[float],
            typer.Option(help="Seconds between message queue drains"),
        ] = None,
        poll_interval: Annotated[
            Optional[float],
            typer.Option(help="Seconds the input thread waits for a key"),
        ] = None,
        log_level: Annotated[
            str, typer.Option("--log-level", help="Log level for the log file")
        ] = "INFO",
        log_file: Annotated[
            Optional[Path],
            typer.Option(help="Log file path (default: XDG data dir)"),
        ] = None,
        transcript: Annotated[
            bool,
            typer.Option(help="Print the retained messages after the console closes"),
        ] = False,
    ) -> None:
        """LIVE CONSOLE - interactive console with a live command line"""
        try:
            setup_logging(log_level, log_file)
            config = load_config()
            overrides: Dict[str, float] = {}
            if render_interval is not None:
                overrides["render_interval"] = render_interval
            if poll_interval is not None:
                overrides["input_poll_interval"] = poll_interval
            if overrides:
                config = replace(config, **overrides)
        except (ValueError, OSError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

        factory = _surface_factory or default_surface_factory
        run_session(config, factory, transcript=transcript)

    app = typer.Typer(rich_markup_mode=None)
    app.command()(main)
    return app


# Create default app instance for the console script entry point
app = create_app()


if __name__ == "__main__":
    app()
