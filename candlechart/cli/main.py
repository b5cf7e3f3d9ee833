"""Main CLI entry point for candlechart.

This module provides the main click group and lazy loading
for command modules to keep startup fast.
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules pull in httpx and pydantic, so they are only
    imported when one of their commands is invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        attr = getattr(module, cmd_name, None)
        if not isinstance(attr, click.Command):
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(attr)
        return attr


LAZY_SUBCOMMANDS = {
    "chart": "candlechart.cli.chart",
    "watch": "candlechart.cli.chart",
    "intervals": "candlechart.cli.chart",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="candlechart")
@click.option("-v", "--verbose", is_flag=True, help="Show fetch and fallback logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """candlechart - intraday candles with put/call volume overlays.

    Live data comes from Alpha Vantage. When the provider is unreachable
    or rate-limited, a synthetic series is shown instead.

    \b
    Quick Start:
      candlechart chart IBM            # Latest 5m candles
      candlechart chart RELIANCE.BSE   # BSE listing
      candlechart watch MSFT -i 15m    # Auto-refreshing view
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.ensure_object(dict)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
