"""Main CLI application."""

import typer
from rich.console import Console

from .. import __version__
from . import config, image, vm

console = Console()

app = typer.Typer(
    name="cvmd",
    help="Control plane for confidential VMs",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.add_typer(vm.app, name="vm")
app.add_typer(image.app, name="image")
app.add_typer(config.app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: Whether version flag was set
    """
    if value:
        console.print(f"cvmd version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """cvmd - manage confidential VMs on this host.

    Get started:
        cvmd config init      # Write a default configuration
        cvmd image list       # List available images
        cvmd vm list          # List VMs
    """
    pass


if __name__ == "__main__":
    app()
