"""Configuration commands."""

from pathlib import Path

import typer
import yaml

from ..config import Config, ConfigManager
from ..exceptions import ConfigError
from ..utils import console, print_error, print_success

app = typer.Typer(help="Manage cvmd configuration", no_args_is_help=True)


@app.command("show")
def show_config(
    config: Path = typer.Option(None, "--config", "-c", help="Path to the configuration file"),
) -> None:
    """Print the effective configuration."""
    try:
        effective = ConfigManager(config).load()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)
    console.print(yaml.safe_dump(effective.model_dump(mode="json"), sort_keys=False), end="")


@app.command("init")
def init_config(
    path: Path = typer.Argument(Path("cvmd.yaml"), help="File to write"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a configuration file with the default settings."""
    manager = ConfigManager(path)
    if manager.exists() and not force:
        print_error(f"{path} already exists. Use --force to overwrite it.")
        raise typer.Exit(1)
    try:
        manager.save(Config())
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Configuration written to {path}")
