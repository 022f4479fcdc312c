"""Image commands."""

from pathlib import Path

import typer

from ..exceptions import CvmError
from ..utils import console, create_table, print_error, print_info
from ..utils.helpers import async_to_sync
from ._shared import open_app

app = typer.Typer(help="Inspect VM images", no_args_is_help=True)


@app.command("list")
@async_to_sync
async def list_images(
    config: Path = typer.Option(None, "--config", "-c", help="Path to the configuration file"),
    log_level: str = typer.Option(None, "--log-level", "-l", help="Log level override"),
) -> None:
    """List valid images."""
    try:
        async with open_app(config, log_level, reload=False) as cvm:
            names = await cvm.list_image_names()
            images = [await cvm.get_image(name) for name in names]
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not images:
        print_info("No images found")
        return

    table = create_table(
        title="Images",
        columns=[("Name", "cyan"), ("Version", ""), ("Base disk", ""), ("Path", "dim")],
    )
    for image in images:
        table.add_row(
            image.name,
            image.info.version or "-",
            "yes" if image.hda else "no",
            str(image.path),
        )
    console.print(table)
