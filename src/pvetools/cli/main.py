import sys

import typer
from loguru import logger
from typing_extensions import Annotated

from pvetools.cli import (
    config,
    disk,
)

app = typer.Typer()
app.add_typer(config.app, name='config', help="Operations related to connection configuration")
app.add_typer(disk.app, name="disk", help="Operations related to datastore disks")


@app.callback()
def setup_logging(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log API calls")] = False
):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "ERROR")


def main():
    app()


if __name__ == "__main__":
    main()
