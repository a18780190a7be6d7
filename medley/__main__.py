import sys

import click

from medley.cli import cli
from medley.common import MedleyExpectedError


def main() -> None:
    try:
        cli()
    except MedleyExpectedError as e:
        click.secho(f"{e.__class__.__module__}.{e.__class__.__name__}: ", fg="red", nl=False)
        click.secho(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
