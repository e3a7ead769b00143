import click

from deploykeys.core.console import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="deploykeys")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """deploykeys — per-repository SSH deploy keys for CI jobs."""
    setup_logging(verbose)


# Register commands
from deploykeys.commands.action import cleanup, setup  # noqa: E402
from deploykeys.commands.keys import keys  # noqa: E402

cli.add_command(setup)
cli.add_command(cleanup)
cli.add_command(keys)

if __name__ == "__main__":
    cli()
