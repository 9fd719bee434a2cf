import click

from taco.cli.commands import lingo
from taco.cli.painting import echo_logging_root_path, echo_version


@click.group()
@click.option('--version', help="Echo the CLI version",
              is_flag=True, callback=echo_version, expose_value=False, is_eager=True)
@click.option('--logging-path', help="Echo the logging root directory path",
              is_flag=True, callback=echo_logging_root_path, expose_value=False, is_eager=True)
def taco_cli():
    """Top level command for working with TACo access conditions."""


#
# CLI Entry Points
#

ENTRY_POINTS = (
    lingo.lingo,
    # add more entry points here
)

for entry_point in ENTRY_POINTS:
    taco_cli.add_command(entry_point)
