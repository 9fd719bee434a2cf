import click

import taco
from taco.config.constants import USER_LOG_DIR

TACO_BANNER = r"""
 _____  _    ____ ___
|_   _|/ \  / ___/ _ \
  | | / _ \| |  | | | |
  | |/ ___ \ |__| |_| |
  |_/_/   \_\____\___/
"""


def echo_version(ctx, param, value):
    if not value or ctx.resilient_parsing:
        return
    click.secho(TACO_BANNER, bold=True)
    click.secho(f"{taco.__title__} v{taco.__version__}")
    ctx.exit()


def echo_logging_root_path(ctx, param, value):
    if not value or ctx.resilient_parsing:
        return
    click.secho(str(USER_LOG_DIR.absolute()))
    ctx.exit()


def paint_violations(violations):
    for path, message in violations:
        location = path or "<root>"
        click.secho(f"  {location}: {message}", fg="red")
