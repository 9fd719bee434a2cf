import json
from pathlib import Path

import click

from taco.cli.painting import paint_violations
from taco.conditions.exceptions import InvalidCondition, InvalidConditionLingo
from taco.conditions.factory import ConditionFactory
from taco.conditions.lingo import ConditionLingo
from taco.utilities.logging import GlobalLoggerSettings, LoggingType

option_debug = click.option(
    "--debug",
    help="Enable debug logging to the console",
    is_flag=True,
    default=False,
)

argument_lingo_file = click.argument(
    "filepath",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)


def _setup_logging(debug: bool) -> None:
    if debug:
        GlobalLoggerSettings.set_log_level(log_level_name="debug")
        GlobalLoggerSettings.start(LoggingType.CONSOLE)


def _read_json(filepath: Path):
    try:
        return json.loads(filepath.read_text())
    except ValueError as e:
        raise click.BadParameter(f"{filepath} does not contain valid JSON: {e}")


def _load_lingo(filepath: Path) -> ConditionLingo:
    """Accepts either a full lingo envelope or a bare condition."""
    data = _read_json(filepath)
    try:
        if isinstance(data, dict) and "version" in data:
            return ConditionLingo.from_dict(data)
        return ConditionLingo(condition=ConditionFactory.from_dict(data))
    except (InvalidConditionLingo, InvalidCondition) as e:
        raise click.ClickException(str(e))


@click.group()
def lingo():
    """Validate, inspect and encode condition lingo."""


@lingo.command()
@argument_lingo_file
@option_debug
def validate(filepath, debug):
    """Report every violation found in a condition lingo file."""
    _setup_logging(debug)
    data = _read_json(filepath)

    violations = list()
    condition = data
    if isinstance(data, dict) and "version" in data:
        try:
            ConditionLingo.check_version_compatibility(data["version"])
        except InvalidConditionLingo as e:
            violations.append(("version", str(e)))
        condition = data.get("condition")

    violations.extend(ConditionFactory.validate(condition))
    if violations:
        click.secho(f"{filepath} is not valid:", fg="red", bold=True)
        paint_violations(violations)
        raise click.exceptions.Exit(1)

    click.secho(f"{filepath} is valid", fg="green")


@lingo.command()
@argument_lingo_file
@option_debug
def context(filepath, debug):
    """List the context parameters required to evaluate a condition."""
    _setup_logging(debug)
    condition_lingo = _load_lingo(filepath)
    context_variables = sorted(condition_lingo.context_variables)
    if not context_variables:
        click.secho("No context parameters required")
        return
    for context_variable in context_variables:
        click.secho(context_variable)


@lingo.command()
@argument_lingo_file
@option_debug
def encode(filepath, debug):
    """Encode condition lingo as base64."""
    _setup_logging(debug)
    condition_lingo = _load_lingo(filepath)
    click.secho(condition_lingo.to_base64().decode())


@lingo.command()
@click.argument("data", type=click.STRING)
@option_debug
def decode(data, debug):
    """Decode base64 condition lingo to JSON."""
    _setup_logging(debug)
    try:
        condition_lingo = ConditionLingo.from_base64(data)
    except (InvalidConditionLingo, InvalidCondition) as e:
        raise click.ClickException(str(e))
    click.secho(json.dumps(condition_lingo.to_dict(), indent=2))
