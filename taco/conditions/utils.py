import re
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple, Union

from marshmallow import Schema, post_dump
from marshmallow.exceptions import SCHEMA

from taco.conditions.exceptions import (
    ConditionEvaluationFailed,
    InvalidCondition,
    InvalidConditionLingo,
    InvalidConnectionToChain,
    InvalidContextVariableData,
    NoConnectionToChain,
    RequiredContextVariable,
    ReturnValueEvaluationError,
)
from taco.conditions.types import ContextDict, Lingo
from taco.utilities.logging import Logger

__LOGGER = Logger("condition-eval")

BIG_INT_STRING_REGEX = re.compile(r"^-?\d+n$")


class ConditionEvalError(Exception):
    """Exception when execution condition evaluation."""
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def to_camelcase(s):
    parts = iter(s.split("_"))
    return next(parts) + "".join(i.title() for i in parts)


def check_and_convert_big_int_string_to_int(value: str) -> Union[str, int]:
    """
    Javascript clients serialize big integers as strings with an 'n' suffix e.g. "1000n".
    """
    if BIG_INT_STRING_REGEX.fullmatch(value):
        return int(value[:-1])
    return value


class CamelCaseSchema(Schema):
    """Schema that uses camel-case for its external representation
    and snake-case for its internal representation.
    """

    SKIP_VALUES: Tuple = tuple()

    def on_bind_field(self, field_name, field_obj):
        field_obj.data_key = to_camelcase(field_obj.data_key or field_name)

    @post_dump
    def remove_skip_values(self, data, **kwargs):
        return {
            key: value for key, value in data.items() if value not in self.SKIP_VALUES
        }


def flatten_schema_errors(errors: Any, path: str = "") -> List[Tuple[str, str]]:
    """
    Flattens (possibly nested) marshmallow error messages into (path, message) pairs, e.g.

        {"operands": {1: {"returnValueTest": {"comparator": ["..."]}}}}
            -> [("operands[1].returnValueTest.comparator", "...")]

    Schema-level errors are reported against the path of the schema itself.
    """
    flattened = list()
    if isinstance(errors, dict):
        for key, value in errors.items():
            if key == SCHEMA:
                child_path = path
            elif isinstance(key, int):
                child_path = f"{path}[{key}]"
            else:
                child_path = f"{path}.{key}" if path else str(key)
            flattened.extend(flatten_schema_errors(value, child_path))
    elif isinstance(errors, (list, tuple)):
        for item in errors:
            flattened.extend(flatten_schema_errors(item, path))
    else:
        flattened.append((path, str(errors)))
    return flattened


def format_schema_errors(errors: List[Tuple[str, str]]) -> str:
    messages = [
        f"'{path}' field - {message}" if path else message for path, message in errors
    ]
    return "; ".join(messages)


def extract_error_messages_from_schema_errors(
    errors: Dict[str, Any],
) -> Tuple[str, List[Tuple[str, str]]]:
    """
    Extract a combined error message, and the individual (path, message) pairs, from
    Schema().validate() errors. Every error found is reported, not only the first one.
    """
    if not errors:
        raise ValueError("Validation errors must be provided")

    flattened = flatten_schema_errors(errors)
    return format_schema_errors(flattened), flattened


def evaluate_condition_lingo(
    condition_lingo: Lingo,
    executor=None,
    context: Optional[ContextDict] = None,
    log: Logger = __LOGGER,
):
    """
    Evaluates condition lingo with the given executor and user supplied context.
    If all conditions are satisfied this function returns None.
    """

    # prevent circular import
    from taco.conditions.executors import RoutingExecutor
    from taco.conditions.lingo import ConditionLingo

    # Setup (don't use mutable defaults)
    context = context or dict()
    executor = executor or RoutingExecutor(executors=dict())
    error = None

    # Evaluate
    try:
        if condition_lingo:
            lingo = ConditionLingo.from_dict(condition_lingo)
            log.info(f"Evaluating access conditions {lingo}")
            result = lingo.eval(executor, **context)
            if not result:
                # explicit condition failure
                error = ConditionEvalError(
                    "Decryption conditions not satisfied", HTTPStatus.FORBIDDEN
                )
    except ReturnValueEvaluationError as e:
        error = ConditionEvalError(
            f"Unable to evaluate return value: {e}",
            HTTPStatus.BAD_REQUEST,
        )
    except InvalidConditionLingo as e:
        error = ConditionEvalError(
            f"Invalid condition grammar: {e}",
            HTTPStatus.BAD_REQUEST,
        )
    except InvalidCondition as e:
        error = ConditionEvalError(
            f"Incorrect value provided for condition: {e}",
            HTTPStatus.BAD_REQUEST,
        )
    except RequiredContextVariable as e:
        error = ConditionEvalError(
            f"Missing required inputs: {e}", HTTPStatus.BAD_REQUEST
        )
    except InvalidContextVariableData as e:
        error = ConditionEvalError(
            f"Invalid data provided for context variable: {e}",
            HTTPStatus.BAD_REQUEST,
        )
    except (NoConnectionToChain, InvalidConnectionToChain) as e:
        error = ConditionEvalError(
            f"No valid connection to chain: {e}",
            HTTPStatus.NOT_IMPLEMENTED,
        )
    except ConditionEvaluationFailed as e:
        error = ConditionEvalError(
            f"Decryption condition not evaluated: {e}", HTTPStatus.BAD_REQUEST
        )
    except Exception as e:
        message = (
            f"Unexpected exception while evaluating "
            f"decryption condition ({e.__class__.__name__}): {e}"
        )
        error = ConditionEvalError(message, HTTPStatus.INTERNAL_SERVER_ERROR)
        log.warn(message)

    if error:
        log.info(error.message)  # log error message
        raise error
