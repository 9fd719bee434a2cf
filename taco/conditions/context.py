"""
Context variables are placeholders, such as ":userAddress", that a condition references and
whose values are only known at evaluation time.

Grammar:
    CONTEXT_VARIABLE = ":" [a-zA-Z_] [a-zA-Z0-9_]*

Placement:
    - anywhere within "parameters", "params", "authorizationToken", "jwtToken"
      and "returnValueTest.value" (as a whole string value)
    - embedded within the "endpoint" and "query" strings

Scoping:
    - runtime context supplied by the requester is visible everywhere
    - each entry of a sequential condition additionally sees the results of
      the *earlier* entries of that same sequential condition, as ":<varName>";
      these local bindings shadow the runtime context
"""

import re
from typing import Any, Dict, FrozenSet, List, Optional, Set

from eth_utils import is_address, to_checksum_address

from taco.conditions.exceptions import (
    InvalidContextVariableData,
    RequiredContextVariable,
)

CONTEXT_PREFIX = ":"
CONTEXT_REGEX = re.compile(":[a-zA-Z_][a-zA-Z0-9_]*")

USER_ADDRESS_CONTEXT = ":userAddress"
USER_ADDRESS_EIP4361_EXTERNAL_CONTEXT = ":userAddressExternalEIP4361"
JWT_TOKEN_CONTEXT = ":jwtToken"

# values for these are produced by authentication providers, never supplied as custom values
RESERVED_CONTEXT_VARIABLES = (
    USER_ADDRESS_CONTEXT,
    USER_ADDRESS_EIP4361_EXTERNAL_CONTEXT,
)

CONTEXT_FIELDS = ("parameters", "params", "authorizationToken", "jwtToken")
STRING_CONTEXT_FIELDS = ("authorizationToken", "jwtToken")
EMBEDDED_CONTEXT_FIELDS = ("endpoint", "query")
CHILD_CONDITION_FIELDS = ("ifCondition", "thenCondition", "elseCondition")


def _resolve_user_address(context_variable: str, value: Any, path: str) -> str:
    # auth providers deliver {"signature": ..., "address": ..., "scheme": ...};
    # signature verification is the evaluator's concern, here only the address is used
    if isinstance(value, dict):
        value = value.get("address")
    if not isinstance(value, str) or not is_address(value):
        raise InvalidContextVariableData(
            f"Invalid context variable data for '{context_variable}' at '{path}'; "
            f"expected an address but got {value!r}"
        )
    return to_checksum_address(value)


_DIRECTIVES = {
    USER_ADDRESS_CONTEXT: _resolve_user_address,
    USER_ADDRESS_EIP4361_EXTERNAL_CONTEXT: _resolve_user_address,
}


def is_context_variable(variable) -> bool:
    return isinstance(variable, str) and bool(CONTEXT_REGEX.fullmatch(variable))


def string_contains_context_variable(variable: str) -> bool:
    return bool(CONTEXT_REGEX.search(variable))


def to_context_variable(name: str) -> str:
    """Returns the context variable for a name, e.g. 'userAddress' -> ':userAddress'."""
    if name.startswith(CONTEXT_PREFIX):
        return name
    return f"{CONTEXT_PREFIX}{name}"


def _join(path: str, field: str) -> str:
    return f"{path}.{field}" if path else field


def get_context_value(context_variable: str, path: str = "", **context) -> Any:
    """
    Looks up the value bound to a context variable. The sigil-prefixed key
    takes precedence over the bare name, i.e. ':foo' before 'foo'.
    A value of None is treated as absent.
    """
    value = context.get(context_variable)
    if value is None:
        value = context.get(context_variable[len(CONTEXT_PREFIX):])
    if value is None:
        raise RequiredContextVariable(context_variable=context_variable, path=path)

    directive = _DIRECTIVES.get(context_variable)
    if directive:
        value = directive(context_variable, value, path)
    return value


def _resolve_value(value: Any, path: str, deferred: FrozenSet[str], context: Dict) -> Any:
    if isinstance(value, (list, tuple)):
        return [
            _resolve_value(item, f"{path}[{i}]", deferred, context)
            for i, item in enumerate(value)
        ]
    elif isinstance(value, dict):
        return {
            k: _resolve_value(v, _join(path, k), deferred, context)
            for k, v in value.items()
        }
    elif is_context_variable(value):
        if value in deferred:
            return value
        return get_context_value(value, path, **context)
    return value


def _resolve_embedded(value: str, path: str, deferred: FrozenSet[str], context: Dict) -> str:
    def substitute(match):
        context_variable = match.group(0)
        if context_variable in deferred:
            return context_variable
        resolved = get_context_value(context_variable, path, **context)
        if isinstance(resolved, bool) or not isinstance(resolved, (str, int, float)):
            raise InvalidContextVariableData(
                f"Context variable '{context_variable}' at '{path}' must be a string or number "
                f"to be embedded; got {type(resolved).__name__}"
            )
        return str(resolved)

    return CONTEXT_REGEX.sub(substitute, value)


def _resolve_condition(
    condition: Dict, path: str, deferred: FrozenSet[str], context: Dict
) -> Dict:
    resolved = dict(condition)

    for field in CONTEXT_FIELDS:
        if condition.get(field) is None:
            continue
        field_path = _join(path, field)
        value = _resolve_value(condition[field], field_path, deferred, context)
        if field in STRING_CONTEXT_FIELDS and not isinstance(value, str):
            raise InvalidContextVariableData(
                f"'{field_path}' must resolve to a string; got {type(value).__name__}"
            )
        resolved[field] = value

    for field in EMBEDDED_CONTEXT_FIELDS:
        if isinstance(condition.get(field), str):
            resolved[field] = _resolve_embedded(
                condition[field], _join(path, field), deferred, context
            )

    return_value_test = condition.get("returnValueTest")
    if return_value_test:
        value_path = _join(path, "returnValueTest.value")
        resolved["returnValueTest"] = dict(
            return_value_test,
            value=_resolve_value(return_value_test["value"], value_path, deferred, context),
        )

    if "operands" in condition:
        resolved["operands"] = [
            _resolve_condition(operand, f"{_join(path, 'operands')}[{i}]", deferred, context)
            for i, operand in enumerate(condition["operands"])
        ]

    for field in CHILD_CONDITION_FIELDS:
        if isinstance(condition.get(field), dict):
            resolved[field] = _resolve_condition(
                condition[field], _join(path, field), deferred, context
            )

    if "conditionVariables" in condition:
        local = deferred | {
            to_context_variable(cv["varName"]) for cv in condition["conditionVariables"]
        }
        variables_path = _join(path, "conditionVariables")
        resolved["conditionVariables"] = [
            dict(
                cv,
                condition=_resolve_condition(
                    cv["condition"], f"{variables_path}[{i}].condition", local, context
                ),
            )
            for i, cv in enumerate(condition["conditionVariables"])
        ]

    return resolved


def resolve_condition_context(condition: Dict, context: Dict) -> Dict:
    """
    Resolves all context variables within the wire form of a condition (and its
    children), returning a resolved copy.

    Variables local to a sequential condition are left untouched since they are only
    bound while that sequential condition is being evaluated.
    """
    return _resolve_condition(condition, path="", deferred=frozenset(), context=context)


def _collect(value: Any, found: Set[str]) -> None:
    if isinstance(value, (list, tuple)):
        for item in value:
            _collect(item, found)
    elif isinstance(value, dict):
        for item in value.values():
            _collect(item, found)
    elif is_context_variable(value):
        found.add(value)


def get_context_variables(condition: Dict) -> Set[str]:
    """
    Returns the context variables a condition requires from its evaluation context,
    excluding those bound locally by sequential conditions.
    """
    found = set()
    for field in CONTEXT_FIELDS:
        _collect(condition.get(field), found)
    for field in EMBEDDED_CONTEXT_FIELDS:
        if isinstance(condition.get(field), str):
            found.update(CONTEXT_REGEX.findall(condition[field]))
    return_value_test = condition.get("returnValueTest")
    if return_value_test:
        _collect(return_value_test.get("value"), found)

    for operand in condition.get("operands", []):
        found.update(get_context_variables(operand))
    for field in CHILD_CONDITION_FIELDS:
        if isinstance(condition.get(field), dict):
            found.update(get_context_variables(condition[field]))

    condition_variables = condition.get("conditionVariables", [])
    for cv in condition_variables:
        found.update(get_context_variables(cv["condition"]))
    found.difference_update(
        to_context_variable(cv["varName"]) for cv in condition_variables
    )
    return found


class ConditionContext:
    """
    Collects the context values needed to evaluate a condition.

    Custom values may only be supplied for context variables that the condition actually
    requests; reserved variables (e.g. ":userAddress") can only be set through
    `add_reserved_context_value`, which is what authentication providers use.
    """

    def __init__(self, condition):
        self.condition = condition
        self.requested_context_parameters = frozenset(condition.context_variables)
        self._values: Dict[str, Any] = dict()

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(requested={sorted(self.requested_context_parameters)}, "
            f"provided={sorted(self._values)})"
        )

    def requires_authentication(self) -> bool:
        return any(
            variable in self.requested_context_parameters
            for variable in RESERVED_CONTEXT_VARIABLES
        )

    def _check_requested(self, context_variable: str) -> None:
        if not is_context_variable(context_variable):
            raise InvalidContextVariableData(
                f"Invalid context variable name '{context_variable}'"
            )
        if context_variable not in self.requested_context_parameters:
            raise InvalidContextVariableData(
                f"Context variable '{context_variable}' is not requested by the condition"
            )

    def add_custom_context_parameter_values(self, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            context_variable = to_context_variable(name)
            if context_variable in RESERVED_CONTEXT_VARIABLES:
                raise InvalidContextVariableData(
                    f"Cannot use reserved context variable '{context_variable}' as a custom parameter"
                )
            self._check_requested(context_variable)
            self._values[context_variable] = value

    def add_reserved_context_value(self, context_variable: str, value: Any) -> None:
        if context_variable not in RESERVED_CONTEXT_VARIABLES:
            raise InvalidContextVariableData(
                f"'{context_variable}' is not a reserved context variable"
            )
        self._check_requested(context_variable)
        self._values[context_variable] = _DIRECTIVES[context_variable](
            context_variable, value, context_variable
        )

    @property
    def missing_context_parameters(self) -> List[str]:
        return sorted(self.requested_context_parameters - set(self._values))

    def to_context_parameters(self) -> Dict[str, Any]:
        missing = self.missing_context_parameters
        if missing:
            raise RequiredContextVariable(
                context_variable=missing[0],
                message=f"Missing values for context variables: {', '.join(missing)}",
            )
        return dict(self._values)


def merge_contexts(*contexts: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Later contexts shadow earlier ones."""
    merged = dict()
    for context in contexts:
        if context:
            merged.update(context)
    return merged


def bind_variable(context: Dict[str, Any], var_name: str, value: Any) -> Dict[str, Any]:
    """Returns a copy of the context with ':<var_name>' bound to value."""
    return merge_contexts(context, {to_context_variable(var_name): value})
