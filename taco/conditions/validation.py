from typing import Any, Dict, List, Optional, Sequence

from eth_typing import ChecksumAddress
from web3 import Web3
from web3.auto import w3
from web3.contract.contract import ContractFunction

from taco.conditions import STANDARD_ABI_CONTRACT_TYPES, STANDARD_ABIS
from taco.conditions.context import is_context_variable
from taco.conditions.types import ABIFunction

#
# Schema logic
#


def _collapse_if_tuple(abi: Dict[str, Any]) -> str:
    abi_type = abi["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    delimited = ",".join(_collapse_if_tuple(c) for c in abi["components"])
    array_suffix = abi_type[len("tuple"):]
    collapsed = f"({delimited}){array_suffix}"
    return collapsed


def get_abi_input_types(abi: ABIFunction) -> List[str]:
    return [_collapse_if_tuple(arg) for arg in abi.get("inputs", [])]


def get_abi_output_types(abi: ABIFunction) -> List[str]:
    return [_collapse_if_tuple(arg) for arg in abi.get("outputs", [])]


def _get_indexed_type(output_abi: Dict[str, Any], index: int) -> Optional[str]:
    """Type of the entry at an index of a tuple or array output, if there is one."""
    abi_type = output_abi["type"]
    if abi_type.endswith("]"):
        # element of an array
        element_abi = dict(output_abi, type=abi_type[: abi_type.rindex("[")])
        return _collapse_if_tuple(element_abi)
    if abi_type == "tuple":
        components = output_abi.get("components", [])
        if index >= len(components):
            return None
        return _collapse_if_tuple(components[index])
    return None


def _validate_value_type(
    expected_type: str, comparator_value: Any, failure_message: str
) -> None:
    if is_context_variable(comparator_value):
        # context variable types cannot be known until execution time.
        return
    if not w3.is_encodable(expected_type, comparator_value):
        raise ValueError(failure_message)


def _validate_single_output_type(
    output_abi: Dict[str, Any],
    comparator_value: Any,
    comparator_index: Optional[int],
    failure_message: str,
) -> None:
    expected_type = _collapse_if_tuple(output_abi)
    if comparator_index is not None:
        expected_type = _get_indexed_type(output_abi, comparator_index)
        if expected_type is None:
            raise ValueError(failure_message)
    _validate_value_type(expected_type, comparator_value, failure_message)


def _validate_multiple_output_types(
    output_abi_types: List[str],
    comparator_value: Any,
    comparator_index: Optional[int],
    failure_message: str,
) -> None:
    if comparator_index is not None:
        if comparator_index >= len(output_abi_types):
            raise ValueError(failure_message)
        expected_type = output_abi_types[comparator_index]
        _validate_value_type(expected_type, comparator_value, failure_message)
        return

    if is_context_variable(comparator_value):
        # context variable types cannot be known until execution time.
        return

    if not isinstance(comparator_value, Sequence) or isinstance(comparator_value, str):
        raise ValueError(failure_message)

    if len(output_abi_types) != len(comparator_value):
        raise ValueError(failure_message)

    for output_abi_type, component_value in zip(output_abi_types, comparator_value):
        _validate_value_type(output_abi_type, component_value, failure_message)


#
# Public functions.
#


def validate_function_abi(
    function_abi: Dict, method_name: Optional[str] = None
) -> None:
    """
    Validates a dictionary as valid for use as a condition function ABI.

    Optionally validates the method_name
    """
    if not isinstance(function_abi, dict):
        raise ValueError(f"Invalid ABI, expected a function ABI object {function_abi}")
    if not function_abi.get("name"):
        raise ValueError(f"Invalid ABI, no function name found {function_abi}")
    if method_name and function_abi.get("name") != method_name:
        raise ValueError(
            f"Mismatched ABI for contract function {method_name} - {function_abi}"
        )
    if function_abi.get("type") != "function":
        raise ValueError(f"Invalid ABI type {function_abi}")
    if not isinstance(function_abi.get("inputs", []), list):
        raise ValueError(f"Invalid ABI inputs {function_abi}")
    if not function_abi.get("outputs"):
        raise ValueError(f"Invalid ABI, no outputs found {function_abi}")
    if function_abi.get("stateMutability") not in ["pure", "view"]:
        raise ValueError(f"Invalid ABI stateMutability {function_abi}")
    try:
        abi_types = get_abi_input_types(function_abi) + get_abi_output_types(
            function_abi
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Invalid ABI argument definition {function_abi}") from e
    for abi_type in abi_types:
        if not w3.codec.is_encodable_type(abi_type):
            raise ValueError(f"Invalid ABI type '{abi_type}' for {function_abi['name']}")


def resolve_function_abi(
    method: str,
    standard_contract_type: Optional[str] = None,
    function_abi: Optional[ABIFunction] = None,
) -> ABIFunction:
    """Resolves the function ABI, looking it up by name for a standard contract type"""

    if not (bool(function_abi) ^ bool(standard_contract_type)):
        raise ValueError(
            f"Ambiguous ABI - Supply either an ABI or a standard contract type ({STANDARD_ABI_CONTRACT_TYPES})."
        )

    if function_abi:
        return function_abi

    try:
        # Lookup the standard ABI given it's ERC standard name (standard contract type)
        contract_abi = STANDARD_ABIS[standard_contract_type]
    except KeyError:
        raise ValueError(
            f"Invalid standard contract type {standard_contract_type}; Must be one of {STANDARD_ABI_CONTRACT_TYPES}"
        )

    matches = [abi for abi in contract_abi if abi.get("name") == method]
    if len(matches) != 1:
        raise ValueError(
            f"Unable to find contract function, '{method}', for {standard_contract_type}"
        )
    return dict(matches[0])


def get_unbound_contract_function(
    contract_address: ChecksumAddress,
    method: str,
    standard_contract_type: Optional[str] = None,
    function_abi: Optional[ABIFunction] = None,
) -> ContractFunction:
    """Gets an unbound contract function to evaluate"""
    function_abi = resolve_function_abi(
        method=method,
        standard_contract_type=standard_contract_type,
        function_abi=function_abi,
    )
    try:
        contract = Web3().eth.contract(address=contract_address, abi=[function_abi])
        contract_function = getattr(contract.functions, method)
        return contract_function
    except Exception as e:
        raise ValueError(
            f"Unable to find contract function, '{method}', for condition: {e}"
        ) from e


def validate_function_parameters(
    function_abi: ABIFunction, parameters: Optional[List[Any]]
) -> None:
    input_types = get_abi_input_types(function_abi)
    num_parameters = len(parameters or [])
    if len(input_types) != num_parameters:
        raise ValueError(
            f"'{function_abi['name']}' expects {len(input_types)} parameter(s) "
            f"({', '.join(input_types)}), but {num_parameters} provided"
        )


def validate_function_expected_return_type(
    function_abi: ABIFunction, comparator_value: Any, comparator_index: Optional[int]
) -> None:
    output_abi_types = get_abi_output_types(function_abi)
    index_string = f"@index={comparator_index}" if comparator_index is not None else ""
    failure_message = (
        f"Invalid return value comparison type '{type(comparator_value)}' for "
        f"'{function_abi['name']}'{index_string} based on ABI types {output_abi_types}"
    )

    if len(output_abi_types) == 1:
        _validate_single_output_type(
            function_abi["outputs"][0],
            comparator_value,
            comparator_index,
            failure_message,
        )
    else:
        _validate_multiple_output_types(
            output_abi_types, comparator_value, comparator_index, failure_message
        )
