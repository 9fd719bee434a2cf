from copy import deepcopy
from typing import Any, List, Optional

from eth_utils import is_address, to_checksum_address
from marshmallow import (
    ValidationError,
    fields,
    post_load,
    validates,
    validates_schema,
)
from marshmallow.validate import OneOf, Range
from typing_extensions import override
from web3.contract.contract import ContractFunction

from taco.conditions import STANDARD_ABI_CONTRACT_TYPES
from taco.conditions.context import is_context_variable
from taco.conditions.exceptions import InvalidContextVariableData
from taco.conditions.fields import AnyField, IntegerField
from taco.conditions.lingo import (
    ConditionType,
    ExecutionCallAccessControlCondition,
    ReturnValueTest,
    condition_type_field,
)
from taco.conditions.types import ABIFunction
from taco.conditions.validation import (
    get_unbound_contract_function,
    resolve_function_abi,
    validate_function_abi,
    validate_function_expected_return_type,
    validate_function_parameters,
)


class RPCCondition(ExecutionCallAccessControlCondition):
    """
    Compares the result of an ethereum JSON-RPC read against an expected value.

    RPC_CONDITION = {
        "name": ...  (Optional)
        "conditionType": "rpc",
        "chain": CHAIN_ID,
        "method": "eth_getBalance",
        "parameters": [PARAMETER*],
        "returnValueTest": RETURN_VALUE_TEST
    }
    """

    ALLOWED_METHODS = {
        # RPC
        "eth_getBalance": int,
    }

    CONDITION_TYPE = ConditionType.RPC.value

    class Schema(ExecutionCallAccessControlCondition.Schema):
        condition_type = condition_type_field(ConditionType.RPC)
        chain = IntegerField(
            required=True,
            strict=True,
            validate=Range(min=1, error="chain ID must be a positive integer"),
        )
        method = fields.Str(
            required=True,
            error_messages={
                "required": "Undefined method name",
                "null": "Undefined method name",
            },
        )
        parameters = fields.List(AnyField(), required=False, allow_none=True)

        @validates("method")
        def validate_method(self, value, **kwargs):
            if value not in RPCCondition.ALLOWED_METHODS:
                raise ValidationError(
                    f"'{value}' is not a permitted RPC endpoint for condition evaluation."
                )

        @validates_schema
        def validate_expected_return_type(self, data, **kwargs):
            method = data.get("method")
            return_value_test = data.get("return_value_test")
            RPCCondition._check_expected_return_type(method, return_value_test.value)

        @post_load
        def make(self, data, **kwargs):
            return RPCCondition(**data)

    def __init__(
        self,
        chain: int,
        method: str,
        return_value_test: ReturnValueTest,
        condition_type: str = ConditionType.RPC.value,
        name: Optional[str] = None,
        parameters: Optional[List[Any]] = None,
    ):
        self.chain = chain
        self.method = method
        self.parameters = tuple(deepcopy(parameters)) if parameters is not None else None
        super().__init__(
            return_value_test=return_value_test,
            condition_type=condition_type,
            name=name,
        )

    def __repr__(self) -> str:
        r = f"{self.__class__.__name__}(function={self.method}, chain={self.chain})"
        return r

    @classmethod
    def _check_expected_return_type(cls, method: str, comparator_value: Any) -> None:
        if is_context_variable(comparator_value):
            return

        expected_return_type = cls.ALLOWED_METHODS[method]
        if isinstance(comparator_value, bool) or not isinstance(
            comparator_value, expected_return_type
        ):
            raise ValidationError(
                field_name="returnValueTest",
                message=f"Return value comparison for '{method}' call output "
                f"should be '{expected_return_type}' and not '{type(comparator_value)}'.",
            )

    @override
    def _align_comparator_value(
        self, return_value_test: ReturnValueTest
    ) -> ReturnValueTest:
        try:
            self._check_expected_return_type(self.method, return_value_test.value)
        except ValidationError as e:
            raise InvalidContextVariableData(
                f"Invalid context variable data for return value test: {e}"
            ) from e
        return return_value_test


class ContractCondition(RPCCondition):
    """
    Compares the output of a view/pure contract function against an expected value.

    The function is given either as an ABI fragment ("functionAbi"), or by name ("method")
    for a standard contract type ("standardContractType", e.g. "ERC20").
    """

    CONDITION_TYPE = ConditionType.CONTRACT.value

    class Schema(RPCCondition.Schema):
        condition_type = condition_type_field(ConditionType.CONTRACT)
        contract_address = fields.Str(required=True)
        standard_contract_type = fields.Str(
            required=False,
            validate=OneOf(
                sorted(STANDARD_ABI_CONTRACT_TYPES),
                error="Invalid standard contract type: {input}",
            ),
            allow_none=True,
        )
        function_abi = fields.Dict(required=False, allow_none=True)

        @post_load
        def make(self, data, **kwargs):
            return ContractCondition(**data)

        @validates("contract_address")
        def validate_contract_address(self, value, **kwargs):
            if not is_address(value):
                raise ValidationError(f"Invalid checksum address: '{value}'")

        @override
        @validates("method")
        def validate_method(self, value, **kwargs):
            if not value:
                raise ValidationError("Undefined method name")

        @validates("function_abi")
        def validate_abi(self, value, **kwargs):
            # needs to be done before schema validation
            if value:
                try:
                    validate_function_abi(value)
                except ValueError as e:
                    raise ValidationError(str(e)) from e

        @validates_schema
        def validate_standard_contract_type_or_function_abi(self, data, **kwargs):
            method = data.get("method")
            standard_contract_type = data.get("standard_contract_type")
            function_abi = data.get("function_abi")

            # validate xor of standard contract type and function abi
            if not (bool(standard_contract_type) ^ bool(function_abi)):
                raise ValidationError(
                    field_name="standardContractType",
                    message=f"Provide a standard contract type or function ABI; got ({standard_contract_type}, {function_abi}).",
                )

            # validate function abi with method name (not available for field validation)
            if function_abi:
                try:
                    validate_function_abi(function_abi, method_name=method)
                except ValueError as e:
                    raise ValidationError(
                        field_name="functionAbi", message=str(e)
                    ) from e

            try:
                resolved_abi = resolve_function_abi(
                    method=method,
                    standard_contract_type=standard_contract_type,
                    function_abi=function_abi,
                )
            except ValueError as e:
                raise ValidationError(field_name="method", message=str(e)) from e

            try:
                validate_function_parameters(resolved_abi, data.get("parameters"))
            except ValueError as e:
                raise ValidationError(field_name="parameters", message=str(e)) from e

            # validate contract
            contract_address = data.get("contract_address")
            if not is_address(contract_address):
                # reported when validating the address
                return
            try:
                get_unbound_contract_function(
                    contract_address=to_checksum_address(contract_address),
                    method=method,
                    function_abi=resolved_abi,
                )
            except ValueError as e:
                raise ValidationError(field_name="method", message=str(e)) from e

        @override
        @validates_schema
        def validate_expected_return_type(self, data, **kwargs):
            try:
                function_abi = resolve_function_abi(
                    method=data.get("method"),
                    standard_contract_type=data.get("standard_contract_type"),
                    function_abi=data.get("function_abi"),
                )
            except ValueError:
                # reported when validating the abi
                return

            return_value_test = data.get("return_value_test")
            try:
                validate_function_expected_return_type(
                    function_abi=function_abi,
                    comparator_value=return_value_test.value,
                    comparator_index=return_value_test.index,
                )
            except ValueError as e:
                raise ValidationError(
                    field_name="returnValueTest",
                    message=str(e),
                ) from e

    def __init__(
        self,
        method: str,
        contract_address: str,
        condition_type: str = ConditionType.CONTRACT.value,
        standard_contract_type: Optional[str] = None,
        function_abi: Optional[ABIFunction] = None,
        *args,
        **kwargs,
    ):
        # preprocessing
        if is_address(contract_address):
            contract_address = to_checksum_address(contract_address)
        self.contract_address = contract_address
        self.standard_contract_type = standard_contract_type
        self.function_abi = deepcopy(function_abi)

        super().__init__(
            method=method,
            condition_type=condition_type,
            *args,
            **kwargs,
        )

    def __repr__(self) -> str:
        r = (
            f"{self.__class__.__name__}(function={self.method}, "
            f"contract={self.contract_address}, "
            f"chain={self.chain})"
        )
        return r

    @property
    def resolved_function_abi(self) -> ABIFunction:
        """The ABI of the contract function, resolving standard contract types"""
        # already validated - so should not raise an exception
        return resolve_function_abi(
            method=self.method,
            standard_contract_type=self.standard_contract_type,
            function_abi=self.function_abi,
        )

    @property
    def contract_function(self) -> ContractFunction:
        """Unbound web3 contract function; bind the parameters and call it to read the chain"""
        return get_unbound_contract_function(
            contract_address=self.contract_address,
            method=self.method,
            function_abi=self.resolved_function_abi,
        )

    @override
    def _align_comparator_value(
        self, return_value_test: ReturnValueTest
    ) -> ReturnValueTest:
        try:
            validate_function_expected_return_type(
                function_abi=self.resolved_function_abi,
                comparator_value=return_value_test.value,
                comparator_index=return_value_test.index,
            )
        except ValueError as e:
            raise InvalidContextVariableData(
                f"Invalid context variable data for return value test: {e}"
            ) from e
        return return_value_test

