from typing import Any, List, Optional

from marshmallow import ValidationError, fields, post_load, validates, validates_schema
from typing_extensions import override

from taco.conditions.context import is_context_variable
from taco.conditions.evm import RPCCondition
from taco.conditions.lingo import ConditionType, ReturnValueTest, condition_type_field


class TimeCondition(RPCCondition):
    """
    Compares the timestamp of the latest block of a chain against an expected value.

    TIME_CONDITION = {
        "name": ...  (Optional)
        "conditionType": "time",
        "chain": CHAIN_ID,
        "method": "blocktime",  (Optional)
        "returnValueTest": RETURN_VALUE_TEST
    }
    """

    METHOD = "blocktime"
    CONDITION_TYPE = ConditionType.TIME.value

    class Schema(RPCCondition.Schema):
        condition_type = condition_type_field(ConditionType.TIME)
        method = fields.Str(load_default="blocktime")

        @override
        @validates("method")
        def validate_method(self, value, **kwargs):
            if value != TimeCondition.METHOD:
                raise ValidationError(f"method name must be {TimeCondition.METHOD}.")

        @validates("parameters")
        def validate_no_parameters(self, value, **kwargs):
            if value:
                raise ValidationError(
                    f"'{TimeCondition.METHOD}' does not take any parameters"
                )

        @override
        @validates_schema
        def validate_expected_return_type(self, data, **kwargs):
            return_value_test = data.get("return_value_test")
            TimeCondition._check_expected_return_type(
                TimeCondition.METHOD, return_value_test.value
            )

        @post_load
        def make(self, data, **kwargs):
            return TimeCondition(**data)

    def __repr__(self) -> str:
        r = f"{self.__class__.__name__}(timestamp={self.return_value_test.value}, chain={self.chain})"
        return r

    def __init__(
        self,
        return_value_test: ReturnValueTest,
        chain: int,
        method: str = METHOD,
        condition_type: str = ConditionType.TIME.value,
        name: Optional[str] = None,
        parameters: Optional[List[Any]] = None,
    ):
        # call to super must be at the end for proper validation
        super().__init__(
            return_value_test=return_value_test,
            chain=chain,
            method=method,
            condition_type=condition_type,
            name=name,
            parameters=parameters,
        )

    @classmethod
    @override
    def _check_expected_return_type(cls, method: str, comparator_value: Any) -> None:
        if is_context_variable(comparator_value):
            return

        if isinstance(comparator_value, bool) or not isinstance(comparator_value, int):
            raise ValidationError(
                field_name="returnValueTest",
                message=f"Invalid return value comparison type '{type(comparator_value)}'; must be an integer",
            )

    @property
    def timestamp(self):
        return self.return_value_test.value
