import base64
import json
import operator as pyoperator
from copy import deepcopy
from enum import Enum
from hashlib import md5
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from hexbytes import HexBytes
from marshmallow import (
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates,
    validates_schema,
)
from marshmallow.validate import OneOf, Range
from packaging.version import InvalidVersion
from packaging.version import parse as parse_version

from taco.conditions.base import (
    AccessControlCondition,
    MultiConditionAccessControl,
    _Immutable,
    _Serializable,
)
from taco.conditions.context import (
    RESERVED_CONTEXT_VARIABLES,
    bind_variable,
    get_context_variables,
    is_context_variable,
    resolve_condition_context,
    to_context_variable,
)
from taco.conditions.exceptions import (
    ConditionEvaluationFailed,
    InvalidCondition,
    InvalidConditionContext,
    InvalidConditionLingo,
    InvalidConditionStructure,
    InvalidConnectionToChain,
    InvalidContextVariableData,
    NoConnectionToChain,
    ReturnValueEvaluationError,
)
from taco.conditions.fields import AnyField, _ConditionField, _ElseConditionField
from taco.conditions.types import Lingo
from taco.conditions.utils import (
    CamelCaseSchema,
    check_and_convert_big_int_string_to_int,
    extract_error_messages_from_schema_errors,
)
from taco.config.constants import MAX_CONDITION_LINGO_SIZE
from taco.utilities.logging import Logger

# errors raised while evaluating (as opposed to constructing) a condition
EVALUATION_ERRORS = (
    ConditionEvaluationFailed,
    InvalidConditionContext,
    ReturnValueEvaluationError,
    NoConnectionToChain,
    InvalidConnectionToChain,
)


# CONDITION = TIME | CONTRACT | RPC | JSON_API | JSON_RPC | JWT | COMPOUND | SEQUENTIAL | IF_THEN_ELSE_CONDITION
class ConditionType(Enum):
    """
    Defines the types of conditions that can be evaluated.
    """

    TIME = "time"
    CONTRACT = "contract"
    RPC = "rpc"
    JSONAPI = "json-api"
    JSONRPC = "json-rpc"
    JWT = "jwt"
    COMPOUND = "compound"
    SEQUENTIAL = "sequential"
    IF_THEN_ELSE = "if-then-else"

    @classmethod
    def values(cls) -> List[str]:
        return [condition.value for condition in cls]


def condition_type_field(condition_type: ConditionType) -> fields.Str:
    """The type tag of a condition; defaults to its own type when absent."""
    return fields.Str(
        validate=validate.Equal(condition_type.value),
        load_default=condition_type.value,
    )


_COMPARATOR_FUNCTIONS = {
    "==": pyoperator.eq,
    "!=": pyoperator.ne,
    ">": pyoperator.gt,
    "<": pyoperator.lt,
    "<=": pyoperator.le,
    ">=": pyoperator.ge,
}

_ORDERING_COMPARATORS = (">", "<", ">=", "<=")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize(value: Any) -> Any:
    """Structural form used for comparisons; bytes become 0x-hex and tuples become lists."""
    if isinstance(value, bytes):
        return HexBytes(value).to_0x_hex()
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    return value


class ReturnValueTest(_Immutable, _Serializable):
    class InvalidExpression(ValueError):
        pass

    COMPARATORS = tuple(_COMPARATOR_FUNCTIONS)

    class Schema(CamelCaseSchema):
        SKIP_VALUES = (None,)
        comparator = fields.Str(required=True, validate=OneOf(_COMPARATOR_FUNCTIONS))
        value = AnyField(
            allow_none=False, required=True
        )  # any valid type (excludes None)
        index = fields.Int(
            strict=True, required=False, validate=Range(min=0), allow_none=True
        )

        @validates_schema
        def validate_value(self, data, **kwargs):
            comparator = data["comparator"]
            value = data["value"]
            if is_context_variable(value):
                return

            if comparator in _ORDERING_COMPARATORS:
                try:
                    ReturnValueTest._to_number(value)
                except ReturnValueEvaluationError:
                    raise ValidationError(
                        field_name="value",
                        message=f"'{comparator}' requires a numeric value, but got '{value}'",
                    )
            try:
                json.dumps(_normalize(value))
            except (TypeError, ValueError):
                raise ValidationError(
                    field_name="value",
                    message=f"No JSON serializable equivalent found for type {type(value)}",
                )

        @post_load
        def make(self, data, **kwargs):
            return ReturnValueTest(**data)

    def __init__(self, comparator: str, value: Any, index: Optional[int] = None):
        if isinstance(value, str):
            value = check_and_convert_big_int_string_to_int(value)
        elif isinstance(value, (tuple, set, bytes)):
            # adjust stored value to be JSON serializable
            value = _normalize(list(value) if isinstance(value, set) else value)
        else:
            value = deepcopy(value)

        self.comparator = comparator
        self.value = value
        self.index = index

        data = {"comparator": comparator, "value": value}
        if index is not None:
            data["index"] = index
        errors = self.Schema().validate(data=data)
        if errors:
            error_message, _ = extract_error_messages_from_schema_errors(errors)
            raise self.InvalidExpression(error_message)
        self._freeze()

    def __repr__(self):
        index = f", index={self.index}" if self.index is not None else ""
        return f"{self.__class__.__name__}({self.comparator} {self.value}{index})"

    def __eq__(self, other):
        if not isinstance(other, ReturnValueTest):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(json.dumps(self.to_dict(), sort_keys=True))

    def _process_data(self, data: Any, index: Optional[int]) -> Any:
        """
        If an index is specified, return the value at that index in the data if data is list-like.
        Otherwise, return the data.
        """
        if index is None:
            return _normalize(data)

        if not isinstance(data, (list, tuple)):
            raise ReturnValueEvaluationError(
                f"Index: {index} and Value: {data} are not compatible types."
            )
        try:
            return _normalize(data[index])
        except IndexError:
            raise ReturnValueEvaluationError(
                f"Index '{index}' not found in returned data."
            )

    @staticmethod
    def _to_number(value: Any) -> Union[int, float]:
        if _is_number(value):
            return value
        if isinstance(value, str):
            converted = check_and_convert_big_int_string_to_int(value)
            if _is_number(converted):
                return converted
            for numeric_type in (int, float):
                try:
                    return numeric_type(value)
                except ValueError:
                    continue
        raise ReturnValueEvaluationError(
            f"'{value}' cannot be compared as a number"
        )

    def eval(self, data) -> bool:
        if is_context_variable(self.value):
            # programming error if we get here
            raise RuntimeError(
                f"Return value comparator contains an unprocessed context variable (value={self.value}) and is not valid "
                f"for condition evaluation."
            )

        processed_data = self._process_data(data, self.index)
        if self.comparator in _ORDERING_COMPARATORS:
            left_operand = self._to_number(processed_data)
            right_operand = self._to_number(self.value)
        else:
            left_operand = processed_data
            right_operand = _normalize(self.value)

        try:
            return _COMPARATOR_FUNCTIONS[self.comparator](left_operand, right_operand)
        except TypeError as e:
            raise ReturnValueEvaluationError(
                f"Unable to compare {left_operand!r} {self.comparator} {right_operand!r}: {e}"
            ) from e

    @classmethod
    def from_resolved(cls, data: Dict) -> "ReturnValueTest":
        """Builds the test from a wire form whose context variables were already resolved."""
        try:
            return cls(
                comparator=data["comparator"],
                value=data["value"],
                index=data.get("index"),
            )
        except cls.InvalidExpression as e:
            raise InvalidContextVariableData(
                f"Invalid context variable data for return value test: {e}"
            ) from e


class ExecutionCallAccessControlCondition(AccessControlCondition):
    """
    Leaf conditions whose value is obtained by an executor.

    On verification, context variables within the condition are resolved, the resolved
    wire form is handed to the executor, and the executor's result is checked by the
    return value test.
    """

    class Schema(AccessControlCondition.Schema):
        return_value_test = fields.Nested(ReturnValueTest.Schema(), required=True)

    def __init__(
        self,
        condition_type: str,
        return_value_test: ReturnValueTest,
        name: Optional[str] = None,
    ):
        self.return_value_test = return_value_test
        super().__init__(condition_type=condition_type, name=name)

    def _align_comparator_value(
        self, return_value_test: ReturnValueTest
    ) -> ReturnValueTest:
        return return_value_test

    def _process_result(self, result: Any, resolved_call: Dict) -> Any:
        return result

    def verify(self, executor, **context) -> Tuple[bool, Any]:
        """
        Verifies the condition is met by performing execution call and
        evaluating the return value test.
        """
        resolved_call = resolve_condition_context(self.to_dict(), context)
        return_value_test = self._align_comparator_value(
            ReturnValueTest.from_resolved(resolved_call["returnValueTest"])
        )

        result = executor.execute(self, resolved_call)
        result = self._process_result(result, resolved_call)

        eval_result = return_value_test.eval(result)  # test
        return eval_result, result


class CompoundAccessControlCondition(MultiConditionAccessControl):
    """
    A combination of two or more conditions connected by logical operators such as AND, OR, NOT.

    CompoundCondition grammar:
        OPERATOR = AND | OR | NOT

        COMPOUND_CONDITION = {
            "name": ...  (Optional)
            "conditionType": "compound",
            "operator": OPERATOR,
            "operands": [CONDITION*]
        }
    """

    AND_OPERATOR = "and"
    OR_OPERATOR = "or"
    NOT_OPERATOR = "not"

    OPERATORS = (AND_OPERATOR, OR_OPERATOR, NOT_OPERATOR)
    CONDITION_TYPE = ConditionType.COMPOUND.value

    class Schema(AccessControlCondition.Schema):
        condition_type = condition_type_field(ConditionType.COMPOUND)
        operator = fields.Str(
            required=True,
            validate=OneOf(
                ("and", "or", "not"), error="{input} is not a valid operator"
            ),
        )
        operands = fields.List(_ConditionField, required=True)

        # maintain field declaration ordering
        class Meta:
            ordered = True

        @post_load
        def make(self, data, **kwargs):
            return CompoundAccessControlCondition(**data)

    def __init__(
        self,
        operator: str,
        operands: Sequence[AccessControlCondition],
        condition_type: str = CONDITION_TYPE,
        name: Optional[str] = None,
    ):
        self.operator = operator
        self.operands = tuple(operands)

        super().__init__(
            condition_type=condition_type,
            name=name,
        )

    def _validation_data(self) -> Dict:
        data = super()._validation_data()
        data["operands"] = list(self.operands)
        return data

    def _validate_structure(self) -> None:
        num_operands = len(self.operands)
        if self.operator == self.NOT_OPERATOR:
            if num_operands != 1:
                raise InvalidConditionStructure(
                    f"Only 1 operand permitted for '{self.operator}' compound condition",
                    errors=[("operands", f"expected 1 operand, got {num_operands}")],
                )
        elif num_operands < 2:
            raise InvalidConditionStructure(
                f"Minimum of 2 operands needed for '{self.operator}' compound condition",
                errors=[
                    ("operands", f"expected at least 2 operands, got {num_operands}")
                ],
            )
        super()._validate_structure()

    @property
    def id(self) -> str:
        return md5(bytes(self)).hexdigest()[:6]

    def __repr__(self):
        return f"Operator={self.operator} (NumOperands={len(self.operands)}), id={self.id})"

    def verify(self, *args, **kwargs) -> Tuple[bool, Any]:
        values = []
        overall_result = True if self.operator == self.AND_OPERATOR else False
        for condition in self.operands:
            current_result, current_value = condition.verify(*args, **kwargs)
            values.append(current_value)
            if self.operator == self.AND_OPERATOR:
                overall_result = overall_result and current_result
                # short-circuit check
                if overall_result is False:
                    break
            elif self.operator == self.OR_OPERATOR:
                overall_result = overall_result or current_result
                # short-circuit check
                if overall_result is True:
                    break
            else:
                # NOT_OPERATOR
                return not current_result, values

        return overall_result, values

    @property
    def conditions(self):
        return list(self.operands)


class OrCompoundCondition(CompoundAccessControlCondition):
    def __init__(
        self, operands: Sequence[AccessControlCondition], name: Optional[str] = None
    ):
        super().__init__(operator=self.OR_OPERATOR, operands=operands, name=name)


class AndCompoundCondition(CompoundAccessControlCondition):
    def __init__(
        self, operands: Sequence[AccessControlCondition], name: Optional[str] = None
    ):
        super().__init__(operator=self.AND_OPERATOR, operands=operands, name=name)


class NotCompoundCondition(CompoundAccessControlCondition):
    def __init__(self, operand: AccessControlCondition, name: Optional[str] = None):
        super().__init__(operator=self.NOT_OPERATOR, operands=[operand], name=name)


class ConditionVariable(_Immutable, _Serializable):
    class Schema(CamelCaseSchema):
        var_name = fields.Str(required=True)
        condition = _ConditionField(required=True)

        @validates("var_name")
        def validate_var_name(self, value, **kwargs):
            context_variable = to_context_variable(value)
            if value.startswith(":") or not is_context_variable(context_variable):
                raise ValidationError(f"Invalid variable name '{value}'")
            if context_variable in RESERVED_CONTEXT_VARIABLES:
                raise ValidationError(
                    f"Variable name '{value}' is reserved for a context variable"
                )

        @post_load
        def make(self, data, **kwargs):
            return ConditionVariable(**data)

    def __init__(self, var_name: str, condition: AccessControlCondition):
        self.var_name = var_name
        self.condition = condition
        self._freeze()

    def __repr__(self):
        return f"{self.__class__.__name__}(var_name={self.var_name}, condition={self.condition!r})"

    def __eq__(self, other):
        if not isinstance(other, ConditionVariable):
            return NotImplemented
        return self.var_name == other.var_name and self.condition == other.condition

    def __hash__(self):
        return hash((self.var_name, self.condition))


class FailurePolicy(Enum):
    """
    What a sequential condition does when one of its entries fails.

    HALT: evaluation stops at the first entry that is not satisfied.
    CONTINUE: the failure is logged, the entry's variable is left unbound and
    evaluation carries on with the next entry.
    """

    HALT = "halt"
    CONTINUE = "continue"

    @classmethod
    def values(cls) -> List[str]:
        return [policy.value for policy in cls]


class SequentialAccessControlCondition(MultiConditionAccessControl):
    """
    A series of conditions that are evaluated in a specific order, where the result of one
    condition can be used in subsequent conditions.

    SequentialCondition grammar:
        CONDITION_VARIABLE = {
            "varName": STR,
            "condition": {
                CONDITION
            }
        }

        SEQUENTIAL_CONDITION = {
            "name": ...  (Optional)
            "conditionType": "sequential",
            "conditionVariables": [CONDITION_VARIABLE*],
            "failurePolicy": "halt" | "continue"  (Optional, defaults to "halt")
        }
    """

    CONDITION_TYPE = ConditionType.SEQUENTIAL.value
    LOG = Logger(__name__)

    class Schema(AccessControlCondition.Schema):
        condition_type = condition_type_field(ConditionType.SEQUENTIAL)
        condition_variables = fields.List(
            fields.Nested(ConditionVariable.Schema(), required=True),
            required=True,
            validate=validate.Length(
                min=2, error="At least two conditions must be specified"
            ),
        )
        failure_policy = fields.Enum(
            FailurePolicy, by_value=True, load_default=FailurePolicy.HALT
        )

        # maintain field declaration ordering
        class Meta:
            ordered = True

        @post_load
        def make(self, data, **kwargs):
            return SequentialAccessControlCondition(**data)

    def __init__(
        self,
        condition_variables: Sequence[ConditionVariable],
        condition_type: str = CONDITION_TYPE,
        name: Optional[str] = None,
        failure_policy: Union[FailurePolicy, str] = FailurePolicy.HALT,
    ):
        try:
            failure_policy = FailurePolicy(failure_policy)
        except ValueError as e:
            raise InvalidCondition(
                f"Invalid failure policy '{failure_policy}'; must be one of {FailurePolicy.values()}",
                errors=[("failurePolicy", f"must be one of {FailurePolicy.values()}")],
            ) from e

        self.condition_variables = tuple(condition_variables)
        self.failure_policy = failure_policy
        super().__init__(
            condition_type=condition_type,
            name=name,
        )

    def _validation_data(self) -> Dict:
        data = super()._validation_data()
        data["conditionVariables"] = [
            {"varName": cv.var_name, "condition": cv.condition}
            for cv in self.condition_variables
        ]
        return data

    def _validate_structure(self) -> None:
        var_names = [cv.var_name for cv in self.condition_variables]
        seen = set()
        for index, var_name in enumerate(var_names):
            if var_name in seen:
                raise InvalidConditionStructure(
                    f"Duplicate variable names are not allowed - {var_name}",
                    errors=[
                        (f"conditionVariables[{index}].varName", f"duplicate '{var_name}'")
                    ],
                )
            seen.add(var_name)

        # a variable can only be used by the entries that follow its own
        for index, condition_variable in enumerate(self.condition_variables):
            not_yet_bound = {to_context_variable(name) for name in var_names[index:]}
            references = get_context_variables(condition_variable.condition.to_dict())
            invalid = sorted(references & not_yet_bound)
            if invalid:
                raise InvalidConditionStructure(
                    f"Variable(s) {', '.join(invalid)} referenced by "
                    f"'{condition_variable.var_name}' before being evaluated",
                    errors=[
                        (
                            f"conditionVariables[{index}].condition",
                            f"references {', '.join(invalid)} before it is evaluated",
                        )
                    ],
                )

        super()._validate_structure()

    def __repr__(self):
        r = (
            f"{self.__class__.__name__}(num_condition_variables={len(self.condition_variables)}, "
            f"failure_policy={self.failure_policy.value})"
        )
        return r

    def _local_names(self) -> set:
        names = set()
        for condition_variable in self.condition_variables:
            names.add(condition_variable.var_name)
            names.add(to_context_variable(condition_variable.var_name))
        return names

    def verify(self, executor, **context) -> Tuple[bool, Any]:
        values = []
        latest_success = False
        halt = self.failure_policy == FailurePolicy.HALT

        # variables of this condition are only visible once bound by an earlier entry
        local_names = self._local_names()
        inner_context = {k: v for k, v in context.items() if k not in local_names}

        for condition_variable in self.condition_variables:
            var_name = condition_variable.var_name
            try:
                latest_success, result = condition_variable.condition.verify(
                    executor, **inner_context
                )
            except EVALUATION_ERRORS as e:
                if halt:
                    raise
                self.LOG.warn(
                    f"Condition variable '{var_name}' failed to evaluate ({e.__class__.__name__}): {e}"
                )
                latest_success = False
                values.append(None)
                continue

            values.append(result)
            if not latest_success:
                if halt:
                    # short circuit due to failed condition
                    break
                self.LOG.info(
                    f"Condition variable '{var_name}' not satisfied; continuing"
                )
                continue

            inner_context = bind_variable(inner_context, var_name, result)

        return latest_success, values

    @property
    def conditions(self):
        return [
            condition_variable.condition
            for condition_variable in self.condition_variables
        ]


class IfThenElseCondition(MultiConditionAccessControl):
    """
    A condition that represents simple if-then-else logic.

    IF_THEN_ELSE_CONDITION = {
        "conditionType": "if-then-else",
        "ifCondition": CONDITION,
        "thenCondition": CONDITION,
        "elseCondition": CONDITION | true | false,
    }
    """

    CONDITION_TYPE = ConditionType.IF_THEN_ELSE.value

    class Schema(AccessControlCondition.Schema):
        condition_type = condition_type_field(ConditionType.IF_THEN_ELSE)
        if_condition = _ConditionField(required=True)
        then_condition = _ConditionField(required=True)
        else_condition = _ElseConditionField(required=True)

        # maintain field declaration ordering
        class Meta:
            ordered = True

        @post_load
        def make(self, data, **kwargs):
            return IfThenElseCondition(**data)

    def __init__(
        self,
        if_condition: AccessControlCondition,
        then_condition: AccessControlCondition,
        else_condition: Union[AccessControlCondition, bool],
        condition_type: str = CONDITION_TYPE,
        name: Optional[str] = None,
    ):
        self.if_condition = if_condition
        self.then_condition = then_condition
        self.else_condition = else_condition
        super().__init__(condition_type=condition_type, name=name)

    def _validation_data(self) -> Dict:
        data = super()._validation_data()
        data["ifCondition"] = self.if_condition
        data["thenCondition"] = self.then_condition
        data["elseCondition"] = self.else_condition
        return data

    def __repr__(self):
        r = (
            f"{self.__class__.__name__}("
            f"if={self.if_condition.__class__.__name__}, "
            f"then={self.then_condition.__class__.__name__}, "
            f"else={self.else_condition.__class__.__name__}"
            f")"
        )
        return r

    @property
    def conditions(self):
        values = [self.if_condition, self.then_condition]
        if isinstance(self.else_condition, AccessControlCondition):
            values.append(self.else_condition)

        return values

    def verify(self, *args, **kwargs) -> Tuple[bool, Any]:
        values = []

        # if
        if_result, if_value = self.if_condition.verify(*args, **kwargs)
        values.append(if_value)

        # then
        if if_result:
            then_result, then_value = self.then_condition.verify(*args, **kwargs)
            values.append(then_value)
            return then_result, values

        # else
        if isinstance(self.else_condition, AccessControlCondition):
            # actual condition
            else_result, else_value = self.else_condition.verify(*args, **kwargs)
        else:
            # boolean value
            else_result, else_value = self.else_condition, self.else_condition

        values.append(else_value)
        return else_result, values


class ConditionLingo(_Serializable):
    """
    Versioned envelope around a condition expression; this is the form that travels
    with a ciphertext.

    LINGO = {
        "version": SEMVER,
        "condition": CONDITION
    }
    """

    VERSION = "1.0.0"

    class Schema(Schema):
        version = fields.Str(required=True)
        condition = _ConditionField(required=True, root=True)

        # maintain field declaration ordering
        class Meta:
            ordered = True

        @validates("version")
        def validate_version(self, version, **kwargs):
            try:
                ConditionLingo.check_version_compatibility(version)
            except InvalidConditionLingo as e:
                raise ValidationError(str(e)) from e

        @post_load
        def make(self, data, **kwargs):
            return ConditionLingo(**data)

    def __init__(self, condition: AccessControlCondition, version: str = VERSION):
        self.condition = condition
        self.check_version_compatibility(version)
        self.version = version
        self.id = md5(bytes(self)).hexdigest()[:6]

    def __eq__(self, other):
        if not isinstance(other, ConditionLingo):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(bytes(self))

    @staticmethod
    def _check_size(size: int) -> None:
        if size > MAX_CONDITION_LINGO_SIZE:
            raise InvalidConditionLingo(
                f"Condition lingo size ({size} bytes) exceeds the maximum of {MAX_CONDITION_LINGO_SIZE} bytes"
            )

    @classmethod
    def from_dict(cls, data: Lingo) -> "ConditionLingo":
        try:
            cls._check_size(len(json.dumps(data)))
        except (TypeError, ValueError) as e:
            raise InvalidConditionLingo(f"Condition lingo is not valid JSON data: {e}")
        try:
            return super().from_dict(data)
        except ValidationError as e:
            error_message, _ = extract_error_messages_from_schema_errors(e.messages)
            raise InvalidConditionLingo(f"Invalid condition grammar: {error_message}")

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "ConditionLingo":
        cls._check_size(len(data.encode()) if isinstance(data, str) else len(data))
        try:
            data = json.loads(data)
        except ValueError as e:
            raise InvalidConditionLingo(f"Condition lingo is not valid JSON: {e}")
        return cls.from_dict(data)

    def to_base64(self) -> bytes:
        data = base64.b64encode(self.to_json().encode())
        return data

    @classmethod
    def from_base64(cls, data: Union[str, bytes]) -> "ConditionLingo":
        # base64 inflates by a third
        cls._check_size(len(data) * 3 // 4)
        try:
            decoded_json = base64.b64decode(data, validate=True).decode()
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidConditionLingo(f"Condition lingo is not valid base64: {e}")
        instance = cls.from_json(decoded_json)
        return instance

    def __bytes__(self) -> bytes:
        data = self.to_json().encode()
        return data

    @classmethod
    def from_bytes(cls, data: bytes) -> "ConditionLingo":
        return cls.from_json(data)

    def __repr__(self):
        return f"{self.__class__.__name__} (version={self.version} | id={self.id} | size={len(bytes(self))}) | condition=({self.condition})"

    @property
    def context_variables(self):
        return self.condition.context_variables

    def eval(self, *args, **kwargs) -> bool:
        result, _ = self.condition.verify(*args, **kwargs)
        return result

    @classmethod
    def check_version_compatibility(cls, version: str):
        try:
            major = parse_version(version).major
        except (InvalidVersion, TypeError) as e:
            raise InvalidConditionLingo(f"Invalid version provided, {version}") from e
        if major > parse_version(cls.VERSION).major:
            raise InvalidConditionLingo(
                f"Version provided, {version}, is incompatible with current version {cls.VERSION}"
            )
