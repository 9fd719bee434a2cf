from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.ext import parse
from marshmallow import ValidationError, fields

from taco.conditions.base import AccessControlCondition
from taco.conditions.context import string_contains_context_variable
from taco.conditions.exceptions import UnknownConditionType
from taco.conditions.utils import check_and_convert_big_int_string_to_int


class AnyField(fields.Field):
    """
    Catch all field for all data types received in JSON.
    However, `taco-web` will provide bigints as strings since typescript can't handle large
    numbers as integers, so those need converting to integers.
    """

    def _convert_any_big_ints_from_string(self, value):
        if isinstance(value, list):
            return [self._convert_any_big_ints_from_string(item) for item in value]
        elif isinstance(value, dict):
            return {
                k: self._convert_any_big_ints_from_string(v) for k, v in value.items()
            }
        elif isinstance(value, str):
            return check_and_convert_big_int_string_to_int(value)

        return value

    def _lists_from_tuples(self, value):
        if isinstance(value, (list, tuple)):
            return [self._lists_from_tuples(item) for item in value]
        elif isinstance(value, dict):
            return {k: self._lists_from_tuples(v) for k, v in value.items()}

        return value

    def _serialize(self, value, attr, obj, **kwargs):
        return self._lists_from_tuples(value)

    def _deserialize(self, value, attr, data, **kwargs):
        return self._convert_any_big_ints_from_string(value)


class IntegerField(fields.Int):
    """
    Integer field that also converts big int strings to integers.
    """

    def _serialize(self, value, attr, obj, **kwargs):
        return value

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, str):
            value = check_and_convert_big_int_string_to_int(value)

        return super()._deserialize(value, attr, data, **kwargs)


def _load_condition(data, nested: bool = True) -> AccessControlCondition:
    # prevent circular import
    from taco.conditions.factory import ConditionFactory

    try:
        condition_class = ConditionFactory.resolve_condition_class(data)
    except UnknownConditionType as e:
        if not nested:
            raise
        # recorded at the location of the nested condition
        raise ValidationError({"conditionType": [str(e)]}) from e
    # load through the schema so nested errors are reported relative to the parent
    return condition_class.Schema().load(data)


class _ConditionField(fields.Dict):
    """
    Serializes/Deserializes Conditions to/from dictionaries.

    An unknown type tag of a root condition raises UnknownConditionType; that of a
    nested condition is a validation error of its parent.
    """

    def __init__(self, *args, root: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.root = root

    def _serialize(self, value, attr, obj, **kwargs):
        if isinstance(value, AccessControlCondition):
            return value.to_dict()
        return value

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, AccessControlCondition):
            # already constructed, and therefore validated
            return value
        if not isinstance(value, dict):
            raise self.make_error("invalid")
        return _load_condition(value, nested=not self.root)


class _ElseConditionField(fields.Field):
    """
    Serializes/Deserializes else conditions for IfThenElseCondition. This field represents either a
    Condition or a boolean value.
    """

    default_error_messages = {
        "invalid": "Else condition must be a condition or a boolean value",
    }

    def _serialize(self, value, attr, obj, **kwargs):
        if isinstance(value, AccessControlCondition):
            return value.to_dict()

        return value

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, (bool, AccessControlCondition)):
            return value
        if not isinstance(value, dict):
            raise self.make_error("invalid")
        return _load_condition(value)


class JSONPathField(fields.Field):
    default_error_messages = {
        "invalidType": "Expression of type {value} is not valid for JSONPath",
        "invalid": "'{value}' is not a valid JSONPath expression",
    }

    def _deserialize(self, value, attr, data, **kwargs):
        if not isinstance(value, str):
            raise self.make_error("invalidType", value=type(value))
        try:
            if not string_contains_context_variable(value):
                parse(value)
        except (JsonPathLexerError, JsonPathParserError):
            raise self.make_error("invalid", value=value)
        return value
