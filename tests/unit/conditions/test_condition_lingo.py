import base64
import json

import pytest
from marshmallow import ValidationError
from packaging.version import parse as parse_version

from taco.conditions.exceptions import (
    InvalidCondition,
    InvalidConditionLingo,
    UnknownConditionType,
)
from taco.conditions.fields import AnyField, IntegerField
from taco.conditions.lingo import ConditionLingo, ConditionType, ReturnValueTest
from taco.conditions.time import TimeCondition
from taco.config.constants import MAX_CONDITION_LINGO_SIZE
from tests.constants import INT256_MIN, TESTERCHAIN_CHAIN_ID, UINT256_MAX


@pytest.fixture
def time_lingo_dict():
    return {
        "version": ConditionLingo.VERSION,
        "condition": {
            "conditionType": ConditionType.TIME.value,
            "returnValueTest": {"value": 0, "comparator": ">"},
            "method": "blocktime",
            "chain": TESTERCHAIN_CHAIN_ID,
        },
    }


def test_invalid_condition():
    # no version or condition
    data = dict()
    with pytest.raises(InvalidConditionLingo):
        ConditionLingo.from_dict(data)

    # no condition
    data = {"version": ConditionLingo.VERSION}
    with pytest.raises(InvalidConditionLingo):
        ConditionLingo.from_dict(data)

    # invalid condition
    data = {
        "version": ConditionLingo.VERSION,
        "condition": {"dont_mind_me": "nothing_to_see_here"},
    }
    with pytest.raises(UnknownConditionType):
        ConditionLingo.from_dict(data)

    # invalid condition type
    data = {
        "version": ConditionLingo.VERSION,
        "condition": {"conditionType": "bitcoin", "chain": 0},
    }
    with pytest.raises(InvalidConditionLingo, match="bitcoin"):
        ConditionLingo.from_dict(data)

    # condition is not an object
    data = {"version": ConditionLingo.VERSION, "condition": [1, 2, 3]}
    with pytest.raises(InvalidConditionLingo):
        ConditionLingo.from_dict(data)


def test_invalid_condition_details_are_reported(time_lingo_dict):
    time_lingo_dict["condition"]["returnValueTest"]["comparator"] = "<>"
    with pytest.raises(InvalidConditionLingo, match="Invalid condition grammar") as exc_info:
        ConditionLingo.from_dict(time_lingo_dict)
    assert "comparator" in str(exc_info.value)


def test_invalid_compound_condition(time_lingo_dict):
    time_condition = time_lingo_dict["condition"]

    # invalid operator
    invalid_operator_lingo = {
        "version": ConditionLingo.VERSION,
        "condition": {
            "conditionType": ConditionType.COMPOUND.value,
            "operator": "xTrue",
            "operands": [time_condition, time_condition],
        },
    }
    with pytest.raises(InvalidConditionLingo, match="xTrue is not a valid operator"):
        ConditionLingo.from_dict(invalid_operator_lingo)

    with pytest.raises(InvalidConditionLingo):
        ConditionLingo.from_json(json.dumps(invalid_operator_lingo))

    # invalid operands for "not"
    invalid_not_operands_lingo = {
        "version": ConditionLingo.VERSION,
        "condition": {
            "conditionType": ConditionType.COMPOUND.value,
            "operator": "not",
            "operands": [time_condition, time_condition],
        },
    }
    with pytest.raises(InvalidCondition, match="Only 1 operand permitted"):
        ConditionLingo.from_dict(invalid_not_operands_lingo)

    # too few operands for "and"
    invalid_and_operands_lingo = {
        "version": ConditionLingo.VERSION,
        "condition": {
            "conditionType": ConditionType.COMPOUND.value,
            "operator": "and",
            "operands": [time_condition],
        },
    }
    with pytest.raises(InvalidCondition, match="Minimum of 2 operands"):
        ConditionLingo.from_json(json.dumps(invalid_and_operands_lingo))


@pytest.mark.parametrize("case", ["major", "minor", "patch"])
def test_invalid_condition_version(case, time_lingo_dict):
    # version in the future
    current_version = parse_version(ConditionLingo.VERSION)
    major = current_version.major
    minor = current_version.minor
    patch = current_version.micro
    if case == "major":
        major += 1
    elif case == "minor":
        minor += 1
    else:
        patch += 1

    newer_version_string = f"{major}.{minor}.{patch}"
    lingo_dict = dict(time_lingo_dict, version=newer_version_string)
    if case == "major":
        # exception should be thrown since incompatible:
        with pytest.raises(InvalidConditionLingo, match="incompatible"):
            ConditionLingo.from_dict(lingo_dict)

        with pytest.raises(InvalidConditionLingo):
            ConditionLingo.from_json(json.dumps(lingo_dict))
    else:
        # no exception thrown
        _ = ConditionLingo.from_dict(lingo_dict)
        _ = ConditionLingo.from_json(json.dumps(lingo_dict))


@pytest.mark.parametrize("version", ["", "one.two", None])
def test_unparseable_condition_version(version, time_lingo_dict):
    with pytest.raises(InvalidConditionLingo):
        ConditionLingo.from_dict(dict(time_lingo_dict, version=version))

    condition = TimeCondition.from_dict(time_lingo_dict["condition"])
    with pytest.raises(InvalidConditionLingo, match="Invalid version provided"):
        ConditionLingo(condition=condition, version=version)


def test_condition_lingo_to_from_dict(lingo_with_all_condition_types):
    clingo = ConditionLingo.from_dict(lingo_with_all_condition_types)
    clingo_dict = clingo.to_dict()
    assert clingo_dict == lingo_with_all_condition_types


def test_condition_lingo_to_from_json(lingo_with_all_condition_types):
    # A bit more convoluted because fields aren't
    # necessarily ordered - so the string comparison is tricky
    clingo_from_dict = ConditionLingo.from_dict(lingo_with_all_condition_types)
    clingo_json = clingo_from_dict.to_json()

    clingo_from_json = ConditionLingo.from_json(clingo_json)
    assert clingo_from_json.to_dict() == lingo_with_all_condition_types
    assert clingo_from_json == clingo_from_dict
    assert clingo_from_json.id == clingo_from_dict.id


def test_condition_lingo_to_from_base64(lingo_with_all_condition_types):
    clingo = ConditionLingo.from_dict(lingo_with_all_condition_types)

    encoded = clingo.to_base64()
    assert json.loads(base64.b64decode(encoded)) == lingo_with_all_condition_types

    assert ConditionLingo.from_base64(encoded) == clingo
    assert ConditionLingo.from_base64(encoded.decode()) == clingo

    # raw bytes are the json encoding
    assert ConditionLingo.from_bytes(bytes(clingo)) == clingo
    assert json.loads(bytes(clingo)) == lingo_with_all_condition_types


@pytest.mark.parametrize("data", [b"not base64!", "bm90IGpzb24=", b"\xff\xfe"])
def test_condition_lingo_invalid_base64(data):
    with pytest.raises(InvalidConditionLingo):
        ConditionLingo.from_base64(data)


def test_condition_lingo_size_limit(time_lingo_dict):
    oversized = {
        "version": ConditionLingo.VERSION,
        "condition": {
            "conditionType": "json-api",
            "endpoint": "https://api.example.com/" + "a" * MAX_CONDITION_LINGO_SIZE,
            "returnValueTest": {"comparator": "==", "value": 1},
        },
    }
    with pytest.raises(InvalidConditionLingo, match="exceeds the maximum"):
        ConditionLingo.from_dict(oversized)

    with pytest.raises(InvalidConditionLingo, match="exceeds the maximum"):
        ConditionLingo.from_json(json.dumps(oversized))

    with pytest.raises(InvalidConditionLingo, match="exceeds the maximum"):
        ConditionLingo.from_base64(base64.b64encode(json.dumps(oversized).encode()))

    # well within the limit
    ConditionLingo.from_dict(time_lingo_dict)


def test_condition_lingo_size_limit_counts_encoded_bytes():
    def lingo_json(endpoint: str) -> str:
        lingo = {
            "version": ConditionLingo.VERSION,
            "condition": {
                "conditionType": "json-api",
                "endpoint": endpoint,
                "returnValueTest": {"comparator": "==", "value": 1},
            },
        }
        return json.dumps(lingo, ensure_ascii=False)

    base_endpoint = "https://api.example.com/"
    padding = MAX_CONDITION_LINGO_SIZE - len(lingo_json(base_endpoint))
    data = lingo_json(base_endpoint + "é" * padding)

    # within the limit in characters, over it in utf-8 bytes
    assert len(data) == MAX_CONDITION_LINGO_SIZE
    assert len(data.encode()) > MAX_CONDITION_LINGO_SIZE

    with pytest.raises(InvalidConditionLingo, match="exceeds the maximum"):
        ConditionLingo.from_json(data)

    with pytest.raises(InvalidConditionLingo, match="exceeds the maximum"):
        ConditionLingo.from_json(data.encode())


def test_condition_lingo_id_is_content_based(time_lingo_dict):
    clingo = ConditionLingo.from_dict(time_lingo_dict)
    assert len(clingo.id) == 6
    assert clingo.id == ConditionLingo.from_dict(time_lingo_dict).id

    time_lingo_dict["condition"]["returnValueTest"]["value"] = 1
    other = ConditionLingo.from_dict(time_lingo_dict)
    assert other.id != clingo.id
    assert other != clingo
    assert len({clingo, other, ConditionLingo.from_dict(time_lingo_dict)}) == 2


def test_compound_condition_lingo_repr(lingo_with_all_condition_types):
    clingo = ConditionLingo.from_dict(lingo_with_all_condition_types)
    clingo_string = f"{clingo}"
    assert f"{clingo.__class__.__name__}" in clingo_string
    assert f"version={ConditionLingo.VERSION}" in clingo_string
    assert f"id={clingo.id}" in clingo_string
    assert f"size={len(bytes(clingo))}" in clingo_string


def test_lingo_context_variables(lingo_with_all_condition_types):
    clingo = ConditionLingo.from_dict(lingo_with_all_condition_types)
    # sequential variables are bound internally, so not required from the requester
    assert clingo.context_variables == {
        ":hrac",
        ":authToken",
        ":aJWTToken",
        ":userAddress",
    }


def test_lingo_eval(mock_executor, time_lingo_dict):
    clingo = ConditionLingo.from_dict(time_lingo_dict)

    mock_executor.execute.return_value = 1000
    assert clingo.eval(mock_executor) is True

    mock_executor.execute.return_value = 0
    assert clingo.eval(mock_executor) is False


def test_lingo_parameter_int_type_preservation():
    condition = TimeCondition(
        chain=TESTERCHAIN_CHAIN_ID, return_value_test=ReturnValueTest(">", 1)
    )
    clingo = ConditionLingo(condition=condition)

    clingo_json = clingo.to_json()
    assert json.loads(clingo_json)["condition"]["returnValueTest"]["value"] == 1
    assert json.loads(clingo_json)["condition"]["chain"] == TESTERCHAIN_CHAIN_ID

    clingo_from_json = ConditionLingo.from_json(clingo_json)
    value = clingo_from_json.condition.return_value_test.value
    assert isinstance(value, int) and value == 1


@pytest.mark.parametrize(
    "value",
    [
        1231323123132,
        2121.23211,
        False,
        '"foo"',  # string
        "5555555555",  # example of a number that was a string and should remain a string
        ":userAddress",  # context variable
        "0xaDD9D957170dF6F33982001E4c22eCCdd5539118",  # string
        123,  # int
        -123456789,  # negative int
        1.223,  # float
        True,  # bool
        [1, 1.2314, False, "love"],  # list of different types
        ["a", "b", "c"],  # list
        [True, False],  # list of bools
        {"name": "John", "age": 22},  # dict
        [True, 2, 6.5, "0x123"],
    ],
)
def test_any_field_various_types(value):
    field = AnyField()

    deserialized_value = field.deserialize(value)
    serialized_value = field._serialize(deserialized_value, attr=None, obj=None)

    assert deserialized_value == serialized_value
    assert deserialized_value == value


@pytest.mark.parametrize(
    "integer_value",
    [
        UINT256_MAX,
        INT256_MIN,
        123132312,  # safe int
        -1231231,  # safe negative int
    ],
)
def test_any_field_integer_str_and_no_str_conversion(integer_value):
    field = AnyField()

    deserialized_raw_integer = field.deserialize(value=integer_value)
    deserialized_big_int_string = field.deserialize(value=f"{integer_value}n")
    assert deserialized_raw_integer == deserialized_big_int_string

    assert (
        field._serialize(deserialized_raw_integer, attr=None, obj=None) == integer_value
    )
    assert (
        field._serialize(deserialized_big_int_string, attr=None, obj=None)
        == integer_value
    )


def test_any_field_nested_integer():
    field = AnyField()

    regular_number = 12341231

    parameters = [
        f"{UINT256_MAX}n",
        {"a": [f"{INT256_MIN}n", "my_string_value", "0xdeadbeef"], "b": regular_number},
    ]
    # quoted numbers get unquoted after deserialization
    expected_parameters = [
        UINT256_MAX,
        {"a": [INT256_MIN, "my_string_value", "0xdeadbeef"], "b": regular_number},
    ]

    deserialized_parameters = field.deserialize(value=parameters)
    assert deserialized_parameters == expected_parameters


@pytest.mark.parametrize(
    "json_value, expected_deserialized_value",
    [
        (123132312, 123132312),  # safe int
        (-1231231, -1231231),  # safe negative int
        (f"{UINT256_MAX}n", UINT256_MAX),
        (f"{INT256_MIN}n", INT256_MIN),
        (f"{UINT256_MAX*2}n", UINT256_MAX * 2),  # larger than uint256 max
        (f"{INT256_MIN*2}n", INT256_MIN * 2),  # smaller than in256 min
        # expected failures
        ("Totally a number", None),
        ("Totally a number that ends with n", None),
        ("fallen", None),
    ],
)
def test_integer_field(json_value, expected_deserialized_value):
    field = IntegerField(strict=True)

    if expected_deserialized_value is not None:
        assert field.deserialize(json_value) == expected_deserialized_value
    else:
        # expected to fail
        with pytest.raises(ValidationError, match="Not a valid integer."):
            _ = field.deserialize(json_value)
