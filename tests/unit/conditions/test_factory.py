import json

import pytest

from taco.conditions.evm import ContractCondition, RPCCondition
from taco.conditions.exceptions import InvalidCondition, UnknownConditionType
from taco.conditions.factory import ConditionFactory
from taco.conditions.json.api import JsonApiCondition
from taco.conditions.json.rpc import JsonRpcCondition
from taco.conditions.jwt import JWTCondition
from taco.conditions.lingo import (
    CompoundAccessControlCondition,
    ConditionType,
    IfThenElseCondition,
    SequentialAccessControlCondition,
)
from taco.conditions.time import TimeCondition
from tests.constants import TESTERCHAIN_CHAIN_ID

EXPECTED_CLASSES = {
    ConditionType.TIME.value: TimeCondition,
    ConditionType.CONTRACT.value: ContractCondition,
    ConditionType.RPC.value: RPCCondition,
    ConditionType.JSONAPI.value: JsonApiCondition,
    ConditionType.JSONRPC.value: JsonRpcCondition,
    ConditionType.JWT.value: JWTCondition,
    ConditionType.COMPOUND.value: CompoundAccessControlCondition,
    ConditionType.SEQUENTIAL.value: SequentialAccessControlCondition,
    ConditionType.IF_THEN_ELSE.value: IfThenElseCondition,
}


@pytest.fixture
def condition_dicts(lingo_with_all_condition_types):
    """One wire form for each condition type."""
    operands = lingo_with_all_condition_types["condition"]["operands"]
    if_then_else = operands[5]
    conditions = [
        lingo_with_all_condition_types["condition"],
        *operands,
        if_then_else["ifCondition"],
        if_then_else["thenCondition"],
        if_then_else["elseCondition"],
    ]
    return {condition["conditionType"]: condition for condition in conditions}


def test_every_condition_type_is_registered(condition_dicts):
    assert set(condition_dicts) == set(ConditionType.values())
    for condition_type, condition_class in EXPECTED_CLASSES.items():
        condition_dict = condition_dicts[condition_type]
        assert ConditionFactory.resolve_condition_class(condition_dict) == condition_class


@pytest.mark.parametrize("condition_type", ConditionType.values())
def test_condition_factory_round_trip(condition_type, condition_dicts):
    condition_dict = condition_dicts[condition_type]

    condition = ConditionFactory.from_dict(condition_dict)
    assert isinstance(condition, EXPECTED_CLASSES[condition_type])
    assert ConditionFactory.to_dict(condition) == condition_dict

    condition_json = ConditionFactory.to_json(condition)
    assert json.loads(condition_json) == condition_dict

    condition_from_json = ConditionFactory.from_json(condition_json)
    assert condition_from_json == condition
    assert hash(condition_from_json) == hash(condition)


@pytest.mark.parametrize(
    "condition_dict",
    [
        {"conditionType": "bitcoin", "chain": TESTERCHAIN_CHAIN_ID},
        {"chain": TESTERCHAIN_CHAIN_ID, "method": "blocktime"},
        {"conditionType": None},
        {"conditionType": ["time"]},
    ],
)
def test_condition_factory_unknown_type(condition_dict):
    with pytest.raises(UnknownConditionType):
        ConditionFactory.resolve_condition_class(condition_dict)

    with pytest.raises(UnknownConditionType):
        ConditionFactory.from_dict(condition_dict)

    violations = ConditionFactory.validate(condition_dict)
    assert len(violations) == 1
    path, message = violations[0]
    assert path == "conditionType"
    assert "Invalid condition type" in message


@pytest.mark.parametrize("data", [[], "time", 42, None])
def test_condition_factory_non_mapping(data):
    with pytest.raises(InvalidCondition, match="must be a mapping"):
        ConditionFactory.from_dict(data)


def test_condition_factory_from_invalid_json():
    with pytest.raises(InvalidCondition, match="Invalid condition JSON"):
        ConditionFactory.from_json("{not json")


def test_condition_factory_validate(condition_dicts):
    # valid
    for condition_dict in condition_dicts.values():
        assert ConditionFactory.validate(condition_dict) == []

    # every violation is reported, with its location
    invalid_time_condition = dict(
        condition_dicts[ConditionType.TIME.value],
        method="blocknumber",
        chain="not a chain",
    )
    violations = ConditionFactory.validate(invalid_time_condition)
    assert {path for path, _ in violations} == {"method", "chain"}

    # nested violations are reported relative to the root
    invalid_nested = {
        "conditionType": "compound",
        "operator": "or",
        "operands": [
            condition_dicts[ConditionType.TIME.value],
            dict(
                condition_dicts[ConditionType.TIME.value],
                returnValueTest={"comparator": "<>", "value": 0},
            ),
        ],
    }
    violations = ConditionFactory.validate(invalid_nested)
    assert [path for path, _ in violations] == ["operands[1].returnValueTest.comparator"]

    # structural violations
    invalid_structure = {
        "conditionType": "compound",
        "operator": "not",
        "operands": [
            condition_dicts[ConditionType.TIME.value],
            condition_dicts[ConditionType.TIME.value],
        ],
    }
    violations = ConditionFactory.validate(invalid_structure)
    assert violations == [("operands", "expected 1 operand, got 2")]


def test_condition_factory_validate_nested_unknown_type(condition_dicts):
    time_condition = condition_dicts[ConditionType.TIME.value]
    invalid_time_condition = dict(
        time_condition, returnValueTest={"comparator": "<>", "value": 0}
    )
    compound = {
        "conditionType": "compound",
        "operator": "and",
        "operands": [invalid_time_condition, {"conditionType": "bogus"}],
    }

    # reported at its location, along with its siblings' violations
    violations = ConditionFactory.validate(compound)
    assert [path for path, _ in sorted(violations)] == [
        "operands[0].returnValueTest.comparator",
        "operands[1].conditionType",
    ]
    assert ("operands[1].conditionType", "Invalid condition type: 'bogus'") in violations

    with pytest.raises(InvalidCondition) as exc_info:
        ConditionFactory.from_dict(compound)
    assert not isinstance(exc_info.value, UnknownConditionType)

    sequential = {
        "conditionType": "sequential",
        "conditionVariables": [
            {"varName": "a", "condition": time_condition},
            {"varName": "b", "condition": {"conditionType": None}},
        ],
    }
    assert ConditionFactory.validate(sequential) == [
        ("conditionVariables[1].condition.conditionType", "Invalid condition type: None"),
    ]
