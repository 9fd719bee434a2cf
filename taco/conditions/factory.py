import json
from typing import Dict, List, Tuple, Type

from taco.conditions.base import AccessControlCondition
from taco.conditions.exceptions import (
    InvalidCondition,
    UnknownConditionType,
)
from taco.conditions.types import ConditionDict


class ConditionFactory:
    """
    Polymorphic codec for condition expressions.

    Untyped wire data is dispatched on its "conditionType" tag to the matching condition
    class, whose schema validates it (children first) and constructs the instance.
    """

    @staticmethod
    def _condition_classes() -> Dict[str, Type[AccessControlCondition]]:
        # prevent circular import
        from taco.conditions.evm import ContractCondition, RPCCondition
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

        return {
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

    @classmethod
    def resolve_condition_class(
        cls, condition: ConditionDict
    ) -> Type[AccessControlCondition]:
        """
        Inspects a given block of JSON and resolves its intended datatype within the
        conditions expression framework.
        """
        if not isinstance(condition, dict):
            raise InvalidCondition(
                f"Condition data must be a mapping, not {type(condition).__name__}",
                errors=[("", "not a mapping")],
            )

        condition_type = condition.get("conditionType")
        try:
            return cls._condition_classes()[condition_type]
        except (KeyError, TypeError):
            raise UnknownConditionType(condition_type=condition_type)

    @classmethod
    def from_dict(cls, data: ConditionDict) -> AccessControlCondition:
        condition_class = cls.resolve_condition_class(data)
        return condition_class.from_dict(data)

    @classmethod
    def from_json(cls, data: str) -> AccessControlCondition:
        try:
            data = json.loads(data)
        except ValueError as e:
            raise InvalidCondition(f"Invalid condition JSON: {e}") from e
        return cls.from_dict(data)

    @staticmethod
    def to_dict(condition: AccessControlCondition) -> ConditionDict:
        return condition.to_dict()

    @staticmethod
    def to_json(condition: AccessControlCondition) -> str:
        return condition.to_json()

    @classmethod
    def validate(cls, data: ConditionDict) -> List[Tuple[str, str]]:
        """
        Returns every violation found in condition data as (path, message) pairs;
        the list is empty if the data describes a valid condition.
        """
        try:
            cls.from_dict(data)
        except UnknownConditionType as e:
            return [("conditionType", str(e))]
        except InvalidCondition as e:
            return e.errors or [("", str(e))]
        return []
