import json
from abc import ABC, abstractmethod
from base64 import b64decode, b64encode
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from marshmallow import Schema, ValidationError, fields

from taco.conditions.context import get_context_variables
from taco.conditions.exceptions import InvalidCondition, InvalidConditionStructure
from taco.conditions.utils import (
    CamelCaseSchema,
    extract_error_messages_from_schema_errors,
)


class _Serializable:
    class Schema(Schema):
        field = NotImplemented

    def to_json(self) -> str:
        schema = self.Schema()
        data = schema.dumps(self)
        return data

    @classmethod
    def from_json(cls, data) -> '_Serializable':
        data = json.loads(data)
        schema = cls.Schema()
        instance = schema.load(data)
        return instance

    def to_dict(self):
        schema = self.Schema()
        data = schema.dump(self)
        return data

    @classmethod
    def from_dict(cls, data) -> '_Serializable':
        schema = cls.Schema()
        instance = schema.load(data)
        return instance

    def __bytes__(self) -> bytes:
        json_payload = self.to_json().encode()
        b64_json_payload = b64encode(json_payload)
        return b64_json_payload

    @classmethod
    def from_bytes(cls, data: bytes) -> '_Serializable':
        json_payload = b64decode(data).decode()
        instance = cls.from_json(json_payload)
        return instance


class _Immutable:
    """Attributes can be assigned until the instance is frozen, once it is validated."""

    def _freeze(self) -> None:
        object.__setattr__(self, "_frozen", True)

    def __setattr__(self, key, value):
        if getattr(self, "_frozen", False):
            raise AttributeError(
                f"{self.__class__.__name__} is immutable; cannot set '{key}'"
            )
        super().__setattr__(key, value)

    def __delattr__(self, key):
        raise AttributeError(
            f"{self.__class__.__name__} is immutable; cannot delete '{key}'"
        )


class AccessControlCondition(_Immutable, _Serializable, ABC):
    """
    Base of every node in a condition expression tree.

    Nodes are validated against their schema on construction and are immutable afterwards;
    equality and hashing are based on the wire (dict) representation.
    """

    CONDITION_TYPE = NotImplemented

    class Schema(CamelCaseSchema):
        SKIP_VALUES = (None,)
        name = fields.Str(required=False, allow_none=True)
        condition_type = NotImplemented

    def __init__(self, condition_type: str, name: Optional[str] = None):
        super().__init__()

        self.condition_type = condition_type
        self.name = name

        self._validate()
        self._freeze()

    def __eq__(self, other):
        if not isinstance(other, AccessControlCondition):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(json.dumps(self.to_dict(), sort_keys=True))

    @abstractmethod
    def verify(self, *args, **kwargs) -> Tuple[bool, Any]:
        """Returns the boolean result of the evaluation and the returned value in a two-tuple."""
        raise NotImplementedError

    def _validation_data(self) -> Dict:
        """Data validated by the schema on construction."""
        return self.to_dict()

    def _validate_structure(self) -> None:
        """Checks invariants spanning several fields; raises InvalidConditionStructure."""
        return

    def _validate(self, **kwargs):
        errors = self.Schema().validate(data=self._validation_data())
        if errors:
            error_message, error_list = extract_error_messages_from_schema_errors(
                errors
            )
            raise InvalidCondition(
                f"Invalid {self.__class__.__name__}: {error_message}",
                errors=error_list,
            )
        self._validate_structure()

    @property
    def context_variables(self) -> Set[str]:
        """Context variables that must be supplied to evaluate this condition."""
        return get_context_variables(self.to_dict())

    @classmethod
    def from_dict(cls, data) -> "AccessControlCondition":
        try:
            return super().from_dict(data)
        except ValidationError as e:
            error_message, error_list = extract_error_messages_from_schema_errors(
                e.messages
            )
            raise InvalidCondition(
                f"Invalid {cls.__name__}: {error_message}", errors=error_list
            ) from e

    @classmethod
    def from_json(cls, data) -> "AccessControlCondition":
        try:
            data = json.loads(data)
        except ValueError as e:
            raise InvalidCondition(f"Invalid JSON for {cls.__name__}: {e}") from e
        return cls.from_dict(data)


class MultiConditionAccessControl(AccessControlCondition):
    """Conditions composed of child conditions."""

    @property
    @abstractmethod
    def conditions(self) -> List[AccessControlCondition]:
        raise NotImplementedError

    def descendants(self) -> Iterator[AccessControlCondition]:
        """Depth-first iteration over every condition below this one."""
        for condition in self.conditions:
            yield condition
            if isinstance(condition, MultiConditionAccessControl):
                yield from condition.descendants()

    def _validate_structure(self) -> None:
        super()._validate_structure()
        for condition in self.descendants():
            if condition is self:
                raise InvalidConditionStructure(
                    f"{self.__class__.__name__} cannot contain itself",
                    errors=[("", "condition cannot contain itself")],
                )
