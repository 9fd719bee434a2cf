from typing import Any, Dict, List, Union

from typing_extensions import Literal, NotRequired, TypedDict

#########
# Context
#########
ContextDict = Dict[str, Any]


#####
# ABI
#####
ABIFunction = Dict[str, Any]


################
# ConditionLingo
################

ComparatorLiteral = Literal["==", "!=", ">", "<", ">=", "<="]
OperatorLiteral = Literal["and", "or", "not"]
FailurePolicyLiteral = Literal["halt", "continue"]


# Return Value Test
class ReturnValueTestDict(TypedDict):
    comparator: ComparatorLiteral
    value: Any
    index: NotRequired[int]


# Conditions
class _AccessControlCondition(TypedDict):
    name: NotRequired[str]
    conditionType: str


class BaseExecConditionDict(_AccessControlCondition):
    returnValueTest: ReturnValueTestDict


class RPCConditionDict(BaseExecConditionDict):
    chain: int
    method: str
    parameters: NotRequired[List[Any]]


class TimeConditionDict(RPCConditionDict):
    pass


class ContractConditionDict(RPCConditionDict):
    contractAddress: str
    standardContractType: NotRequired[str]
    functionAbi: NotRequired[ABIFunction]


class JsonApiConditionDict(BaseExecConditionDict):
    endpoint: str
    query: NotRequired[str]
    parameters: NotRequired[Dict]
    authorizationToken: NotRequired[str]


class JsonRpcConditionDict(BaseExecConditionDict):
    endpoint: str
    method: str
    params: NotRequired[Any]
    query: NotRequired[str]
    authorizationToken: NotRequired[str]


class JWTConditionDict(_AccessControlCondition):
    jwtToken: str
    publicKey: str
    expectedIssuer: NotRequired[str]


#
# CompoundCondition represents:
# {
#     "operator": ["and" | "or" | "not"]
#     "operands": List[AccessControlCondition]
# }
#
class CompoundConditionDict(_AccessControlCondition):
    operator: OperatorLiteral
    operands: List["ConditionDict"]


#
# ConditionVariable represents:
# {
#     varName: str
#     condition: AccessControlCondition
# }
#
class ConditionVariableDict(TypedDict):
    varName: str
    condition: "ConditionDict"


#
# SequentialCondition represents:
# {
#     "conditionVariables": List[ConditionVariable]
#     "failurePolicy": ["halt" | "continue"]
# }
#
class SequentialConditionDict(_AccessControlCondition):
    conditionVariables: List[ConditionVariableDict]
    failurePolicy: FailurePolicyLiteral


#
# IfThenElseCondition represents:
# {
#     "ifCondition": AccessControlCondition
#     "thenCondition": AccessControlCondition
#     "elseCondition": [AccessControlCondition | bool]
# }
class IfThenElseConditionDict(_AccessControlCondition):
    ifCondition: "ConditionDict"
    thenCondition: "ConditionDict"
    elseCondition: Union["ConditionDict", bool]


ConditionDict = Union[
    TimeConditionDict,
    RPCConditionDict,
    ContractConditionDict,
    CompoundConditionDict,
    JsonApiConditionDict,
    JsonRpcConditionDict,
    JWTConditionDict,
    SequentialConditionDict,
    IfThenElseConditionDict,
]


#
# Lingo is:
# - version
# - condition
#     - ConditionDict
class Lingo(TypedDict):
    version: str
    condition: ConditionDict
