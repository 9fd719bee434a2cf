import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from taco.conditions.base import AccessControlCondition
from taco.conditions.context import USER_ADDRESS_CONTEXT
from taco.conditions.evm import ContractCondition
from taco.conditions.executors import ConditionExecutor
from taco.conditions.json.api import JsonApiCondition
from taco.conditions.lingo import (
    AndCompoundCondition,
    ConditionLingo,
    OrCompoundCondition,
    ReturnValueTest,
)
from tests.constants import (
    MOCK_CONTRACT_ADDRESS,
    MOCK_ENDPOINT,
    MOCK_JWT_ISSUER,
    TESTERCHAIN_CHAIN_ID,
)


@pytest.fixture
def erc20_evm_condition():
    condition = ContractCondition(
        contract_address=MOCK_CONTRACT_ADDRESS,
        method="balanceOf",
        standard_contract_type="ERC20",
        chain=TESTERCHAIN_CHAIN_ID,
        return_value_test=ReturnValueTest("==", 0),
        parameters=[
            USER_ADDRESS_CONTEXT,
        ],
    )
    return condition


@pytest.fixture
def erc721_evm_condition():
    condition = ContractCondition(
        contract_address=MOCK_CONTRACT_ADDRESS,
        method="ownerOf",
        standard_contract_type="ERC721",
        chain=TESTERCHAIN_CHAIN_ID,
        return_value_test=ReturnValueTest("==", ":userAddress"),
        parameters=[
            5954,
        ],
    )
    return condition


@pytest.fixture
def json_api_condition():
    condition = JsonApiCondition(
        endpoint=MOCK_ENDPOINT,
        query="$.store.book[0].price",
        return_value_test=ReturnValueTest("==", 2),
    )
    return condition


@pytest.fixture
def compound_lingo(
    erc721_evm_condition, time_condition, rpc_condition, erc20_evm_condition
):
    lingo = ConditionLingo(
        condition=OrCompoundCondition(
            operands=[
                erc721_evm_condition,
                time_condition,
                AndCompoundCondition(operands=[rpc_condition, erc20_evm_condition]),
            ]
        )
    )
    return lingo


@pytest.fixture
def mock_executor(mocker):
    executor = mocker.Mock(spec=ConditionExecutor)
    return executor


def _mock_condition(mocker, result, value, data):
    condition = mocker.Mock(spec=AccessControlCondition)
    condition.verify.return_value = (result, value)
    condition.to_dict.return_value = data
    return condition


@pytest.fixture
def mock_conditions(mocker):
    condition_1 = _mock_condition(mocker, True, 1, {"value": 1})
    condition_2 = _mock_condition(mocker, True, 2, {"value": 2})
    condition_3 = _mock_condition(mocker, True, 3, {"value": 3})
    condition_4 = _mock_condition(mocker, True, 4, {"value": 4})
    return condition_1, condition_2, condition_3, condition_4


@pytest.fixture(scope="module")
def jwt_ec_keypair():
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem.decode(), public_pem.decode()


@pytest.fixture
def lingo_with_all_condition_types(jwt_ec_keypair):
    _, public_key = jwt_ec_keypair

    time_condition = {
        "conditionType": "time",
        "chain": TESTERCHAIN_CHAIN_ID,
        "method": "blocktime",
        "returnValueTest": {"comparator": ">", "value": 0},
    }
    contract_condition = {
        "conditionType": "contract",
        "chain": TESTERCHAIN_CHAIN_ID,
        "method": "isPolicyActive",
        "parameters": [":hrac"],
        "contractAddress": MOCK_CONTRACT_ADDRESS,
        "functionAbi": {
            "type": "function",
            "name": "isPolicyActive",
            "stateMutability": "view",
            "inputs": [
                {"name": "_policyID", "type": "bytes16", "internalType": "bytes16"}
            ],
            "outputs": [{"name": "", "type": "bool", "internalType": "bool"}],
        },
        "returnValueTest": {"comparator": "==", "value": True},
    }
    rpc_condition = {
        "name": "balance",
        "conditionType": "rpc",
        "chain": TESTERCHAIN_CHAIN_ID,
        "method": "eth_getBalance",
        "parameters": ["0x5082F249cDb2f2c1eE035E4f423c46EA2daB3ab1", "latest"],
        "returnValueTest": {"comparator": ">=", "value": 10000000000000},
    }
    json_api_condition = {
        "conditionType": "json-api",
        "endpoint": MOCK_ENDPOINT,
        "query": "$.store.book[0].price",
        "parameters": {"ids": "ethereum", "vs_currencies": "usd"},
        "authorizationToken": ":authToken",
        "returnValueTest": {"comparator": "==", "value": 2},
    }
    json_rpc_condition = {
        "conditionType": "json-rpc",
        "endpoint": "https://math.example.com/",
        "method": "subtract",
        "params": [42, 23],
        "query": "$.mathresult",
        "returnValueTest": {"comparator": "==", "value": 19},
    }
    jwt_condition = {
        "conditionType": "jwt",
        "jwtToken": ":aJWTToken",
        "publicKey": public_key,
        "expectedIssuer": MOCK_JWT_ISSUER,
    }
    sequential_condition = {
        "conditionType": "sequential",
        "conditionVariables": [
            {"varName": "timeValue", "condition": time_condition},
            {
                "varName": "balance",
                "condition": {
                    "conditionType": "rpc",
                    "chain": TESTERCHAIN_CHAIN_ID,
                    "method": "eth_getBalance",
                    "parameters": [":userAddress", ":timeValue"],
                    "returnValueTest": {"comparator": ">", "value": 0},
                },
            },
        ],
        "failurePolicy": "halt",
    }
    if_then_else_condition = {
        "conditionType": "if-then-else",
        "ifCondition": json_rpc_condition,
        "thenCondition": json_api_condition,
        "elseCondition": jwt_condition,
    }
    return {
        "version": ConditionLingo.VERSION,
        "condition": {
            "conditionType": "compound",
            "operator": "and",
            "operands": [
                contract_condition,
                time_condition,
                rpc_condition,
                {
                    "conditionType": "compound",
                    "operator": "not",
                    "operands": [time_condition],
                },
                sequential_condition,
                if_then_else_condition,
            ],
        },
    }
