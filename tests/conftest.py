import pytest
from click.testing import CliRunner
from eth_account import Account
from web3 import Web3

from taco.conditions.context import USER_ADDRESS_CONTEXT
from taco.conditions.evm import RPCCondition
from taco.conditions.lingo import ConditionLingo, ReturnValueTest
from taco.conditions.time import TimeCondition
from taco.utilities.logging import GlobalLoggerSettings
from tests.constants import TESTERCHAIN_CHAIN_ID


@pytest.fixture(autouse=True, scope="session")
def __stop_global_logging():
    yield
    GlobalLoggerSettings.stop_all()


@pytest.fixture(scope="module")
def click_runner():
    runner = CliRunner()
    yield runner


@pytest.fixture(scope="session")
def user_address():
    return Account.create().address


@pytest.fixture(scope="module")
def valid_user_address_context(user_address):
    return {USER_ADDRESS_CONTEXT: {"address": user_address, "signature": "0x", "scheme": "EIP4361"}}


#
# Conditions
#


@pytest.fixture
def time_condition():
    condition = TimeCondition(
        chain=TESTERCHAIN_CHAIN_ID, return_value_test=ReturnValueTest(">", 0)
    )
    return condition


@pytest.fixture
def rpc_condition():
    condition = RPCCondition(
        method="eth_getBalance",
        chain=TESTERCHAIN_CHAIN_ID,
        return_value_test=ReturnValueTest("==", Web3.to_wei(1_000_000, "ether")),
        parameters=[USER_ADDRESS_CONTEXT],
    )
    return condition


@pytest.fixture
def compound_blocktime_lingo():
    return {
        "version": ConditionLingo.VERSION,
        "condition": {
            "conditionType": "compound",
            "operator": "and",
            "operands": [
                {
                    "conditionType": "time",
                    "returnValueTest": {"value": 0, "comparator": ">"},
                    "method": "blocktime",
                    "chain": TESTERCHAIN_CHAIN_ID,
                },
                {
                    "conditionType": "time",
                    "returnValueTest": {
                        "value": "99999999999999999n",
                        "comparator": "<",
                    },
                    "method": "blocktime",
                    "chain": TESTERCHAIN_CHAIN_ID,
                },
                {
                    "conditionType": "time",
                    "returnValueTest": {"value": 0, "comparator": ">"},
                    "method": "blocktime",
                    "chain": TESTERCHAIN_CHAIN_ID,
                },
            ],
        },
    }
