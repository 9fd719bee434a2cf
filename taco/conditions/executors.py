"""
Executors obtain the value of leaf conditions.

A condition resolves its context variables and hands its resolved wire form (the "call")
to an executor; combinators never reach an executor directly.
"""

from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Optional

import jwt
import requests

from taco.conditions.exceptions import (
    JsonRequestException,
    JWTException,
    NoExecutorForCondition,
    RPCExecutionFailed,
)
from taco.conditions.json.base import HTTPMethod
from taco.conditions.lingo import ConditionType
from taco.conditions.providers import ConditionProvider, ConditionProviderManager
from taco.config.constants import JSON_REQUEST_TIMEOUT
from taco.utilities.logging import Logger


class ConditionExecutor(ABC):
    @abstractmethod
    def execute(self, condition, call: Dict) -> Any:
        """Returns the raw result for a leaf condition given its resolved wire form."""
        raise NotImplementedError


class RoutingExecutor(ConditionExecutor):
    """Dispatches to an executor based on the condition type."""

    def __init__(self, executors: Dict[str, ConditionExecutor]):
        self.executors = executors

    @classmethod
    def default(
        cls,
        providers: Optional[ConditionProviderManager] = None,
        timeout: int = JSON_REQUEST_TIMEOUT,
    ) -> "RoutingExecutor":
        json_executor = JsonRequestExecutor(timeout=timeout)
        executors = {
            ConditionType.JSONAPI.value: json_executor,
            ConditionType.JSONRPC.value: json_executor,
            ConditionType.JWT.value: JWTExecutor(),
        }
        if providers:
            chain_executor = ChainConditionExecutor(providers=providers)
            for condition_type in ChainConditionExecutor.CONDITION_TYPES:
                executors[condition_type] = chain_executor
        return cls(executors=executors)

    def execute(self, condition, call: Dict) -> Any:
        try:
            executor = self.executors[condition.condition_type]
        except KeyError:
            raise NoExecutorForCondition(
                f"No executor available for '{condition.condition_type}' conditions"
            )
        return executor.execute(condition, call)


class ChainConditionExecutor(ConditionExecutor):
    """Executes rpc, time and contract conditions against the providers for their chain."""

    CONDITION_TYPES = (
        ConditionType.RPC.value,
        ConditionType.TIME.value,
        ConditionType.CONTRACT.value,
    )

    RPC_METHODS = {
        "eth_getBalance": lambda provider, params: provider.get_balance(*params),
    }

    def __init__(self, providers: ConditionProviderManager):
        self.providers = providers
        self.logger = Logger(__name__)

    def _prepare(self, condition, call: Dict) -> Callable[[ConditionProvider], Any]:
        """Returns a function performing the read for the call with a given provider."""
        condition_type = call["conditionType"]
        parameters: List[Any] = call.get("parameters") or []

        if condition_type == ConditionType.TIME.value:
            return lambda provider: provider.get_block_timestamp("latest")

        if condition_type == ConditionType.CONTRACT.value:
            try:
                bound_contract_function = condition.contract_function(*parameters)
            except Exception as e:
                raise RPCExecutionFailed(
                    f"Unable to encode parameters for contract call '{call['method']}': {e}"
                ) from e
            return lambda provider: provider.call_contract_function(
                bound_contract_function
            )

        try:
            rpc_method = self.RPC_METHODS[call["method"]]
        except KeyError:
            raise RPCExecutionFailed(f"Unsupported RPC method '{call['method']}'")
        return lambda provider: rpc_method(provider, parameters)

    def execute(self, condition, call: Dict) -> Any:
        read = self._prepare(condition, call)

        latest_error = None
        for provider in self.providers.providers_for(call["chain"]):
            try:
                return read(provider)
            except Exception as e:
                latest_error = str(e)
                self.logger.warn(
                    f"RPC call '{call['method']}' failed on chain {call['chain']}: {latest_error}"
                )
                continue

        raise RPCExecutionFailed(
            f"RPC call '{call['method']}' failed; latest error - {latest_error}"
        )


class JsonRequestExecutor(ConditionExecutor):
    """Executes json-api (GET) and json-rpc (JSON-RPC 2.0 POST) conditions."""

    def __init__(self, timeout: int = JSON_REQUEST_TIMEOUT):
        self.timeout = timeout
        self.logger = Logger(__name__)

    @staticmethod
    def _headers(call: Dict) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        authorization_token = call.get("authorizationToken")
        if authorization_token:
            headers["Authorization"] = f"Bearer {authorization_token}"
        return headers

    def execute(self, condition, call: Dict) -> Any:
        endpoint = call["endpoint"]
        headers = self._headers(call)
        try:
            if condition.HTTP_METHOD == HTTPMethod.GET:
                response = requests.get(
                    endpoint,
                    params=call.get("parameters"),
                    timeout=self.timeout,
                    headers=headers,
                )
            else:
                # POST
                payload = {
                    "jsonrpc": "2.0",
                    "method": call["method"],
                    "params": call.get("params") or [],
                    "id": 1,  # any id will do
                }
                response = requests.post(
                    endpoint,
                    json=payload,
                    timeout=self.timeout,
                    headers=headers,
                )

            response.raise_for_status()
            if response.status_code != HTTPStatus.OK:
                raise JsonRequestException(
                    f"Failed to fetch from endpoint {endpoint}: {response.status_code}"
                )

        except requests.exceptions.RequestException as request_error:
            raise JsonRequestException(
                f"Failed to fetch from endpoint {endpoint}: {request_error}"
            ) from request_error

        try:
            data = response.json()
            return data
        except (requests.exceptions.RequestException, ValueError) as json_error:
            raise JsonRequestException(
                f"Failed to extract JSON response from {endpoint}: {json_error}"
            ) from json_error


class JWTExecutor(ConditionExecutor):
    """Verifies jwt conditions; the payload of a valid token is the result."""

    def execute(self, condition, call: Dict) -> Any:
        expected_issuer = call.get("expectedIssuer")
        require = []
        if expected_issuer:
            require.append("iss")

        try:
            payload = jwt.decode(
                jwt=call["jwtToken"],
                key=call["publicKey"],
                algorithms=condition.VALID_JWT_ALGORITHMS,
                options=dict(require=require),
                issuer=expected_issuer,
            )
        except jwt.exceptions.InvalidAlgorithmError as e:
            raise JWTException(
                f"valid algorithms: {condition.VALID_JWT_ALGORITHMS}"
            ) from e
        except jwt.exceptions.InvalidTokenError as e:
            raise JWTException(e) from e

        return payload
