from copy import deepcopy
from typing import Any, Dict, Optional

from marshmallow import ValidationError, fields, post_load, validates
from marshmallow.fields import Url
from typing_extensions import override

from taco.conditions.exceptions import JsonRequestException
from taco.conditions.fields import AnyField
from taco.conditions.json.base import BaseJsonRequestCondition, HTTPMethod
from taco.conditions.lingo import ConditionType, ReturnValueTest, condition_type_field


class JsonRpcCondition(BaseJsonRequestCondition):
    """
    A JSON RPC condition is evaluated by POSTing a JSON-RPC 2.0 request to an HTTPS endpoint.
    The "result" of the response is optionally parsed using jsonpath before being tested.

    JSON_RPC_CONDITION = {
        "name": ...  (Optional)
        "conditionType": "json-rpc",
        "endpoint": HTTPS_URL,
        "method": STR,
        "params": [...] | {...},  (Optional)
        "query": JSONPATH,  (Optional)
        "authorizationToken": CONTEXT_VARIABLE,  (Optional)
        "returnValueTest": RETURN_VALUE_TEST
    }
    """

    HTTP_METHOD = HTTPMethod.POST
    CONDITION_TYPE = ConditionType.JSONRPC.value

    class Schema(BaseJsonRequestCondition.Schema):
        condition_type = condition_type_field(ConditionType.JSONRPC)
        endpoint = Url(required=True, relative=False, schemes=["https"])
        method = fields.Str(required=True)
        params = AnyField(required=False, allow_none=True)

        @validates("method")
        def validate_method(self, value, **kwargs):
            if not value:
                raise ValidationError("Undefined method name")

        @validates("params")
        def validate_params(self, value, **kwargs):
            if value is not None and not isinstance(value, (list, dict)):
                raise ValidationError(
                    f"JSON RPC params must be a list or an object, not {type(value).__name__}"
                )

        @post_load
        def make(self, data, **kwargs):
            return JsonRpcCondition(**data)

    def __init__(
        self,
        endpoint: str,
        method: str,
        return_value_test: ReturnValueTest,
        params: Optional[Any] = None,
        query: Optional[str] = None,
        authorization_token: Optional[str] = None,
        condition_type: str = ConditionType.JSONRPC.value,
        name: Optional[str] = None,
    ):
        self.method = method
        params = deepcopy(params)
        self.params = tuple(params) if isinstance(params, list) else params
        super().__init__(
            endpoint=endpoint,
            return_value_test=return_value_test,
            query=query,
            authorization_token=authorization_token,
            condition_type=condition_type,
            name=name,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(endpoint={self.endpoint}, method={self.method})"

    @override
    def _process_result(self, result: Any, resolved_call: Dict) -> Any:
        if not isinstance(result, dict):
            raise JsonRequestException(
                f"Invalid JSON RPC response; expected an object, got {type(result).__name__}"
            )

        # response contains a value for either "result" or "error"
        error = result.get("error")
        if error:
            raise JsonRequestException(
                f"JSON RPC Request failed with error in response: {error}"
            )
        if "result" not in result:
            raise JsonRequestException("JSON RPC response does not contain a result")

        # obtain result first then perform query
        return super()._process_result(result["result"], resolved_call)
