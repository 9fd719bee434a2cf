from copy import deepcopy
from typing import Optional

from marshmallow import fields, post_load
from marshmallow.fields import Url

from taco.conditions.json.base import BaseJsonRequestCondition, HTTPMethod
from taco.conditions.lingo import ConditionType, ReturnValueTest, condition_type_field


class JsonApiCondition(BaseJsonRequestCondition):
    """
    A JSON API condition is a condition that can be evaluated by performing a GET on a JSON
    HTTPS endpoint. The response must return an HTTP 200 with valid JSON in the response body.
    The response will be deserialized as JSON and parsed using jsonpath.

    JSON_API_CONDITION = {
        "name": ...  (Optional)
        "conditionType": "json-api",
        "endpoint": HTTPS_URL,
        "parameters": {...},  (Optional)
        "query": JSONPATH,  (Optional)
        "authorizationToken": CONTEXT_VARIABLE,  (Optional)
        "returnValueTest": RETURN_VALUE_TEST
    }
    """

    HTTP_METHOD = HTTPMethod.GET
    CONDITION_TYPE = ConditionType.JSONAPI.value

    class Schema(BaseJsonRequestCondition.Schema):
        condition_type = condition_type_field(ConditionType.JSONAPI)
        endpoint = Url(required=True, relative=False, schemes=["https"])
        parameters = fields.Dict(required=False, allow_none=True)

        @post_load
        def make(self, data, **kwargs):
            return JsonApiCondition(**data)

    def __init__(
        self,
        endpoint: str,
        return_value_test: ReturnValueTest,
        query: Optional[str] = None,
        parameters: Optional[dict] = None,
        authorization_token: Optional[str] = None,
        condition_type: str = ConditionType.JSONAPI.value,
        name: Optional[str] = None,
    ):
        self.parameters = deepcopy(parameters)
        super().__init__(
            endpoint=endpoint,
            return_value_test=return_value_test,
            query=query,
            authorization_token=authorization_token,
            condition_type=condition_type,
            name=name,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(endpoint={self.endpoint}, query={self.query})"
