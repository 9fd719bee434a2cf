from abc import ABC
from enum import Enum
from typing import Any, Dict, Optional

from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.ext import parse
from marshmallow import ValidationError, fields, validates

from taco.conditions.context import is_context_variable
from taco.conditions.exceptions import JsonRequestException
from taco.conditions.fields import JSONPathField
from taco.conditions.lingo import ExecutionCallAccessControlCondition, ReturnValueTest
from taco.utilities.logging import Logger


class HTTPMethod(Enum):
    GET = "GET"
    POST = "POST"


class BaseJsonRequestCondition(ExecutionCallAccessControlCondition, ABC):
    """
    Conditions evaluated by performing a request against a JSON HTTPS endpoint.
    The response is deserialized as JSON and, if a query is specified, parsed using JSONPath.
    """

    HTTP_METHOD = NotImplemented
    LOG = Logger(__name__)

    class Schema(ExecutionCallAccessControlCondition.Schema):
        query = JSONPathField(required=False, allow_none=True)
        authorization_token = fields.Str(required=False, allow_none=True)

        @validates("authorization_token")
        def validate_auth_token(self, value, **kwargs):
            if value and not is_context_variable(value):
                raise ValidationError(
                    f"Invalid value for authorization token; expected a context variable, but got '{value}'"
                )

    def __init__(
        self,
        endpoint: str,
        condition_type: str,
        return_value_test: ReturnValueTest,
        query: Optional[str] = None,
        authorization_token: Optional[str] = None,
        name: Optional[str] = None,
    ):
        self.endpoint = endpoint
        self.query = query
        self.authorization_token = authorization_token
        super().__init__(
            condition_type=condition_type,
            return_value_test=return_value_test,
            name=name,
        )

    def _query_response(self, response_json: Any, resolved_query: Optional[str]) -> Any:
        if not resolved_query:
            return response_json  # primitive value

        try:
            expression = parse(resolved_query)
        except (JsonPathLexerError, JsonPathParserError) as e:
            raise JsonRequestException(
                f"Invalid JSONPath query '{resolved_query}': {e}"
            ) from e

        matches = expression.find(response_json)
        if not matches:
            message = f"No matches found for the JSONPath query: {resolved_query}"
            self.LOG.info(message)
            raise JsonRequestException(message)

        if len(matches) > 1:
            message = f"Ambiguous JSONPath query - multiple matches found for: {resolved_query}"
            self.LOG.info(message)
            raise JsonRequestException(message)
        result = matches[0].value
        return result

    def _process_result(self, result: Any, resolved_call: Dict) -> Any:
        return self._query_response(result, resolved_call.get("query"))
