from typing import Any, Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import load_pem_public_key
from marshmallow import ValidationError, fields, post_load, validates

from taco.conditions.base import AccessControlCondition
from taco.conditions.context import (
    JWT_TOKEN_CONTEXT,
    is_context_variable,
    resolve_condition_context,
)
from taco.conditions.lingo import ConditionType, condition_type_field


class JWTCondition(AccessControlCondition):
    """
    A JWT condition can be satisfied by presenting a valid JWT token, which not only is
    required to be cryptographically verifiable, but also must fulfill certain additional
    restrictions defined in the condition.

    JWT_CONDITION = {
        "name": ...  (Optional)
        "conditionType": "jwt",
        "jwtToken": CONTEXT_VARIABLE,  (Optional, defaults to ":jwtToken")
        "publicKey": PEM,
        "expectedIssuer": STR  (Optional)
    }
    """

    VALID_JWT_ALGORITHMS = (
        "ES256",
        "RS256",
    )  # https://datatracker.ietf.org/doc/html/rfc7518#section-3.1

    SECP_CURVE_FOR_ES256 = "secp256r1"

    CONDITION_TYPE = ConditionType.JWT.value

    class Schema(AccessControlCondition.Schema):
        condition_type = condition_type_field(ConditionType.JWT)
        jwt_token = fields.Str(load_default=JWT_TOKEN_CONTEXT)
        public_key = fields.Str(required=True)
        expected_issuer = fields.Str(required=False, allow_none=True)

        @validates("jwt_token")
        def validate_jwt_token(self, value, **kwargs):
            if not is_context_variable(value):
                raise ValidationError(
                    f"Invalid value for JWT token; expected a context variable, but got '{value}'"
                )

        @validates("public_key")
        def validate_public_key(self, value, **kwargs):
            try:
                public_key = load_pem_public_key(value.encode())
            except (ValueError, UnsupportedAlgorithm) as e:
                raise ValidationError(f"Invalid public key format: {str(e)}")

            if isinstance(public_key, rsa.RSAPublicKey):
                return
            if isinstance(public_key, ec.EllipticCurvePublicKey):
                curve = public_key.curve
                if curve.name != JWTCondition.SECP_CURVE_FOR_ES256:
                    raise ValidationError(f"Invalid EC public key curve: {curve.name}")
                return
            raise ValidationError(
                f"Unsupported public key type: {type(public_key).__name__}"
            )

        @post_load
        def make(self, data, **kwargs):
            return JWTCondition(**data)

    def __init__(
        self,
        public_key: str,
        jwt_token: str = JWT_TOKEN_CONTEXT,
        condition_type: str = ConditionType.JWT.value,
        name: Optional[str] = None,
        expected_issuer: Optional[str] = None,
    ):
        self.jwt_token = jwt_token
        self.public_key = public_key
        self.expected_issuer = expected_issuer
        super().__init__(condition_type=condition_type, name=name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(jwt_token={self.jwt_token}, expected_issuer={self.expected_issuer})"

    def verify(self, executor, **context) -> Tuple[bool, Any]:
        """
        Satisfied when the executor successfully verifies the token; the payload
        of the token is returned as the value.
        """
        resolved_call = resolve_condition_context(self.to_dict(), context)
        payload = executor.execute(self, resolved_call)
        result = True
        return result, payload
