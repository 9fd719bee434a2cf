from typing import List, Optional, Sequence, Tuple


# Lingo Validation Errors (Grammar)
class InvalidConditionLingo(Exception):
    """Invalid lingo grammar."""


class UnknownConditionType(InvalidConditionLingo):
    """Condition data carries a missing or unrecognized condition type tag."""

    def __init__(self, condition_type, message: str = None):
        self.condition_type = condition_type
        message = message or f"Invalid condition type: {condition_type!r}"
        super().__init__(message)


# Conditions
class InvalidCondition(ValueError):
    """
    Invalid value for condition.

    Carries every violation found as (path, message) pairs so that
    all problems can be reported at once.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[Sequence[Tuple[str, str]]] = None,
    ):
        self.errors: List[Tuple[str, str]] = list(errors or [])
        super().__init__(message)


class InvalidConditionStructure(InvalidCondition):
    """Structurally illegal tree e.g. duplicate or forward-referenced sequential variables."""


class ReturnValueEvaluationError(Exception):
    """Issue with Return Value and Key"""


# Context Variable
class InvalidConditionContext(Exception):
    """Raised when invalid context is encountered."""


class RequiredContextVariable(InvalidConditionContext):
    """No value provided for context variable"""

    def __init__(self, context_variable: str, path: str = "", message: str = None):
        self.context_variable = context_variable
        self.path = path
        if not message:
            location = f" at '{path}'" if path else ""
            message = f'No value provided for context variable "{context_variable}"{location}'
        super().__init__(message)


class InvalidContextVariableData(InvalidConditionContext):
    """Context variable could not be processed"""


# Connectivity
class NoConnectionToChain(RuntimeError):
    """Raised when there is no associated provider for a chain."""

    def __init__(self, chain: int, message: str = None):
        self.chain = chain
        message = message or f"No connection to chain ID {chain}"
        super().__init__(message)


class InvalidConnectionToChain(RuntimeError):
    """Raised when a provider is connected to a different chain than expected."""

    def __init__(self, expected_chain: int, actual_chain: int, message: str = None):
        self.expected_chain = expected_chain
        self.actual_chain = actual_chain
        message = (
            message
            or f"Invalid blockchain connection; expected chain ID {expected_chain}, but detected {actual_chain}"
        )
        super().__init__(message)


# Evaluation
class ConditionEvaluationFailed(Exception):
    """Could not evaluate condition."""


class NoExecutorForCondition(ConditionEvaluationFailed):
    """No executor is registered for a condition type."""


class RPCExecutionFailed(ConditionEvaluationFailed):
    """Raised when an exception is raised from an RPC call."""


class JsonRequestException(ConditionEvaluationFailed):
    """Raised when an exception is raised from a JSON request."""


class JWTException(ConditionEvaluationFailed):
    """Raised when an exception is raised when validating a JWT token"""
