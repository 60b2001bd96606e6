"""
API errors - one exception per caller-visible failure kind.
Challenge: Stable status codes and messages across validation, compilation and backend calls.
Design: Raised by the service layer, rendered once by the app's exception handler.
"""

from http import HTTPStatus


class ApiError(Exception):
    """Base for every error that is rendered to the caller as {message, code}."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"message": self.message, "code": int(self.status_code)}


# It's not us, it's you.
class BadRequest(ApiError):
    status_code = HTTPStatus.BAD_REQUEST


class UnrecognizedParameters(BadRequest):
    def __init__(self, params: str):
        super().__init__(f"Unrecognized parameters: {params}")
        self.params = params


class InvalidParameter(BadRequest):
    def __init__(self, rule: str):
        super().__init__(f"Invalid parameter: {rule}")
        self.rule = rule


class TooManyIdentifiers(BadRequest):
    pass


# It's not you, it's us.
class InternalError(ApiError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)


class BackendFailure(InternalError):
    """The search backend could not be reached or rejected the query."""


class QueryCompilationError(InternalError):
    """A validated request referenced something the field registry cannot resolve."""

    def __init__(self, detail: str):
        super().__init__()
        self.detail = detail

    def __str__(self) -> str:
        return self.detail
