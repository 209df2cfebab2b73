"""
Domain errors.

Services raise these directly and every state check runs before anything
is written, so a raised error never leaves a partial update behind.
main.py renders them as ``{"detail": ..., "error_code": ...}``.

- NotFoundError: the entity is absent or the caller does not own it
- ForbiddenError: the caller owns it but its state rules the operation out
- InvalidInputError: malformed or out-of-range arguments
- UnauthorizedError: no usable bearer token
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "BAD_REQUEST"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status_code or type(self).status_code,
            detail=detail,
            headers=headers,
        )
        self.error_code = error_code or type(self).error_code


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        suffix = "" if identifier is None else f": {identifier}"
        super().__init__(f"{resource} not found{suffix}")
        self.resource = resource


class ForbiddenError(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"

    def __init__(self, detail: str = "Operation not allowed"):
        super().__init__(detail)


class InvalidInputError(APIException):
    """``field`` narrows the code, e.g. INVALID_INPUT_SET_NUMBER."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "INVALID_INPUT"

    def __init__(self, detail: str, field: Optional[str] = None):
        code = f"INVALID_INPUT_{field.upper()}" if field else None
        super().__init__(detail, error_code=code)
        self.field = field


class UnauthorizedError(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})
