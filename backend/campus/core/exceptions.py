from typing import Any, Dict, Optional

from fastapi import status


class BaseAPIException(Exception):
    """
    Base class for every error raised on purpose by the services.
    The exception handlers in ``campus.main`` turn it into the response envelope.
    """
    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class BadRequestException(BaseAPIException):
    """400: the request is well-formed but cannot be applied."""
    def __init__(self, message: str = "Bad Request", details: dict = None):
        super().__init__(
            message=message,
            code="BAD_REQUEST",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class UnauthorizedException(BaseAPIException):
    """401: bad credentials, or an expired/mismatched token."""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            code="UNAUTHORIZED",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class PermissionDeniedException(BaseAPIException):
    """403: authenticated, but not allowed to touch this resource."""
    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            code="PERMISSION_DENIED",
            status_code=status.HTTP_403_FORBIDDEN
        )


class NotFoundException(BaseAPIException):
    """404"""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND
        )


class ConflictException(BaseAPIException):
    """409: duplicate email or course code, role already held, grade already exists."""
    def __init__(self, message: str = "Conflict", details: dict = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )
