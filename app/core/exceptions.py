from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "INTERNAL"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Entity absent or outside the caller's tenant. Both cases look identical to the caller."""

    kind = "NOT_FOUND"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ValidationFailedError(ServiceError):
    """Missing or malformed input."""

    kind = "VALIDATION_FAILED"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class PreconditionFailedError(ServiceError):
    """A business rule gate was not met (annual enrollment, approved plan, curriculum link...)."""

    kind = "PRECONDITION_FAILED"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConflictError(ServiceError):
    kind = "CONFLICT"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class ForbiddenError(ServiceError):
    """Financial/academic block or missing tenant scope."""

    kind = "FORBIDDEN"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)
