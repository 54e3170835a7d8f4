from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for errors raised by the services.

    Subclasses fix the status code and a short title; the detail carries the
    caller-facing message.
    """

    title = "Error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, headers: dict = None):
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)


class ValidationError(AppError):
    title = "Validation Error"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(AppError):
    title = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class AuthError(AppError):
    title = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    title = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(detail)


class NotFoundError(AppError):
    title = "Not Found"
    status_code = status.HTTP_404_NOT_FOUND
