class AppError(Exception):
    """Base class for business failures raised by the services.

    ``kind`` names the failure category so an outer layer can map it to
    whatever its transport needs without inspecting messages.
    """

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    kind = "not_found"


class ForbiddenError(AppError):
    kind = "forbidden"


class ConflictError(AppError):
    kind = "conflict"


class ValidationError(AppError):
    kind = "validation"
