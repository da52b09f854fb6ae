"""Error taxonomy shared by the request handlers and the startup sequence."""


class ServiceError(Exception):
    """Base for errors turned into a JSON ``{"message": ...}`` response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class InvalidReferenceError(ServiceError):
    status_code = 400

    def __init__(self, message: str = "Referenced user not found"):
        super().__init__(message)


class InternalError(ServiceError):
    status_code = 500


class StartupError(Exception):
    """The service cannot start: store unreachable or seeding failed."""
