class ClinicError(Exception):
    """Base class for errors raised by the clinic services."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ClinicError):
    status_code = 404


class ForbiddenError(ClinicError):
    status_code = 403


class InvalidStateError(ClinicError):
    status_code = 409


class ValidationError(ClinicError):
    status_code = 422
