"""
Domain errors raised by services.

Services validate before writing and raise one of these; the API layer maps
them to HTTP responses in one place (see main.py).
"""


class StudioError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(StudioError):
    """Request is well-formed but breaks a booking rule."""
    status_code = 400


class NotFoundError(StudioError):
    status_code = 404


class ConflictError(StudioError):
    """Target slot or record was taken by someone else."""
    status_code = 409


class ForbiddenError(StudioError):
    status_code = 403
