"""
Domain errors for Sage.
Each error carries the HTTP status the API layer responds with.
"""


class SageError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class ValidationFailed(SageError):
    status_code = 400


class AuthError(SageError):
    status_code = 401


class PermissionDenied(SageError):
    status_code = 403


class NotFoundError(SageError):
    status_code = 404


class ConflictError(SageError):
    status_code = 409
