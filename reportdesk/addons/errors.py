class AppError(Exception):
    """Base for errors that map onto an HTTP status and a public message."""

    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None, status_code=None, errors=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status_code:
            self.status_code = status_code
        self.errors = errors

    def to_dict(self):
        payload = {'success': False, 'message': self.message}
        if self.errors:
            payload['errors'] = self.errors
        return payload


class ValidationError(AppError):
    status_code = 400
    message = 'Invalid request'


class Unauthenticated(AppError):
    status_code = 401
    message = 'Authentication required'


class Forbidden(AppError):
    status_code = 403
    message = 'Access denied'


class NotFound(AppError):
    status_code = 404
    message = 'Resource not found'


class BackendFailure(AppError):
    status_code = 500
    message = 'Internal server error'
