"""
API error types.

Route handlers raise these; the handlers registered in create_app
render them as {"error": message} with the matching status code.
"""


class APIError(Exception):
    status_code = 500
    default_message = 'Server error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(APIError):
    status_code = 400
    default_message = 'Invalid request'


class AuthenticationError(APIError):
    status_code = 401
    default_message = 'Unauthorized'


class AuthorizationError(APIError):
    status_code = 403
    default_message = 'Forbidden'


class NotFoundError(APIError):
    status_code = 404
    default_message = 'Not found'


class IntegrationError(APIError):
    """External service missing or failing"""
    status_code = 503
    default_message = 'Service unavailable'


class MessagingError(IntegrationError):
    default_message = 'Messaging service unavailable'
