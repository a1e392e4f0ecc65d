"""Domain errors raised by the service layer.

Each error carries a stable ``code`` the client can switch on and the HTTP
status the API answers with. Routes never catch these; the app-level error
handler renders them as ``{"success": false, "error": code, "message": ...}``.
"""


class AlpineError(Exception):
    status_code = 400
    code = 'error'

    def __init__(self, message=None, code=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if code:
            self.code = code

    def to_dict(self):
        return {'success': False, 'error': self.code, 'message': self.message}


class ValidationError(AlpineError):
    status_code = 400
    code = 'validation_error'

    def __init__(self, message='Invalid input.', errors=None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self):
        payload = super().to_dict()
        payload['errors'] = self.errors
        return payload


class PermissionDenied(AlpineError):
    status_code = 403
    code = 'permission_denied'


class NotFound(AlpineError):
    status_code = 404
    code = 'not_found'


class CapacityError(AlpineError):
    status_code = 409
    code = 'tour_full'


class DeadlineError(AlpineError):
    status_code = 409
    code = 'registration_closed'


class ConflictError(AlpineError):
    status_code = 409
    code = 'conflict'


class TransportError(AlpineError):
    status_code = 503
    code = 'transport_error'
